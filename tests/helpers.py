"""Shared builders for reporting chain tests."""

from datetime import date

from reporting_chain.models.position import Position
from reporting_chain.models.position_title import PositionTitle
from reporting_chain.models.reporting_edge import ReportingEdge


def create_position(
    session,
    position_id,
    title="Technician",
    affiliation="Acme Contracting",
    full_name=None,
    scope_id="org-1",
    active=True,
):
    """Persist a position and commit so it survives a no-op rollback."""
    position = Position(
        id=position_id,
        scope_id=scope_id,
        full_name=full_name if full_name is not None else f"Person {position_id}",
        title=title,
        affiliation=affiliation,
        active=active,
    )
    session.add(position)
    session.commit()
    return position


def create_title(session, title, sort_order, active=True):
    row = PositionTitle(title=title, sort_order=sort_order, active=active)
    session.add(row)
    session.commit()
    return row


def create_edge(session, child_id, parent_id, start, end=None):
    """Persist an edge directly, bypassing the lifecycle manager."""
    edge = ReportingEdge(
        child_position_id=child_id,
        parent_position_id=parent_id,
        start_date=start if isinstance(start, date) else date.fromisoformat(start),
        end_date=end if end is None or isinstance(end, date) else date.fromisoformat(end),
    )
    session.add(edge)
    session.commit()
    return edge
