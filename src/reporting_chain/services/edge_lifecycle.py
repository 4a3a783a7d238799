"""Edge lifecycle manager.

The single entry point for changing who a position reports to. A leader
change is a close-then-open transition on the reporting ledger:

1. Close the child's active edge (end_date = effective date).
2. Open a new edge to the new parent starting on the effective date.

Both steps run in one database transaction. If opening the new edge fails,
the close is rolled back with it, so a child is never left without an active
parent by a half-applied change. The active edge is read with a row lock and
the partial unique index on open edges rejects a racing second writer with
InvariantViolation.

Errors are never retried or swallowed: the transaction is rolled back and
the typed error is re-raised unchanged.
"""

import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy.orm import Session

from ..database import db
from ..models.position import Position
from ..models.reporting_edge import ReportingEdge
from .calendar_dates import coerce_date, coerce_optional_date
from .edge_store import ReportingEdgeStore
from .leadership_errors import (
    InvariantViolation,
    NotFound,
    ScopeError,
    SelfReportError,
    ValidationError,
)

logger = logging.getLogger(__name__)


@dataclass
class LeaderChange:
    """Outcome of a set_leader or end_leadership call."""

    child_position_id: str
    parent_position_id: str | None
    effective_date: date
    changed: bool
    closed_edge_id: str | None = None
    opened_edge_id: str | None = None


def _require_id(value, field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required.")
    return str(value).strip()


class EdgeLifecycleManager:
    """Applies leader changes to the reporting ledger as atomic units of work."""

    def __init__(self, session: Session | None = None, store: ReportingEdgeStore | None = None):
        self._session = session if session is not None else db.session
        self._store = store if store is not None else ReportingEdgeStore(self._session)

    def set_leader(
        self,
        child_position_id: str,
        new_parent_position_id: str,
        effective_date,
        actor: str | None = None,
        scope_id: str | None = None,
    ) -> LeaderChange:
        """Make ``new_parent_position_id`` the child's leader from ``effective_date``.

        Re-selecting the current leader is a no-op (``changed=False``).

        Raises:
            ValidationError: Missing identifier or effective date.
            SelfReportError: Child and parent are the same position.
            NotFound: Either position does not exist.
            ScopeError: A position lies outside ``scope_id``.
            InvariantViolation: Inactive position, effective date before the
                current edge's start, or a concurrent writer won the race.
        """
        child_id = _require_id(child_position_id, "child_position_id")
        parent_id = _require_id(new_parent_position_id, "parent_position_id")
        effective = coerce_date(effective_date, "effective_date")

        if child_id == parent_id:
            raise SelfReportError(child_id)

        try:
            self._load_position(child_id, "child", scope_id, require_active=True)
            self._load_position(parent_id, "parent", scope_id, require_active=True)

            active = self._store.find_active_edge_for_child(child_id, for_update=True)

            if active is not None and active.parent_position_id == parent_id:
                # Same leader re-selected; release the row lock, write nothing
                self._session.rollback()
                logger.debug(
                    f"set_leader no-op: {child_id} already reports to {parent_id} (edge {active.id})"
                )
                return LeaderChange(
                    child_position_id=child_id,
                    parent_position_id=parent_id,
                    effective_date=effective,
                    changed=False,
                )

            closed_edge_id = None
            if active is not None:
                self._store.close_edge(active.id, effective, actor=actor)
                closed_edge_id = active.id

            opened_edge_id = self._store.insert_edge(ReportingEdge(
                child_position_id=child_id,
                parent_position_id=parent_id,
                start_date=effective,
                end_date=None,
                created_by=actor,
            ))

            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            f"Leader set: {child_id} -> {parent_id} from {effective} "
            f"(closed={closed_edge_id}, opened={opened_edge_id}, actor={actor})"
        )
        return LeaderChange(
            child_position_id=child_id,
            parent_position_id=parent_id,
            effective_date=effective,
            changed=True,
            closed_edge_id=closed_edge_id,
            opened_edge_id=opened_edge_id,
        )

    def end_leadership(
        self,
        child_position_id: str,
        effective_date,
        actor: str | None = None,
        scope_id: str | None = None,
    ) -> LeaderChange:
        """Close the child's active edge without opening a new one.

        The child becomes a root. No-op if it has no active edge.
        """
        child_id = _require_id(child_position_id, "child_position_id")
        effective = coerce_date(effective_date, "effective_date")

        try:
            # Inactive children may still have their reporting line ended
            self._load_position(child_id, "child", scope_id, require_active=False)

            active = self._store.find_active_edge_for_child(child_id, for_update=True)
            if active is None:
                self._session.rollback()
                logger.debug(f"end_leadership no-op: {child_id} has no active leader")
                return LeaderChange(
                    child_position_id=child_id,
                    parent_position_id=None,
                    effective_date=effective,
                    changed=False,
                )

            parent_id = active.parent_position_id
            self._store.close_edge(active.id, effective, actor=actor)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            f"Leadership ended: {child_id} no longer reports to {parent_id} from {effective} "
            f"(edge {active.id}, actor={actor})"
        )
        return LeaderChange(
            child_position_id=child_id,
            parent_position_id=parent_id,
            effective_date=effective,
            changed=True,
            closed_edge_id=active.id,
        )

    def correct_edge(
        self,
        edge_id: str,
        start_date=None,
        end_date=None,
        actor: str | None = None,
    ) -> ReportingEdge:
        """Administratively correct the dates of an existing edge."""
        edge_id = _require_id(edge_id, "edge_id")
        new_start = coerce_optional_date(start_date, "start_date")
        new_end = coerce_optional_date(end_date, "end_date")

        try:
            before = self._store.get_edge(edge_id)
            old_start, old_end = before.start_date, before.end_date
            edge = self._store.correct_edge(edge_id, new_start, new_end, actor=actor)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.warning(
            f"Reporting edge {edge_id} corrected by {actor}: "
            f"start {old_start} -> {edge.start_date}, end {old_end} -> {edge.end_date}"
        )
        return edge

    def _load_position(
        self, position_id: str, role: str, scope_id: str | None, require_active: bool
    ) -> Position:
        position = self._session.get(Position, position_id)
        if position is None:
            raise NotFound(f"{role.capitalize()} position", position_id)
        if scope_id is not None and position.scope_id != scope_id:
            raise ScopeError(f"{role.capitalize()} position {position_id} is outside scope {scope_id}")
        if require_active and not position.active:
            raise InvariantViolation(
                "inactive_position",
                f"{role} position {position_id} is inactive",
            )
        return position
