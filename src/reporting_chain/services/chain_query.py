"""Reporting chain query service.

Read-side views over the reporting ledger joined with the assignment
registry: current leader, per-position history, active edge counts and the
org-wide leadership listing.
"""

from dataclasses import dataclass

from sqlalchemy.orm import Session

from ..database import db
from ..models.position import Position
from ..models.reporting_edge import ReportingEdge
from .assignment_registry import AssignmentRegistry
from .edge_store import ReportingEdgeStore


@dataclass
class HistoryEntry:
    """One edge in a position's history, seen from that position."""

    edge: ReportingEdge
    relation: str  # "child" or "parent"
    is_active: bool


class ReportingChainQueryService:
    """Answers "who does X report to" and "what is X's reporting history"."""

    def __init__(
        self,
        session: Session | None = None,
        store: ReportingEdgeStore | None = None,
        registry: AssignmentRegistry | None = None,
    ):
        session = session if session is not None else db.session
        self._store = store if store is not None else ReportingEdgeStore(session)
        self._registry = registry if registry is not None else AssignmentRegistry(session)

    def current_parent_of(self, position_id: str) -> Position | None:
        edge = self._store.find_active_edge_for_child(position_id)
        if edge is None:
            return None
        return self._registry.get_position(edge.parent_position_id)

    def current_edge_of(self, position_id: str) -> ReportingEdge | None:
        return self._store.find_active_edge_for_child(position_id)

    def history_for(self, position_id: str) -> list[HistoryEntry]:
        """All edges touching the position, newest start_date first."""
        return [
            HistoryEntry(
                edge=edge,
                relation="child" if edge.child_position_id == position_id else "parent",
                is_active=edge.end_date is None,
            )
            for edge in self._store.find_edges_touching_position(position_id)
        ]

    def active_edge_count_for(self, position_id: str) -> int:
        return self._store.count_active_edges_for(position_id)

    def direct_reports_of(self, position_id: str) -> list[Position]:
        edges = self._store.find_active_edges_for_parent(position_id)
        positions = self._registry.get_positions(e.child_position_id for e in edges)
        return sorted(positions.values(), key=lambda p: ((p.full_name or "").casefold(), p.id))

    def leadership_listing(self, scope_id: str | None = None) -> list[ReportingEdge]:
        """Org-wide admin view: active edges first, then newest first.

        With ``scope_id`` only edges whose child belongs to that scope are
        listed.
        """
        if scope_id is None:
            return self._store.list_edges()
        # Inactive positions keep their history in the listing
        child_ids = [p.id for p in self._registry.list_positions_in_scope(scope_id)]
        return self._store.list_edges(child_ids)
