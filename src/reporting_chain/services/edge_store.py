"""Reporting edge store.

Durable, queryable storage of ReportingEdge rows. Invariants are checked in
Python before each write so callers get a precise error, and the database
constraints on ``reporting_edges`` remain the final authority: an
IntegrityError raised by a concurrent writer is translated into
InvariantViolation.

The store never commits. The caller owns the unit of work (see
EdgeLifecycleManager) and must roll back the session after any error.
"""

import logging
from datetime import date, datetime, timezone

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..database import db
from ..models.reporting_edge import ReportingEdge
from .leadership_errors import AlreadyClosed, InvariantViolation, NotFound, ValidationError

logger = logging.getLogger(__name__)

RULE_NO_SELF_LOOP = "no_self_loop"
RULE_ONE_ACTIVE_PARENT = "one_active_parent"
RULE_END_AFTER_START = "end_after_start"
RULE_NATURAL_KEY = "natural_key"
RULE_OVERLAPPING_HISTORY = "overlapping_history"

# Constraint name fragments as they appear in PostgreSQL and SQLite messages
_CONSTRAINT_RULES = (
    ("ck_reporting_edges_no_self_loop", RULE_NO_SELF_LOOP),
    ("ck_reporting_edges_end_after_start", RULE_END_AFTER_START),
    ("uq_reporting_edges_one_active_per_child", RULE_ONE_ACTIVE_PARENT),
    ("uq_reporting_edges_natural_key", RULE_NATURAL_KEY),
    ("reporting_edges.parent_position_id", RULE_NATURAL_KEY),
    ("reporting_edges.child_position_id", RULE_ONE_ACTIVE_PARENT),
)


def _rule_from_integrity_error(error: IntegrityError) -> str:
    message = str(error.orig) if error.orig is not None else str(error)
    for fragment, rule in _CONSTRAINT_RULES:
        if fragment in message:
            return rule
    return "integrity"


class ReportingEdgeStore:
    """Session-bound access to the reporting edge ledger."""

    def __init__(self, session: Session | None = None):
        self._session = session if session is not None else db.session

    # --- writes ---

    def insert_edge(self, edge: ReportingEdge) -> str:
        """Persist a new edge and return its edge_id.

        Raises:
            ValidationError: If child, parent or start_date is missing.
            InvariantViolation: On self-loop, bad date ordering, a second
                open edge for the child, a start before the end of the
                child's latest closed edge, or a natural key collision.
        """
        if not edge.child_position_id or not edge.parent_position_id:
            raise ValidationError("child_position_id and parent_position_id are required.")
        if edge.start_date is None:
            raise ValidationError("start_date is required.")

        if edge.child_position_id == edge.parent_position_id:
            raise InvariantViolation(
                RULE_NO_SELF_LOOP,
                f"position {edge.child_position_id} cannot report to itself",
            )
        if edge.end_date is not None and edge.end_date < edge.start_date:
            raise InvariantViolation(
                RULE_END_AFTER_START,
                f"end_date {edge.end_date} precedes start_date {edge.start_date}",
            )

        if edge.end_date is None:
            active = self.find_active_edge_for_child(edge.child_position_id)
            if active is not None:
                raise InvariantViolation(
                    RULE_ONE_ACTIVE_PARENT,
                    f"position {edge.child_position_id} already reports to "
                    f"{active.parent_position_id} (edge {active.id})",
                )

        self._check_natural_key(edge.child_position_id, edge.parent_position_id, edge.start_date)

        # Closed history is contiguous: a new edge may not start inside it
        latest_end = self.latest_closed_end_for_child(edge.child_position_id)
        if latest_end is not None and edge.start_date < latest_end:
            raise InvariantViolation(
                RULE_OVERLAPPING_HISTORY,
                f"position {edge.child_position_id} reported to another leader until "
                f"{latest_end}; a new edge cannot start on {edge.start_date}",
            )

        self._session.add(edge)
        self._flush()
        logger.debug(
            f"Inserted reporting edge {edge.id}: {edge.child_position_id} -> "
            f"{edge.parent_position_id} from {edge.start_date}"
        )
        return edge.id

    def close_edge(self, edge_id: str, end_date: date, actor: str | None = None) -> ReportingEdge:
        """Set end_date on an open edge. start_date is never modified.

        Raises:
            NotFound: If the edge does not exist.
            AlreadyClosed: If the edge already has an end_date.
            InvariantViolation: If end_date precedes the edge's start_date.
        """
        edge = self.get_edge(edge_id)
        if edge.end_date is not None:
            raise AlreadyClosed(edge.id, edge.end_date)
        if end_date < edge.start_date:
            raise InvariantViolation(
                RULE_END_AFTER_START,
                f"cannot close edge {edge.id} on {end_date}: it started on {edge.start_date}",
            )

        edge.end_date = end_date
        edge.updated_at = datetime.now(timezone.utc)
        edge.updated_by = actor
        self._flush()
        logger.debug(f"Closed reporting edge {edge.id} on {end_date}")
        return edge

    def correct_edge(
        self,
        edge_id: str,
        start_date: date | None = None,
        end_date: date | None = None,
        actor: str | None = None,
    ) -> ReportingEdge:
        """Rewrite the dates of an existing edge to fix a data-entry error.

        Only dates can change. An open edge cannot be closed through this
        path and a closed edge cannot be reopened.
        """
        edge = self.get_edge(edge_id)
        if start_date is None and end_date is None:
            raise ValidationError("start_date or end_date is required for a correction.")
        if end_date is not None and edge.end_date is None:
            raise ValidationError(
                f"Edge {edge.id} is open; end the leadership instead of correcting its end_date."
            )

        new_start = start_date if start_date is not None else edge.start_date
        new_end = end_date if end_date is not None else edge.end_date

        if new_end is not None and new_end < new_start:
            raise InvariantViolation(
                RULE_END_AFTER_START,
                f"end_date {new_end} precedes start_date {new_start}",
            )
        if new_start != edge.start_date:
            self._check_natural_key(
                edge.child_position_id, edge.parent_position_id, new_start, exclude_id=edge.id
            )

        edge.start_date = new_start
        edge.end_date = new_end
        edge.updated_at = datetime.now(timezone.utc)
        edge.updated_by = actor
        self._flush()
        return edge

    # --- reads ---

    def get_edge(self, edge_id: str) -> ReportingEdge:
        edge = self._session.get(ReportingEdge, edge_id) if edge_id else None
        if edge is None:
            raise NotFound("Reporting edge", str(edge_id))
        return edge

    def find_active_edge_for_child(
        self, child_position_id: str, for_update: bool = False
    ) -> ReportingEdge | None:
        """Return the child's open edge, or None.

        With ``for_update`` the row is locked until the transaction ends
        (ignored on backends without row locks).
        """
        query = self._session.query(ReportingEdge).filter(
            ReportingEdge.child_position_id == child_position_id,
            ReportingEdge.end_date.is_(None),
        )
        if for_update:
            query = query.with_for_update()
        return query.first()

    def latest_closed_end_for_child(self, child_position_id: str) -> date | None:
        """Latest end_date across the child's closed edges, or None."""
        return (
            self._session.query(func.max(ReportingEdge.end_date))
            .filter(
                ReportingEdge.child_position_id == child_position_id,
                ReportingEdge.end_date.is_not(None),
            )
            .scalar()
        )

    def find_edges_for_child(self, child_position_id: str) -> list[ReportingEdge]:
        """All edges for the child, newest start_date first."""
        return (
            self._session.query(ReportingEdge)
            .filter(ReportingEdge.child_position_id == child_position_id)
            .order_by(ReportingEdge.start_date.desc(), ReportingEdge.created_at.desc())
            .all()
        )

    def find_edges_touching_position(self, position_id: str) -> list[ReportingEdge]:
        """All edges where the position is child or parent, newest first."""
        return (
            self._session.query(ReportingEdge)
            .filter(or_(
                ReportingEdge.child_position_id == position_id,
                ReportingEdge.parent_position_id == position_id,
            ))
            .order_by(ReportingEdge.start_date.desc(), ReportingEdge.created_at.desc())
            .all()
        )

    def find_active_edges_for_parent(self, parent_position_id: str) -> list[ReportingEdge]:
        return (
            self._session.query(ReportingEdge)
            .filter(
                ReportingEdge.parent_position_id == parent_position_id,
                ReportingEdge.end_date.is_(None),
            )
            .order_by(ReportingEdge.start_date.desc())
            .all()
        )

    def count_active_edges_for(self, position_id: str) -> int:
        """Number of open edges where the position is child or parent."""
        return (
            self._session.query(func.count(ReportingEdge.id))
            .filter(
                or_(
                    ReportingEdge.child_position_id == position_id,
                    ReportingEdge.parent_position_id == position_id,
                ),
                ReportingEdge.end_date.is_(None),
            )
            .scalar()
        ) or 0

    def list_edges(self, position_ids: list[str] | None = None) -> list[ReportingEdge]:
        """Org-wide listing: active first, then start_date and created_at descending.

        When ``position_ids`` is given, only edges whose child is in that set
        are returned.
        """
        query = self._session.query(ReportingEdge)
        if position_ids is not None:
            if not position_ids:
                return []
            query = query.filter(ReportingEdge.child_position_id.in_(position_ids))
        edges = query.order_by(
            ReportingEdge.start_date.desc(), ReportingEdge.created_at.desc()
        ).all()
        # Stable sort keeps the date ordering within each group
        return sorted(edges, key=lambda e: 0 if e.end_date is None else 1)

    # --- helpers ---

    def _check_natural_key(
        self,
        child_position_id: str,
        parent_position_id: str,
        start_date: date,
        exclude_id: str | None = None,
    ) -> None:
        query = self._session.query(ReportingEdge.id).filter(
            ReportingEdge.child_position_id == child_position_id,
            ReportingEdge.parent_position_id == parent_position_id,
            ReportingEdge.start_date == start_date,
        )
        if exclude_id is not None:
            query = query.filter(ReportingEdge.id != exclude_id)
        if query.first() is not None:
            raise InvariantViolation(
                RULE_NATURAL_KEY,
                f"an edge {child_position_id} -> {parent_position_id} starting "
                f"{start_date} already exists",
            )

    def _flush(self) -> None:
        try:
            self._session.flush()
        except IntegrityError as e:
            rule = _rule_from_integrity_error(e)
            logger.warning(f"Reporting edge write rejected by database ({rule}): {e.orig}")
            raise InvariantViolation(rule, "rejected by database constraint") from e
