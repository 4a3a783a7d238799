"""Leadership service.

Facade exposed to the console (HTTP routes and CLI): wires the assignment
registry and rank table to the lifecycle manager, the eligibility resolver
and the query service. Callable without CLI or HTTP context.
"""

import logging

from flask import current_app, has_app_context
from sqlalchemy.orm import Session

from ..database import db
from ..models.position import Position
from ..models.reporting_edge import ReportingEdge
from .assignment_registry import AssignmentRegistry
from .chain_query import HistoryEntry, ReportingChainQueryService
from .edge_lifecycle import EdgeLifecycleManager, LeaderChange
from .edge_store import ReportingEdgeStore
from .eligibility import (
    Candidate,
    EligibilityPolicy,
    EligibilityResult,
    policy_from_config,
    resolve_eligible_parents,
)
from .leadership_errors import NotFound
from .rank_table import RankTable

logger = logging.getLogger(__name__)


def get_policy() -> EligibilityPolicy:
    """Eligibility policy for the current app, or the defaults outside one."""
    if has_app_context():
        policy = current_app.extensions.get("leadership_policy")
        if policy is not None:
            return policy
    return EligibilityPolicy()


class LeadershipService:
    """The leadership engine's external interface."""

    def __init__(
        self,
        session: Session | None = None,
        registry: AssignmentRegistry | None = None,
        rank_table: RankTable | None = None,
        policy: EligibilityPolicy | None = None,
    ):
        self._session = session if session is not None else db.session
        self._store = ReportingEdgeStore(self._session)
        self._registry = registry if registry is not None else AssignmentRegistry(self._session)
        self._rank_table = rank_table if rank_table is not None else RankTable(self._session)
        self._policy = policy
        self._lifecycle = EdgeLifecycleManager(self._session, self._store)
        self._query = ReportingChainQueryService(self._session, self._store, self._registry)

    @property
    def policy(self) -> EligibilityPolicy:
        return self._policy if self._policy is not None else get_policy()

    # --- writes ---

    def set_leader(
        self,
        child_position_id: str,
        new_parent_position_id: str,
        effective_date,
        actor: str | None = None,
        scope_id: str | None = None,
    ) -> LeaderChange:
        return self._lifecycle.set_leader(
            child_position_id, new_parent_position_id, effective_date,
            actor=actor, scope_id=scope_id,
        )

    def end_leadership(
        self,
        child_position_id: str,
        effective_date,
        actor: str | None = None,
        scope_id: str | None = None,
    ) -> LeaderChange:
        return self._lifecycle.end_leadership(
            child_position_id, effective_date, actor=actor, scope_id=scope_id,
        )

    def correct_edge(self, edge_id: str, start_date=None, end_date=None, actor: str | None = None) -> ReportingEdge:
        return self._lifecycle.correct_edge(edge_id, start_date, end_date, actor=actor)

    # --- reads ---

    def get_position(self, position_id: str) -> Position:
        position = self._registry.get_position(position_id)
        if position is None:
            raise NotFound("Position", position_id)
        return position

    def current_parent_of(self, position_id: str) -> Position | None:
        return self._query.current_parent_of(position_id)

    def current_edge_of(self, position_id: str) -> ReportingEdge | None:
        return self._query.current_edge_of(position_id)

    def history_for(self, position_id: str) -> list[HistoryEntry]:
        return self._query.history_for(position_id)

    def active_edge_count_for(self, position_id: str) -> int:
        return self._query.active_edge_count_for(position_id)

    def direct_reports_of(self, position_id: str) -> list[Position]:
        return self._query.direct_reports_of(position_id)

    def leadership_listing(self, scope_id: str | None = None) -> list[ReportingEdge]:
        return self._query.leadership_listing(scope_id)

    def eligible_parents(self, child_position_id: str) -> EligibilityResult:
        """Eligible new leaders for the child, from live registry and rank data.

        Candidates come from the child's own scope.

        Raises:
            NotFound: If the child position does not exist.
        """
        child = self.get_position(child_position_id)
        positions = self._registry.list_active_positions(child.scope_id)
        result = resolve_eligible_parents(
            Candidate.from_position(child),
            [Candidate.from_position(p) for p in positions],
            self._rank_table.list_rank_entries(),
            self.policy,
        )
        if result.tier == "any_active":
            logger.warning(
                f"Eligible parents for {child.id} ignore rank and affiliation "
                f"({len(result.candidates)} candidates)"
            )
        elif result.tier not in (None, "strict"):
            logger.info(
                f"Eligible parents for {child.id} fell back to tier {result.tier} "
                f"({len(result.candidates)} candidates)"
            )
        return result

    def positions_by_id(self, position_ids) -> dict[str, Position]:
        return self._registry.get_positions(position_ids)
