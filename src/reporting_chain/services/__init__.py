"""Services package for the reporting chain engine."""

from .assignment_registry import AssignmentRegistry
from .chain_query import HistoryEntry, ReportingChainQueryService
from .edge_lifecycle import EdgeLifecycleManager, LeaderChange
from .edge_store import ReportingEdgeStore
from .eligibility import (
    AffiliationKind,
    Candidate,
    EligibilityPolicy,
    EligibilityResult,
    RankScale,
    TIERS,
    classify_affiliation,
    policy_from_config,
    resolve_eligible_parents,
)
from .leadership_errors import (
    AlreadyClosed,
    InvariantViolation,
    LeadershipError,
    NotFound,
    ScopeError,
    SelfReportError,
    ValidationError,
)
from .leadership_service import LeadershipService
from .rank_table import RankTable

__all__ = [
    # Collaborators
    "AssignmentRegistry",
    "RankTable",
    # Engine
    "ReportingEdgeStore",
    "EdgeLifecycleManager",
    "LeaderChange",
    "ReportingChainQueryService",
    "HistoryEntry",
    "LeadershipService",
    # Eligibility
    "AffiliationKind",
    "Candidate",
    "EligibilityPolicy",
    "EligibilityResult",
    "RankScale",
    "TIERS",
    "classify_affiliation",
    "policy_from_config",
    "resolve_eligible_parents",
    # Errors
    "LeadershipError",
    "ValidationError",
    "SelfReportError",
    "InvariantViolation",
    "NotFound",
    "AlreadyClosed",
    "ScopeError",
]
