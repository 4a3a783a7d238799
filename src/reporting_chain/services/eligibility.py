"""Eligibility resolver for new leaders.

Given a child position, every candidate position and the rank table,
compute the ordered list of positions the child may report to. The resolver
is a pure function: no I/O, no mutation, and identical inputs always give an
identical ordered result.

Pipeline:

1. Classify every position once at the boundary: free-text affiliation and
   title become an AffiliationKind plus role flags, and the title becomes a
   numeric rank.
2. Try the eligibility tiers in order (strict, same_or_internal,
   any_active) and keep the first non-empty result, so the caller never gets
   an empty list while any other active position exists.
3. Sort by display label.

Ranks come from the rank table when the title is listed there, otherwise
from a keyword heuristic (technician < supervisor < manager < director <
vp). Whether a higher sort_order is more senior is either configured or
inferred from two anchor titles.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, Sequence

from ..config import DEFAULTS, get_leadership_config

logger = logging.getLogger(__name__)


class AffiliationKind(str, Enum):
    """Closed classification of a position's affiliation."""

    INTERNAL = "internal"
    BRIDGE = "bridge"
    CONTRACTOR = "contractor"
    UNAFFILIATED = "unaffiliated"


@dataclass(frozen=True)
class EligibilityPolicy:
    """Keyword and rank settings used to classify positions."""

    rank_direction: str = "infer"
    anchor_junior: str = "Technician"
    anchor_senior: str = "Supervisor"
    internal_keywords: tuple[str, ...] = ("integrated technologies", "integrated tech", "itg")
    bridge_keywords: tuple[str, ...] = ("bp",)
    frontline_keywords: tuple[str, ...] = ("technician",)
    supervisory_keywords: tuple[str, ...] = ("supervisor", "manager", "director")
    fallback_ranks: tuple[tuple[str, int], ...] = (
        ("technician", 10),
        ("supervisor", 20),
        ("manager", 30),
        ("director", 40),
        ("vice president", 50),
        ("vp", 50),
    )
    default_rank: int = 25


def policy_from_config(config: dict) -> EligibilityPolicy:
    """Build an EligibilityPolicy from the ``leadership`` config section."""
    section = get_leadership_config(config)
    anchors = section.get("anchor_titles") or DEFAULTS["leadership"]["anchor_titles"]
    return EligibilityPolicy(
        rank_direction=section["rank_direction"],
        anchor_junior=str(anchors.get("junior", "Technician")),
        anchor_senior=str(anchors.get("senior", "Supervisor")),
        internal_keywords=tuple(_norm(k) for k in section["internal_keywords"]),
        bridge_keywords=tuple(_norm(k) for k in section["bridge_keywords"]),
        frontline_keywords=tuple(_norm(k) for k in section["frontline_keywords"]),
        supervisory_keywords=tuple(_norm(k) for k in section["supervisory_keywords"]),
        fallback_ranks=tuple((_norm(k), int(v)) for k, v in section["fallback_ranks"].items()),
        default_rank=int(section["default_rank"]),
    )


@dataclass(frozen=True)
class Candidate:
    """A position as seen by the resolver."""

    position_id: str
    title: str = ""
    affiliation: str = ""
    name: str = ""
    active: bool = True
    scope_id: str | None = None

    @classmethod
    def from_position(cls, position: Any) -> "Candidate":
        """Build a Candidate from a Position model (or any object shaped like one)."""
        return cls(
            position_id=str(position.id) if position.id is not None else "",
            title=position.title or "",
            affiliation=position.affiliation or "",
            name=position.full_name or "",
            active=bool(position.active),
            scope_id=position.scope_id,
        )

    @property
    def label(self) -> str:
        name = self.name.strip() or "(unnamed)"
        title = self.title.strip()
        aff = self.affiliation.strip()
        label = f"{name} - {title}" if title else name
        return f"{label} ({aff})" if aff else label


@dataclass
class EligibilityResult:
    """Ordered eligible parents plus the tier that produced them."""

    candidates: list[Candidate] = field(default_factory=list)
    tier: str | None = None

    @property
    def position_ids(self) -> list[str]:
        return [c.position_id for c in self.candidates]


# --- classification ---


def _norm(value) -> str:
    return " ".join(str(value or "").lower().split())


def _has_keyword(text: str, keyword: str) -> bool:
    """Whole-word keyword match on normalised text."""
    if not text or not keyword:
        return False
    return re.search(rf"(?<![a-z0-9]){re.escape(keyword)}(?![a-z0-9])", text) is not None


def _has_any(text: str, keywords: Iterable[str]) -> bool:
    return any(_has_keyword(text, k) for k in keywords)


class RankScale:
    """Resolves title ranks and the seniority direction of the rank table."""

    def __init__(self, rank_entries: Iterable[tuple[str, Any]], policy: EligibilityPolicy):
        self._policy = policy
        self._sort_orders: dict[str, int] = {}
        for title, sort_order in rank_entries or ():
            key = _norm(title)
            if not key or sort_order is None:
                continue
            try:
                self._sort_orders[key] = int(sort_order)
            except (TypeError, ValueError):
                continue
        self.ascending_is_senior = self._resolve_direction()

    def _resolve_direction(self) -> bool:
        direction = self._policy.rank_direction
        if direction == "ascending":
            return True
        if direction == "descending":
            return False

        junior = self._sort_orders.get(_norm(self._policy.anchor_junior))
        senior = self._sort_orders.get(_norm(self._policy.anchor_senior))
        if junior is None or senior is None or junior == senior:
            return True
        return junior < senior

    def rank_of(self, title: str) -> int:
        key = _norm(title)
        if key in self._sort_orders:
            return self._sort_orders[key]
        for keyword, rank in self._policy.fallback_ranks:
            if _has_keyword(key, keyword):
                return rank
        return self._policy.default_rank

    def is_senior(self, candidate_rank: int, child_rank: int) -> bool:
        """True if candidate_rank is strictly more senior than child_rank."""
        if self.ascending_is_senior:
            return candidate_rank > child_rank
        return candidate_rank < child_rank

    def is_at_least(self, rank: int, reference_rank: int) -> bool:
        return rank == reference_rank or self.is_senior(rank, reference_rank)


@dataclass(frozen=True)
class _Classified:
    candidate: Candidate
    kind: AffiliationKind
    affiliation_key: str
    is_bridge_role: bool
    is_frontline: bool
    is_supervisory: bool
    rank: int


def _classify(candidate: Candidate, policy: EligibilityPolicy, scale: RankScale) -> _Classified:
    aff = _norm(candidate.affiliation)
    title = _norm(candidate.title)

    if _has_any(aff, policy.internal_keywords):
        kind = AffiliationKind.INTERNAL
    elif _has_any(aff, policy.bridge_keywords):
        kind = AffiliationKind.BRIDGE
    elif not aff:
        kind = AffiliationKind.UNAFFILIATED
    else:
        kind = AffiliationKind.CONTRACTOR

    return _Classified(
        candidate=candidate,
        kind=kind,
        affiliation_key=aff,
        is_bridge_role=kind is AffiliationKind.BRIDGE or _has_any(title, policy.bridge_keywords),
        is_frontline=_has_any(title, policy.frontline_keywords),
        is_supervisory=_has_any(title, policy.supervisory_keywords),
        rank=scale.rank_of(candidate.title),
    )


def classify_affiliation(affiliation: str, policy: EligibilityPolicy | None = None) -> AffiliationKind:
    """Classify a free-text affiliation label."""
    policy = policy or EligibilityPolicy()
    scale = RankScale((), policy)
    return _classify(Candidate(position_id="", affiliation=affiliation), policy, scale).kind


# --- tiers ---


@dataclass(frozen=True)
class _Context:
    child: _Classified
    scale: RankScale
    supervisor_rank: int


def _is_senior(cand: _Classified, ctx: _Context) -> bool:
    return ctx.scale.is_senior(cand.rank, ctx.child.rank)


def _affiliation_compatible(cand: _Classified, ctx: _Context) -> bool:
    child = ctx.child
    if cand.kind is AffiliationKind.INTERNAL:
        return True
    # Bridge roles report into the internal chain only
    if child.is_bridge_role:
        return False
    if child.kind is AffiliationKind.INTERNAL:
        return False

    same_affiliation = cand.affiliation_key == child.affiliation_key
    if child.kind is AffiliationKind.CONTRACTOR:
        if child.is_frontline and cand.is_bridge_role:
            supervisor_or_above = cand.is_supervisory or ctx.scale.is_at_least(
                cand.rank, ctx.supervisor_rank
            )
            if supervisor_or_above:
                return True
        return same_affiliation

    return same_affiliation


def _strict(cand: _Classified, ctx: _Context) -> bool:
    return _is_senior(cand, ctx) and _affiliation_compatible(cand, ctx)


def _same_or_internal(cand: _Classified, ctx: _Context) -> bool:
    if not _is_senior(cand, ctx):
        return False
    return cand.kind is AffiliationKind.INTERNAL or cand.affiliation_key == ctx.child.affiliation_key


def _any_active(cand: _Classified, ctx: _Context) -> bool:
    return True


@dataclass(frozen=True)
class EligibilityTier:
    name: str
    predicate: Callable[[_Classified, _Context], bool]


TIERS: tuple[EligibilityTier, ...] = (
    EligibilityTier("strict", _strict),
    EligibilityTier("same_or_internal", _same_or_internal),
    EligibilityTier("any_active", _any_active),
)


def _label_sort_key(candidate: Candidate) -> tuple[str, str]:
    return (candidate.label.casefold(), candidate.position_id)


def resolve_eligible_parents(
    child: Candidate,
    candidates: Sequence[Candidate],
    rank_entries: Iterable[tuple[str, Any]] = (),
    policy: EligibilityPolicy | None = None,
    tiers: Sequence[EligibilityTier] = TIERS,
) -> EligibilityResult:
    """Compute the ordered positions ``child`` may report to.

    Args:
        child: The position whose leader is being chosen.
        candidates: All positions in scope (the child may be among them).
        rank_entries: (title, sort_order) pairs from the rank table.
        policy: Classification settings; defaults apply when omitted.
        tiers: Filters tried in order; the first non-empty result wins.

    Returns:
        EligibilityResult sorted by display label. ``tier`` is None only
        when no other active position exists at all.
    """
    policy = policy or EligibilityPolicy()
    scale = RankScale(rank_entries, policy)
    classified_child = _classify(child, policy, scale)
    ctx = _Context(
        child=classified_child,
        scale=scale,
        supervisor_rank=scale.rank_of(policy.anchor_senior),
    )

    pool = []
    seen: set[str] = set()
    for cand in candidates:
        if not cand.position_id or not cand.active:
            continue
        if cand.position_id == child.position_id or cand.position_id in seen:
            continue
        seen.add(cand.position_id)
        pool.append(_classify(cand, policy, scale))

    for tier in tiers:
        matched = [c.candidate for c in pool if tier.predicate(c, ctx)]
        if matched:
            if tier is not tiers[0]:
                logger.debug(
                    f"Eligibility for {child.position_id} relaxed to tier {tier.name} "
                    f"({len(matched)} candidates)"
                )
            return EligibilityResult(
                candidates=sorted(matched, key=_label_sort_key),
                tier=tier.name,
            )

    return EligibilityResult(candidates=[], tier=None)
