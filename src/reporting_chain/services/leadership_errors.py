"""Typed errors raised by the leadership engine.

Every error carries a stable ``code`` string so HTTP and CLI callers can
report it without parsing the message.
"""


class LeadershipError(Exception):
    """Base class for leadership engine errors."""

    code = "leadership_error"


class ValidationError(LeadershipError):
    """A required field is missing or malformed."""

    code = "validation_error"


class SelfReportError(LeadershipError):
    """Child and parent position identifiers are identical."""

    code = "self_report"

    def __init__(self, position_id: str) -> None:
        self.position_id = position_id
        super().__init__(f"Position {position_id} cannot report to itself")


class InvariantViolation(LeadershipError):
    """A write would break a reporting ledger invariant."""

    code = "invariant_violation"

    def __init__(self, rule: str, detail: str) -> None:
        self.rule = rule
        self.detail = detail
        super().__init__(f"[{rule}] {detail}")


class NotFound(LeadershipError):
    """An edge or position identifier does not exist."""

    code = "not_found"

    def __init__(self, kind: str, identifier: str) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} {identifier} not found")


class AlreadyClosed(LeadershipError):
    """Attempt to close an edge that already has an end_date."""

    code = "already_closed"

    def __init__(self, edge_id: str, end_date) -> None:
        self.edge_id = edge_id
        self.end_date = end_date
        super().__init__(f"Reporting edge {edge_id} already closed on {end_date}")


class ScopeError(LeadershipError):
    """A position lies outside the organisation scope of the request."""

    code = "out_of_scope"
