"""Calendar date coercion for leadership operations.

Effective dates arrive as ``datetime.date`` objects from Python callers and
as ISO ``YYYY-MM-DD`` strings from HTTP and CLI callers.
"""

from datetime import date, datetime

from .leadership_errors import ValidationError


def coerce_date(value, field: str) -> date:
    """Return ``value`` as a calendar date.

    Raises:
        ValidationError: If the value is missing or not an ISO calendar date.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{field} is required.")
    if isinstance(value, datetime):
        # No time-of-day component in the ledger
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            raise ValidationError(
                f"{field} must be an ISO calendar date (YYYY-MM-DD), got {value!r}."
            ) from None
    raise ValidationError(f"{field} must be a date, got {type(value).__name__}.")


def coerce_optional_date(value, field: str) -> date | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return coerce_date(value, field)
