"""Rank table reads."""

from sqlalchemy.orm import Session

from ..database import db
from ..models.position_title import PositionTitle


class RankTable:
    """Read-only access to the position title rank table."""

    def __init__(self, session: Session | None = None):
        self._session = session if session is not None else db.session

    def list_rank_entries(self) -> list[tuple[str, int]]:
        """(title, sort_order) pairs for active titles that have a sort order."""
        rows = (
            self._session.query(PositionTitle.title, PositionTitle.sort_order)
            .filter(
                PositionTitle.active.is_(True),
                PositionTitle.sort_order.isnot(None),
            )
            .order_by(PositionTitle.sort_order.asc(), PositionTitle.title.asc())
            .all()
        )
        return [(title, sort_order) for title, sort_order in rows]
