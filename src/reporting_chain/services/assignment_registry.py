"""Assignment registry reads.

Positions are maintained by the roster screens of the console; the
leadership engine only looks them up.
"""

from sqlalchemy.orm import Session

from ..database import db
from ..models.position import Position


class AssignmentRegistry:
    """Read-only lookup of Position rows."""

    def __init__(self, session: Session | None = None):
        self._session = session if session is not None else db.session

    def get_position(self, position_id: str) -> Position | None:
        if not position_id:
            return None
        return self._session.get(Position, position_id)

    def list_active_positions(self, scope_id: str | None = None) -> list[Position]:
        """Active positions, optionally restricted to one scope, ordered by id."""
        query = self._session.query(Position).filter(Position.active.is_(True))
        if scope_id is not None:
            query = query.filter(Position.scope_id == scope_id)
        return query.order_by(Position.id.asc()).all()

    def list_positions_in_scope(self, scope_id: str) -> list[Position]:
        """Every position in the scope, active or not."""
        return (
            self._session.query(Position)
            .filter(Position.scope_id == scope_id)
            .order_by(Position.id.asc())
            .all()
        )

    def get_positions(self, position_ids) -> dict[str, Position]:
        ids = {pid for pid in position_ids if pid}
        if not ids:
            return {}
        rows = self._session.query(Position).filter(Position.id.in_(ids)).all()
        return {p.id: p for p in rows}
