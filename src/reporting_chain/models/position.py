"""Position model."""

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..database import db

if TYPE_CHECKING:
    from .reporting_edge import ReportingEdge


class Position(db.Model):
    """
    Represents an occupied seat (assignment) in the organisation.

    Positions are owned by the assignment registry; the leadership engine only
    reads them. Reporting relationships between positions are recorded as
    ReportingEdge rows rather than as a pointer on the position itself, so the
    full history of who reported to whom is kept.
    """

    __tablename__ = "positions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    scope_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True, index=True
    )
    full_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    title: Mapped[str] = mapped_column(
        String(128), nullable=False, default=""
    )
    affiliation: Mapped[str] = mapped_column(
        String(128), nullable=False, default=""
    )
    active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    # Relationships (reporting ledger)
    edges_as_child: Mapped[list["ReportingEdge"]] = relationship(
        "ReportingEdge",
        foreign_keys="ReportingEdge.child_position_id",
        back_populates="child",
    )
    edges_as_parent: Mapped[list["ReportingEdge"]] = relationship(
        "ReportingEdge",
        foreign_keys="ReportingEdge.parent_position_id",
        back_populates="parent",
    )

    @property
    def position_id(self) -> str:
        return self.id

    def __repr__(self) -> str:
        return f"<Position id={self.id} title={self.title} affiliation={self.affiliation}>"
