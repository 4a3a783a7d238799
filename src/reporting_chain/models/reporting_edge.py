"""ReportingEdge model."""

import uuid
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, synonym

from ..database import db

if TYPE_CHECKING:
    from .position import Position


def _new_edge_id() -> str:
    return uuid.uuid4().hex


class ReportingEdge(db.Model):
    """
    One interval during which a child position reported to a parent position.

    The table is an append-mostly ledger: a row is inserted when a leader
    assignment begins and closed (end_date set) exactly once when it ends.
    Rows are never deleted. An edge with end_date NULL is the child's
    currently active reporting line.

    Storage-level invariants:
    - no self-loop (ck_reporting_edges_no_self_loop)
    - end_date >= start_date when set (ck_reporting_edges_end_after_start)
    - at most one open edge per child (uq_reporting_edges_one_active_per_child,
      a partial unique index on end_date IS NULL)
    - (child, parent, start_date) is unique (uq_reporting_edges_natural_key)
    """

    __tablename__ = "reporting_edges"
    __table_args__ = (
        CheckConstraint(
            "child_position_id <> parent_position_id",
            name="ck_reporting_edges_no_self_loop",
        ),
        CheckConstraint(
            "end_date IS NULL OR end_date >= start_date",
            name="ck_reporting_edges_end_after_start",
        ),
        UniqueConstraint(
            "child_position_id", "parent_position_id", "start_date",
            name="uq_reporting_edges_natural_key",
        ),
        Index(
            "uq_reporting_edges_one_active_per_child",
            "child_position_id",
            unique=True,
            postgresql_where=text("end_date IS NULL"),
            sqlite_where=text("end_date IS NULL"),
        ),
        Index("ix_reporting_edges_parent_position_id", "parent_position_id"),
    )

    id: Mapped[str] = mapped_column(
        String(32), primary_key=True, default=_new_edge_id
    )
    child_position_id: Mapped[str] = mapped_column(
        ForeignKey("positions.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    parent_position_id: Mapped[str] = mapped_column(
        ForeignKey("positions.id", ondelete="RESTRICT"), nullable=False
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Audit fields, informational only
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    created_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    updated_by: Mapped[str | None] = mapped_column(String(128), nullable=True)

    edge_id = synonym("id")

    child: Mapped["Position"] = relationship(
        "Position",
        foreign_keys=[child_position_id],
        back_populates="edges_as_child",
    )
    parent: Mapped["Position"] = relationship(
        "Position",
        foreign_keys=[parent_position_id],
        back_populates="edges_as_parent",
    )

    @property
    def is_active(self) -> bool:
        """True while the edge has no end_date."""
        return self.end_date is None

    def __repr__(self) -> str:
        return (
            f"<ReportingEdge id={self.id} child={self.child_position_id} "
            f"parent={self.parent_position_id} start={self.start_date} end={self.end_date}>"
        )
