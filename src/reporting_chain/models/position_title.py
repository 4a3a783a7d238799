"""PositionTitle model."""

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ..database import db


class PositionTitle(db.Model):
    """
    Rank table entry: a known position title and its relative sort order.

    Whether a higher sort_order means more or less senior is not stored here;
    the eligibility resolver infers it from anchor titles unless the
    direction is configured explicitly.
    """

    __tablename__ = "position_titles"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(
        String(128), nullable=False, unique=True
    )
    sort_order: Mapped[int | None] = mapped_column(Integer, nullable=True)
    active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )

    def __repr__(self) -> str:
        return f"<PositionTitle title={self.title} sort_order={self.sort_order}>"
