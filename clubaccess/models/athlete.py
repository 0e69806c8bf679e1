"""
Athlete profile model.
"""

from datetime import date
from uuid import UUID
from sqlalchemy import String, Integer, Date, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, StandardMixin


class Athlete(Base, StandardMixin):
    """
    Athlete profile.

    Age and category are derived from the date of birth at creation time.
    An athlete has at most one owning coach and one linked guardian.
    """

    __tablename__ = "athletes"

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    age: Mapped[int] = mapped_column(Integer, nullable=False)
    category: Mapped[str] = mapped_column(String(10), nullable=False)
    gender: Mapped[str] = mapped_column(String(1), nullable=False, default="M")
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)

    coach_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    parent_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<Athlete {self.first_name} {self.last_name} {self.category}>"
