"""
User (actor) model.
"""

from datetime import datetime
from uuid import UUID
from sqlalchemy import String, Boolean, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, StandardMixin


class UserRole:
    """Built-in role names."""
    SUPERADMIN = "superadmin"
    COACH = "coach"
    PARENT = "parent"
    ATHLETE = "athlete"

    SYSTEM = (SUPERADMIN, COACH, PARENT, ATHLETE)


class User(Base, StandardMixin):
    """Account of an authenticated principal."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Role: one of UserRole.SYSTEM or a custom role name; role_id points at a
    # custom Role whose permission set takes precedence.
    role: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    role_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("roles.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Status
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    needs_approval: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    approved_by: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Athlete-role accounts own exactly one athlete profile
    athlete_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("athletes.id", ondelete="SET NULL", use_alter=True, name="fk_users_athlete_id"),
        nullable=True,
    )

    # Profile
    avatar_path: Mapped[str | None] = mapped_column(String(500), nullable=True)

    @property
    def is_superadmin(self) -> bool:
        return self.role == UserRole.SUPERADMIN

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"
