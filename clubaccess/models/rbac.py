"""
RBAC Models - Roles, Permissions, and direct user grants.

- Role: named, reusable permission bundle (system roles cannot be deleted)
- Permission: dot-namespaced capability name, e.g. "athletes.edit"
- UserPermission: direct grant to one user, optionally scoped to a resource

Usage:
    coach = Role(name="coach", is_system=True)
    perm = Permission(name="athletes.view")
    coach.permissions.append(perm)

    # Scoped grant
    UserPermission(user_id=user.id, permission_id=perm.id,
                   resource_type="athlete", resource_id=str(athlete.id))
"""

from datetime import datetime
from uuid import UUID
from sqlalchemy import (
    String, Boolean, ForeignKey, DateTime, Table, Column, Uuid, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clubaccess.utils.timezone import utc_now, to_utc
from .base import Base, StandardMixin

WILDCARD = "*"


# Many-to-many relationship between Role and Permission
role_permissions = Table(
    "role_permissions",
    Base.metadata,
    Column("role_id", Uuid(as_uuid=True), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column("permission_id", Uuid(as_uuid=True), ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True),
)


class Role(Base, StandardMixin):
    """Role definition."""

    __tablename__ = "roles"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_system: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    permissions: Mapped[list["Permission"]] = relationship(
        "Permission",
        secondary=role_permissions,
        lazy="selectin",
    )

    @property
    def permission_names(self) -> set[str]:
        """Names of the role's permissions (inactive ones excluded)."""
        return {p.name for p in self.permissions if p.is_active}

    def __repr__(self) -> str:
        return f"<Role {self.name}>"


class Permission(Base, StandardMixin):
    """Permission definition."""

    __tablename__ = "permissions"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Permission {self.name}>"


class UserPermission(Base, StandardMixin):
    """
    Direct permission grant.

    An unscoped grant (resource_type/resource_id both null) applies only to
    unscoped checks; a scoped grant applies only to checks on that resource.
    """

    __tablename__ = "user_permissions"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "permission_id", "resource_type", "resource_id",
            name="uq_user_permission_scope",
        ),
    )

    user_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    permission_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("permissions.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Optional scoping
    resource_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    resource_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    granted_by: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    granted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    @property
    def is_scoped(self) -> bool:
        return self.resource_id is not None

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check if this grant has passed its expiry."""
        if self.expires_at is None:
            return False
        return to_utc(self.expires_at) <= (now or utc_now())

    def __repr__(self) -> str:
        scope = f" ({self.resource_type}:{self.resource_id})" if self.is_scoped else ""
        return f"<UserPermission user={self.user_id} perm={self.permission_id}{scope}>"
