"""
Database models.
"""

from .base import Base, TimestampMixin, UUIDMixin, StandardMixin
from .user import User, UserRole
from .athlete import Athlete
from .rbac import Role, Permission, UserPermission, role_permissions, WILDCARD
from .requests import ApprovalRequest, AccessRequest, RequestStatus

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "StandardMixin",
    # Models
    "User",
    "UserRole",
    "Athlete",
    "Role",
    "Permission",
    "UserPermission",
    "role_permissions",
    "WILDCARD",
    "ApprovalRequest",
    "AccessRequest",
    "RequestStatus",
]
