"""
Permission resolution.

resolve() decides whether one actor holds one permission, optionally on one
resource. It is a pure function over already-loaded rows:

1. No actor: deny. Superadmin: allow, even for unregistered names.
2. Inactive actor: deny (before any lookup).
3. The actor's custom role (role_id), when active, holding the name or "*".
4. Otherwise the role named after actor.role, when active.
5. Otherwise the actor's direct grants. A grant matches when its permission
   is active, has exactly the requested name, is not expired, and its scope
   equals the requested scope: unscoped grants only satisfy unscoped checks,
   scoped grants only satisfy checks on that same resource.

Names ending in ".own" / ".all" fall back to the unsuffixed name, but only
after the exact name failed every step above.

PermissionService loads the rows through a UnitOfWork and delegates to
resolve().
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Sequence
from uuid import UUID

import structlog

from clubaccess.core.errors import Forbidden
from clubaccess.models.rbac import Permission, Role, UserPermission, WILDCARD
from clubaccess.models.user import User, UserRole
from clubaccess.utils.timezone import utc_now

logger = structlog.get_logger()

SCOPE_SUFFIXES = (".own", ".all")


def base_name(permission_name: str) -> str | None:
    """Unsuffixed name for ".own"/".all" permissions, else None."""
    for suffix in SCOPE_SUFFIXES:
        if permission_name.endswith(suffix) and len(permission_name) > len(suffix):
            return permission_name[: -len(suffix)]
    return None


def _role_grants(role: Role | None, permission_name: str) -> bool:
    if role is None or not role.is_active:
        return False
    names = role.permission_names
    return WILDCARD in names or permission_name in names


def _find_roles(actor: Any, roles: Iterable[Role]) -> tuple[Role | None, Role | None]:
    """(custom role by role_id, role named after actor.role)."""
    custom = named = None
    role_id = getattr(actor, "role_id", None)
    for role in roles:
        if role_id is not None and role.id == role_id:
            custom = role
        if role.name == actor.role:
            named = role
    return custom, named


def _grant_matches(
    grant: UserPermission,
    permission: Permission | None,
    permission_name: str,
    resource_id: str | None,
    now: datetime,
) -> bool:
    if permission is None or not permission.is_active:
        return False
    if permission.name != permission_name:
        return False
    if grant.is_expired(now):
        return False
    if resource_id is None:
        return grant.resource_id is None
    return grant.resource_id is not None and str(grant.resource_id) == resource_id


def _resolve_name(
    actor: Any,
    permission_name: str,
    grants: Sequence[UserPermission],
    permissions_by_id: dict[UUID, Permission],
    custom_role: Role | None,
    named_role: Role | None,
    resource_id: str | None,
    now: datetime,
) -> bool:
    if _role_grants(custom_role, permission_name):
        return True
    if _role_grants(named_role, permission_name):
        return True

    for grant in grants:
        if grant.user_id != actor.id:
            continue
        permission = permissions_by_id.get(grant.permission_id)
        if _grant_matches(grant, permission, permission_name, resource_id, now):
            return True
    return False


def resolve(
    actor: Any,
    permission_name: str,
    grants: Sequence[UserPermission],
    permissions: Sequence[Permission],
    roles: Sequence[Role],
    resource_id: Any = None,
    *,
    now: datetime | None = None,
) -> bool:
    """
    Decide whether actor holds permission_name.

    Args:
        actor: User-like object (id, role, role_id, is_active) or None
        permission_name: Dot-namespaced permission, e.g. "athletes.edit"
        grants: The actor's direct grants
        permissions: Permission rows referenced by the grants
        roles: Candidate roles (the custom role and/or the named role)
        resource_id: Optional resource the check is scoped to
        now: Clock override for grant expiry

    Returns:
        True when access holds
    """
    if actor is None:
        return False
    if actor.role == UserRole.SUPERADMIN:
        return True
    if not actor.is_active:
        return False

    now = now or utc_now()
    scope = str(resource_id) if resource_id is not None else None
    permissions_by_id = {p.id: p for p in permissions}
    custom_role, named_role = _find_roles(actor, roles)

    candidates = [permission_name]
    fallback = base_name(permission_name)
    if fallback:
        candidates.append(fallback)

    for name in candidates:
        if _resolve_name(
            actor, name, grants, permissions_by_id,
            custom_role, named_role, scope, now,
        ):
            return True
    return False


def effective_permissions(
    actor: Any,
    grants: Sequence[UserPermission],
    permissions: Sequence[Permission],
    roles: Sequence[Role],
    *,
    now: datetime | None = None,
) -> set[str]:
    """
    Every permission name the actor holds without a resource scope.

    Superadmins get {"*"}; inactive actors get nothing.
    """
    if actor is None:
        return set()
    if actor.role == UserRole.SUPERADMIN:
        return {WILDCARD}
    if not actor.is_active:
        return set()

    now = now or utc_now()
    custom_role, named_role = _find_roles(actor, roles)
    names: set[str] = set()
    for role in (custom_role, named_role):
        if role is not None and role.is_active:
            names |= role.permission_names

    permissions_by_id = {p.id: p for p in permissions}
    for grant in grants:
        permission = permissions_by_id.get(grant.permission_id)
        if grant.user_id == actor.id and permission is not None and _grant_matches(
            grant, permission, permission.name, None, now
        ):
            names.add(permission.name)
    return names


class PermissionService:
    """
    Loads an actor's roles and grants through a unit of work and resolves
    permissions against them.

    Usage:
        async with uow_factory() as uow:
            perms = PermissionService(uow)
            await perms.require(actor, "users.create")
    """

    def __init__(self, uow: Any):
        self.uow = uow

    async def _load(self, actor: User) -> tuple[list[UserPermission], list[Permission], list[Role]]:
        grants = await self.uow.grants.for_user(actor.id)
        permissions = await self.uow.permissions.get_by_ids(
            list({g.permission_id for g in grants})
        )
        roles: list[Role] = []
        if actor.role_id is not None:
            custom = await self.uow.roles.get_by_id(actor.role_id)
            if custom is not None:
                roles.append(custom)
        named = await self.uow.roles.get_by_name(actor.role)
        if named is not None:
            roles.append(named)
        return grants, permissions, roles

    async def has_permission(
        self,
        actor: User | None,
        permission_name: str,
        resource_id: Any = None,
    ) -> bool:
        if actor is None:
            return False
        if actor.role == UserRole.SUPERADMIN:
            return True
        if not actor.is_active:
            return False
        grants, permissions, roles = await self._load(actor)
        return resolve(actor, permission_name, grants, permissions, roles, resource_id)

    async def require(
        self,
        actor: User | None,
        permission_name: str,
        resource_id: Any = None,
    ) -> None:
        """Raise Forbidden unless actor holds the permission."""
        if not await self.has_permission(actor, permission_name, resource_id):
            logger.info(
                "Permission denied",
                permission=permission_name,
                actor_id=str(actor.id) if actor else None,
                resource_id=str(resource_id) if resource_id is not None else None,
            )
            raise Forbidden(f"Missing permission: {permission_name}")

    async def effective_permissions(self, actor: User | None) -> set[str]:
        if actor is None:
            return set()
        if actor.role == UserRole.SUPERADMIN:
            return {WILDCARD}
        if not actor.is_active:
            return set()
        grants, permissions, roles = await self._load(actor)
        return effective_permissions(actor, grants, permissions, roles)
