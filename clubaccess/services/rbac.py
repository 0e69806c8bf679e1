"""
RBAC Service - Manage roles, permissions, and direct grants.

Usage:
    service = RBACService(uow_factory)

    # Write the permission catalog and system roles (idempotent)
    await service.seed_defaults()

    # Create a custom role
    outcome = await service.create_role(admin, RoleCreate(
        name="assistant_coach",
        permissions=["athletes.view", "results.view"],
    ))

    # Grant one permission on one athlete
    await service.grant_permission(admin, GrantCreate(
        user_id=user.id,
        permission_id=perm.id,
        resource_type="athlete",
        resource_id=str(athlete.id),
    ))
"""

from typing import Callable
from uuid import UUID

import structlog

from clubaccess.core.errors import Conflict, Forbidden, NotFound, Outcome, ValidationFailed
from clubaccess.core.uow import UnitOfWork
from clubaccess.models.rbac import Permission, Role, UserPermission, WILDCARD
from clubaccess.models.user import User
from clubaccess.permissions.catalog import PERMISSIONS, ROLE_DEFAULTS, ROLE_DISPLAY_NAMES
from clubaccess.permissions.resolver import PermissionService
from clubaccess.schemas.rbac import GrantCreate, PermissionCreate, RoleCreate, RoleUpdate
from clubaccess.services.base import run_operation

logger = structlog.get_logger()


class RBACService:
    """
    Service for managing roles, permissions and grants.
    """

    def __init__(self, uow_factory: Callable[[], UnitOfWork]):
        self.uow_factory = uow_factory

    async def _permissions_for(self, uow: UnitOfWork, names: list[str]) -> list[Permission]:
        """Permission rows for names; unknown names are rejected."""
        unique = sorted(set(names))
        found = await uow.permissions.get_by_names(unique)
        missing = set(unique) - {p.name for p in found}
        if missing:
            raise ValidationFailed(f"Unknown permissions: {', '.join(sorted(missing))}")
        return found

    # ============================================================
    # SEEDING
    # ============================================================

    async def seed_defaults(self) -> Outcome[list[Role]]:
        """
        Write the permission catalog, the wildcard and one system role per
        default set. Existing rows are left as they are.
        """
        async def body(uow: UnitOfWork) -> list[Role]:
            existing = {p.name: p for p in await uow.permissions.all()}
            for spec in PERMISSIONS:
                if spec.name not in existing:
                    existing[spec.name] = await uow.permissions.add(
                        Permission(name=spec.name, description=spec.description)
                    )
            if WILDCARD not in existing:
                existing[WILDCARD] = await uow.permissions.add(
                    Permission(name=WILDCARD, description="All permissions")
                )

            roles = []
            for role_name, names in ROLE_DEFAULTS.items():
                role = await uow.roles.get_by_name(role_name)
                if role is None:
                    role = await uow.roles.add(Role(
                        name=role_name,
                        display_name=ROLE_DISPLAY_NAMES.get(role_name),
                        is_system=True,
                        permissions=[existing[n] for n in names],
                    ))
                    logger.info("Seeded system role", role=role_name, permissions=len(names))
                roles.append(role)
            return roles

        return await run_operation(self.uow_factory, "rbac.seed", body)

    # ============================================================
    # ROLE MANAGEMENT
    # ============================================================

    async def list_roles(self, acting: User) -> Outcome[list[Role]]:
        async def body(uow: UnitOfWork) -> list[Role]:
            await PermissionService(uow).require(acting, "roles.view")
            return await uow.roles.all()

        return await run_operation(self.uow_factory, "rbac.list_roles", body)

    async def create_role(self, acting: User, data: RoleCreate | dict) -> Outcome[Role]:
        """Create a custom role with the named permissions."""
        async def body(uow: UnitOfWork) -> Role:
            await PermissionService(uow).require(acting, "roles.manage")
            payload = data if isinstance(data, RoleCreate) else RoleCreate.model_validate(data)
            if await uow.roles.get_by_name(payload.name):
                raise Conflict(f"Role {payload.name!r} already exists")
            return await uow.roles.add(Role(
                name=payload.name,
                display_name=payload.display_name,
                description=payload.description,
                is_active=payload.is_active,
                is_system=False,
                permissions=await self._permissions_for(uow, payload.permissions),
            ))

        outcome = await run_operation(self.uow_factory, "rbac.create_role", body)
        if outcome.ok:
            logger.info("Role created", role=outcome.value.name)
        return outcome

    async def update_role(self, acting: User, role_id: UUID, data: RoleUpdate | dict) -> Outcome[Role]:
        async def body(uow: UnitOfWork) -> Role:
            await PermissionService(uow).require(acting, "roles.manage")
            payload = data if isinstance(data, RoleUpdate) else RoleUpdate.model_validate(data)
            role = await uow.roles.get_by_id(role_id, for_update=True)
            if role is None:
                raise NotFound("Role not found")

            fields = payload.model_dump(exclude_unset=True)
            names = fields.pop("permissions", None)
            if names is not None:
                role.permissions = await self._permissions_for(uow, names)
            return await uow.roles.update(role, **fields)

        return await run_operation(self.uow_factory, "rbac.update_role", body)

    async def delete_role(self, acting: User, role_id: UUID) -> Outcome[None]:
        """Delete a custom role. System roles cannot be deleted."""
        async def body(uow: UnitOfWork) -> None:
            await PermissionService(uow).require(acting, "roles.manage")
            role = await uow.roles.get_by_id(role_id)
            if role is None:
                raise NotFound("Role not found")
            if role.is_system:
                raise Forbidden("System roles cannot be deleted")
            await uow.users.update_where({"role_id": role.id}, role_id=None)
            await uow.roles.remove(role)

        return await run_operation(self.uow_factory, "rbac.delete_role", body)

    # ============================================================
    # PERMISSIONS
    # ============================================================

    async def list_permissions(self, acting: User) -> Outcome[list[Permission]]:
        async def body(uow: UnitOfWork) -> list[Permission]:
            await PermissionService(uow).require(acting, "permissions.view")
            return await uow.permissions.all()

        return await run_operation(self.uow_factory, "rbac.list_permissions", body)

    async def create_permission(self, acting: User, data: PermissionCreate | dict) -> Outcome[Permission]:
        async def body(uow: UnitOfWork) -> Permission:
            await PermissionService(uow).require(acting, "permissions.manage")
            payload = data if isinstance(data, PermissionCreate) else PermissionCreate.model_validate(data)
            if await uow.permissions.get_by_name(payload.name):
                raise Conflict(f"Permission {payload.name!r} already exists")
            return await uow.permissions.add(
                Permission(name=payload.name, description=payload.description)
            )

        return await run_operation(self.uow_factory, "rbac.create_permission", body)

    async def set_permission_active(
        self,
        acting: User,
        permission_id: UUID,
        is_active: bool,
    ) -> Outcome[Permission]:
        """Inactive permissions stop granting access everywhere they are referenced."""
        async def body(uow: UnitOfWork) -> Permission:
            await PermissionService(uow).require(acting, "permissions.manage")
            permission = await uow.permissions.get_by_id(permission_id)
            if permission is None:
                raise NotFound("Permission not found")
            return await uow.permissions.update(permission, is_active=is_active)

        return await run_operation(self.uow_factory, "rbac.set_permission_active", body)

    # ============================================================
    # DIRECT GRANTS
    # ============================================================

    async def grant_permission(self, acting: User, data: GrantCreate | dict) -> Outcome[UserPermission]:
        """Grant one permission to one user, optionally scoped and expiring."""
        async def body(uow: UnitOfWork) -> UserPermission:
            await PermissionService(uow).require(acting, "permissions.manage")
            payload = data if isinstance(data, GrantCreate) else GrantCreate.model_validate(data)
            if (payload.resource_type is None) != (payload.resource_id is None):
                raise ValidationFailed("resource_type and resource_id go together")
            if await uow.users.get_by_id(payload.user_id) is None:
                raise NotFound("User not found")
            if await uow.permissions.get_by_id(payload.permission_id) is None:
                raise NotFound("Permission not found")
            if await uow.grants.exists(
                user_id=payload.user_id,
                permission_id=payload.permission_id,
                resource_type=payload.resource_type,
                resource_id=payload.resource_id,
            ):
                raise Conflict("Grant already exists")

            return await uow.grants.add(UserPermission(
                user_id=payload.user_id,
                permission_id=payload.permission_id,
                resource_type=payload.resource_type,
                resource_id=payload.resource_id,
                expires_at=payload.expires_at,
                granted_by=acting.id,
            ))

        outcome = await run_operation(self.uow_factory, "rbac.grant", body)
        if outcome.ok:
            logger.info(
                "Permission granted",
                user_id=str(outcome.value.user_id),
                permission_id=str(outcome.value.permission_id),
                resource_id=outcome.value.resource_id,
            )
        return outcome

    async def revoke_permission(self, acting: User, grant_id: UUID) -> Outcome[None]:
        async def body(uow: UnitOfWork) -> None:
            await PermissionService(uow).require(acting, "permissions.manage")
            if not await uow.grants.delete(grant_id):
                raise NotFound("Grant not found")

        return await run_operation(self.uow_factory, "rbac.revoke", body)

    async def list_grants(self, acting: User, user_id: UUID) -> Outcome[list[UserPermission]]:
        async def body(uow: UnitOfWork) -> list[UserPermission]:
            if acting.id != user_id:
                await PermissionService(uow).require(acting, "permissions.view")
            return await uow.grants.for_user(user_id)

        return await run_operation(self.uow_factory, "rbac.list_grants", body)
