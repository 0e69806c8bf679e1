"""
Role, permission and grant repositories.
"""

from uuid import UUID
from sqlalchemy import Select, select

from clubaccess.models.rbac import Role, Permission, UserPermission
from .base import BaseRepository


class RoleRepository(BaseRepository[Role]):
    model = Role

    def _base_query(self) -> Select:
        return select(Role).order_by(Role.name)

    async def get_by_name(self, name: str) -> Role | None:
        return await self.get_one(name=name)


class PermissionRepository(BaseRepository[Permission]):
    model = Permission

    def _base_query(self) -> Select:
        return select(Permission).order_by(Permission.name)

    async def get_by_name(self, name: str) -> Permission | None:
        return await self.get_one(name=name)

    async def get_by_names(self, names: list[str]) -> list[Permission]:
        if not names:
            return []
        result = await self.db.execute(select(Permission).where(Permission.name.in_(names)))
        return list(result.scalars().all())


class GrantRepository(BaseRepository[UserPermission]):
    model = UserPermission

    def _base_query(self) -> Select:
        return select(UserPermission).order_by(UserPermission.granted_at.desc())

    async def for_user(self, user_id: UUID) -> list[UserPermission]:
        return await self.all(user_id=user_id)
