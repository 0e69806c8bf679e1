"""
Unit of work over an AsyncSession.

Every public service operation runs inside exactly one UnitOfWork. Nothing is
committed unless commit() is called; leaving the block without a commit (or
with an exception) rolls back every write made through the repositories.

Usage:
    uow_factory = UnitOfWorkFactory(async_session_factory, capabilities)

    async with uow_factory() as uow:
        user = await uow.users.get_by_id(user_id)
        user.is_active = True
        await uow.commit()
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clubaccess.core.config import SchemaSettings
from clubaccess.repositories.accounts import UserRepository, AthleteRepository
from clubaccess.repositories.requests import ApprovalRequestRepository, AccessRequestRepository
from clubaccess.repositories.rbac import RoleRepository, PermissionRepository, GrantRepository


@dataclass(frozen=True)
class SchemaCapabilities:
    """
    Optional columns the connected database is known to have.

    Built once at startup and injected into every unit of work, so services
    branch on an explicit descriptor rather than inspecting the schema.
    """
    approval_request_context: bool = True
    user_avatar: bool = True

    @classmethod
    def from_settings(cls, schema: SchemaSettings) -> "SchemaCapabilities":
        return cls(
            approval_request_context=schema.approval_request_context,
            user_avatar=schema.user_avatar,
        )


class UnitOfWork:
    """One transaction plus the repositories bound to it."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        capabilities: SchemaCapabilities | None = None,
    ):
        self._session_factory = session_factory
        self.capabilities = capabilities or SchemaCapabilities()
        self.session: AsyncSession | None = None
        self._committed = False

    async def __aenter__(self) -> "UnitOfWork":
        self.session = self._session_factory()
        self.users = UserRepository(self.session)
        self.athletes = AthleteRepository(self.session)
        self.approval_requests = ApprovalRequestRepository(self.session)
        self.access_requests = AccessRequestRepository(self.session)
        self.roles = RoleRepository(self.session)
        self.permissions = PermissionRepository(self.session)
        self.grants = GrantRepository(self.session)
        await self.session.begin()
        return self

    def _active_session(self) -> AsyncSession:
        if self.session is None:
            raise RuntimeError("UnitOfWork used outside its async with block")
        return self.session

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        session = self._active_session()
        try:
            if exc_type is not None or not self._committed:
                await self.rollback()
        finally:
            await session.close()

    async def commit(self) -> None:
        await self._active_session().commit()
        self._committed = True

    async def rollback(self) -> None:
        await self._active_session().rollback()


class UnitOfWorkFactory:
    """Callable producing fresh units of work sharing one capability descriptor."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        capabilities: SchemaCapabilities | None = None,
    ):
        self.session_factory = session_factory
        self.capabilities = capabilities or SchemaCapabilities()

    def __call__(self) -> UnitOfWork:
        return UnitOfWork(self.session_factory, self.capabilities)
