"""
Pytest fixtures for testing.

Provides:
- In-memory SQLite database and unit-of-work factory
- Seeded permission catalog and system roles
- Factory fixtures for users, athletes and requests
- Service fixtures wired to a private hook manager
- Test client with auth helpers
- Mock storage backend
"""

import os

os.environ.setdefault("DB_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("AUTH_BCRYPT_ROUNDS", "4")
os.environ.setdefault("ENVIRONMENT", "testing")

from datetime import date
from typing import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from jose import jwt
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from clubaccess.core.config import settings
from clubaccess.core.hooks import HookManager
from clubaccess.core.uow import SchemaCapabilities, UnitOfWorkFactory
from clubaccess.main import create_app
from clubaccess.models import Base, User, Athlete, ApprovalRequest, AccessRequest
from clubaccess.services.access_requests import AccessRequestLedger
from clubaccess.services.accounts import AccountProvisioningService, hash_password
from clubaccess.services.approvals import ApprovalWorkflow
from clubaccess.services.avatars import AvatarCleaner
from clubaccess.services.rbac import RBACService


# Test database URL (SQLite in-memory for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Fixed "today" for age derivation
TODAY = date(2024, 3, 1)


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
def capabilities() -> SchemaCapabilities:
    return SchemaCapabilities()


@pytest.fixture
def uow_factory(session_factory, capabilities) -> UnitOfWorkFactory:
    return UnitOfWorkFactory(session_factory, capabilities)


@pytest_asyncio.fixture
async def seeded(uow_factory):
    """Permission catalog and system roles written to the database."""
    return (await RBACService(uow_factory).seed_defaults()).unwrap()


# ============ Factory Fixtures ============


class UserFactory:
    """Factory for creating test users."""

    def __init__(self, uow_factory: UnitOfWorkFactory):
        self.uow_factory = uow_factory

    async def create(
        self,
        role: str = "coach",
        email: str | None = None,
        password: str = "secret123",
        first_name: str = "Test",
        last_name: str = "User",
        is_active: bool = True,
        needs_approval: bool = False,
        **extra,
    ) -> User:
        """Create a user in the database."""
        async with self.uow_factory() as uow:
            user = await uow.users.add(User(
                email=email or f"{role}-{uuid4().hex[:8]}@example.com",
                password_hash=hash_password(password),
                first_name=first_name,
                last_name=last_name,
                role=role,
                is_active=is_active,
                needs_approval=needs_approval,
                **extra,
            ))
            await uow.commit()
        return user


class AthleteFactory:
    """Factory for creating test athletes."""

    def __init__(self, uow_factory: UnitOfWorkFactory):
        self.uow_factory = uow_factory

    async def create(
        self,
        first_name: str = "Ana",
        last_name: str | None = None,
        age: int = 12,
        category: str = "U14",
        date_of_birth: date | None = None,
        coach: User | None = None,
        parent: User | None = None,
    ) -> Athlete:
        async with self.uow_factory() as uow:
            athlete = await uow.athletes.add(Athlete(
                first_name=first_name,
                last_name=last_name or f"Athlete{uuid4().hex[:6]}",
                age=age,
                category=category,
                gender="F",
                date_of_birth=date_of_birth,
                coach_id=coach.id if coach else None,
                parent_id=parent.id if parent else None,
            ))
            await uow.commit()
        return athlete


@pytest.fixture
def user_factory(uow_factory) -> UserFactory:
    return UserFactory(uow_factory)


@pytest.fixture
def athlete_factory(uow_factory) -> AthleteFactory:
    return AthleteFactory(uow_factory)


@pytest_asyncio.fixture
async def admin(user_factory, seeded) -> User:
    return await user_factory.create(role="superadmin", email="admin@example.com")


@pytest_asyncio.fixture
async def coach(user_factory, seeded) -> User:
    return await user_factory.create(role="coach", first_name="Carol", last_name="Coach")


@pytest_asyncio.fixture
async def athlete(athlete_factory, coach) -> Athlete:
    return await athlete_factory.create(coach=coach)


async def fetch(uow_factory: UnitOfWorkFactory, model, id):
    """Reload a row in a fresh unit of work."""
    async with uow_factory() as uow:
        entity = await uow.session.get(model, id)
        await uow.commit()
    return entity


async def count_rows(uow_factory: UnitOfWorkFactory, model) -> int:
    async with uow_factory() as uow:
        repo = {
            User: uow.users,
            Athlete: uow.athletes,
            ApprovalRequest: uow.approval_requests,
            AccessRequest: uow.access_requests,
        }[model]
        total = await repo.count()
        await uow.commit()
    return total


async def deactivate_role(uow_factory: UnitOfWorkFactory, name: str) -> None:
    async with uow_factory() as uow:
        role = await uow.roles.get_by_name(name)
        await uow.roles.update(role, is_active=False)
        await uow.commit()


async def deactivate_permission(uow_factory: UnitOfWorkFactory, name: str) -> None:
    async with uow_factory() as uow:
        permission = await uow.permissions.get_by_name(name)
        await uow.permissions.update(permission, is_active=False)
        await uow.commit()


# ============ Services ============


@pytest.fixture
def hook_manager() -> HookManager:
    return HookManager()


@pytest.fixture
def accounts(uow_factory, avatar_cleaner, hook_manager) -> AccountProvisioningService:
    return AccountProvisioningService(
        uow_factory,
        avatar_cleaner=avatar_cleaner,
        hook_manager=hook_manager,
        clock=lambda: TODAY,
    )


@pytest.fixture
def ledger(uow_factory) -> AccessRequestLedger:
    return AccessRequestLedger(uow_factory)


@pytest.fixture
def approvals(uow_factory, ledger, hook_manager) -> ApprovalWorkflow:
    return ApprovalWorkflow(uow_factory, ledger=ledger, hook_manager=hook_manager)


@pytest.fixture
def rbac(uow_factory) -> RBACService:
    return RBACService(uow_factory)


# ============ Mock Implementations ============


class MockStorageBackend:
    """Mock storage backend for testing."""

    def __init__(self):
        self.files: dict[str, bytes] = {}

    async def upload(self, key: str, data: bytes) -> str:
        self.files[key] = data
        return key

    async def delete(self, key: str) -> bool:
        return self.files.pop(key, None) is not None

    async def exists(self, key: str) -> bool:
        return key in self.files


@pytest.fixture
def mock_storage() -> MockStorageBackend:
    return MockStorageBackend()


@pytest.fixture
def avatar_cleaner(mock_storage) -> AvatarCleaner:
    return AvatarCleaner(mock_storage, prefix="avatars")


# ============ HTTP ============


@pytest_asyncio.fixture
async def client(uow_factory, avatar_cleaner) -> AsyncGenerator[AsyncClient, None]:
    """Test client bound to the test database."""
    app = create_app(uow_factory=uow_factory, avatar_cleaner=avatar_cleaner)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


def get_auth_headers(user: User) -> dict[str, str]:
    """Bearer header for any user."""
    token = jwt.encode(
        {"sub": str(user.id)},
        settings.auth.secret_key,
        algorithm=settings.auth.algorithm,
    )
    return {"Authorization": f"Bearer {token}"}
