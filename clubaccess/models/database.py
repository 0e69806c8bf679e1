"""
Database connection and session management.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)

from clubaccess.core.config import settings


def create_engine(url: str | None = None) -> AsyncEngine:
    """Create the async engine from settings."""
    url = url or settings.database.url
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=settings.database.echo)
    return create_async_engine(
        url,
        echo=settings.database.echo,
        pool_size=settings.database.pool_size,
        max_overflow=settings.database.pool_overflow,
        pool_timeout=settings.database.pool_timeout,
    )


# Create async engine
engine = create_engine()

# Session factory
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def init_db() -> None:
    """Initialize database (create tables)."""
    from .base import Base
    from . import user, athlete, rbac, requests  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    await engine.dispose()
