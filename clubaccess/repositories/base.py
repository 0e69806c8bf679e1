"""
Base repository with common CRUD operations.
"""

from typing import TypeVar, Generic, Type, Any
from uuid import UUID
from sqlalchemy import Select, select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from clubaccess.models.base import Base

ModelT = TypeVar("ModelT", bound=Base)


def as_uuid(value: UUID | str) -> UUID:
    """Coerce a string id to UUID (ValueError on garbage)."""
    return value if isinstance(value, UUID) else UUID(str(value))


def parse_id(value: UUID | str | None) -> UUID | None:
    """Like as_uuid, but None for a malformed id (it cannot name any row)."""
    if value is None:
        return None
    try:
        return as_uuid(value)
    except ValueError:
        return None


class BaseRepository(Generic[ModelT]):
    """
    Base repository providing common CRUD operations.

    Repositories never commit; the surrounding UnitOfWork owns the
    transaction.

    Usage:
        class AthleteRepository(BaseRepository[Athlete]):
            model = Athlete

        repo = AthleteRepository(session)
        athlete = await repo.get_by_id(athlete_id)
    """

    model: Type[ModelT]

    def __init__(self, db: AsyncSession):
        self.db = db

    def _base_query(self) -> Select:
        """Base query - override to add default filters or ordering."""
        return select(self.model)

    async def get_by_id(self, id: UUID | str, *, for_update: bool = False) -> ModelT | None:
        """Get entity by ID, optionally locking the row."""
        entity_id = parse_id(id)
        if entity_id is None:
            return None
        stmt = self._base_query().where(self.model.id == entity_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_ids(self, ids: list[UUID]) -> list[ModelT]:
        """Get multiple entities by IDs."""
        if not ids:
            return []
        stmt = self._base_query().where(self.model.id.in_(ids))
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_one(self, **filters) -> ModelT | None:
        """Get first entity matching filters."""
        stmt = self._base_query()
        for field, value in filters.items():
            stmt = stmt.where(getattr(self.model, field) == value)
        result = await self.db.execute(stmt.limit(1))
        return result.scalars().first()

    async def exists(self, **filters) -> bool:
        """Check if entity exists."""
        return await self.count(**filters) > 0

    async def count(self, **filters) -> int:
        """Count entities matching filters."""
        stmt = select(func.count()).select_from(self.model)
        for field, value in filters.items():
            stmt = stmt.where(getattr(self.model, field) == value)
        return await self.db.scalar(stmt) or 0

    async def all(self, **filters) -> list[ModelT]:
        """Get all entities matching filters."""
        stmt = self._base_query()
        for field, value in filters.items():
            if value is not None:
                stmt = stmt.where(getattr(self.model, field) == value)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def add(self, entity: ModelT) -> ModelT:
        """Insert a new entity and flush so its id is available."""
        self.db.add(entity)
        await self.db.flush()
        return entity

    async def update(self, entity: ModelT, **data: Any) -> ModelT:
        """Set fields on a loaded entity and flush."""
        for field, value in data.items():
            if hasattr(entity, field):
                setattr(entity, field, value)
        await self.db.flush()
        return entity

    async def update_where(self, filters: dict[str, Any], **data: Any) -> int:
        """
        Conditional bulk update; returns the number of rows changed.

        Used as a compare-and-set: a zero rowcount means another transaction
        got there first.
        """
        stmt = (
            update(self.model)
            .where(*[getattr(self.model, k) == v for k, v in filters.items()])
            .values(**data)
        )
        result = await self.db.execute(stmt)
        return result.rowcount

    async def remove(self, entity: ModelT) -> None:
        """Delete a loaded entity."""
        await self.db.delete(entity)
        await self.db.flush()

    async def delete(self, id: UUID | str) -> bool:
        """Delete entity by ID (hard delete)."""
        entity = await self.get_by_id(id)
        if not entity:
            return False
        await self.remove(entity)
        return True

