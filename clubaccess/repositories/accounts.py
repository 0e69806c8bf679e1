"""
User and athlete repositories.
"""

from datetime import date
from uuid import UUID
from sqlalchemy import Select, select, func

from clubaccess.models.user import User
from clubaccess.models.athlete import Athlete
from .base import BaseRepository


class UserRepository(BaseRepository[User]):
    model = User

    def _base_query(self) -> Select:
        return select(User).order_by(User.created_at.desc())

    async def get_by_email(self, email: str, exclude_id: UUID | None = None) -> User | None:
        """Find a user by normalized email."""
        stmt = select(User).where(User.email == email)
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        result = await self.db.execute(stmt.limit(1))
        return result.scalars().first()


class AthleteRepository(BaseRepository[Athlete]):
    model = Athlete

    def _base_query(self) -> Select:
        return select(Athlete).order_by(Athlete.created_at.desc())

    async def find_duplicate(
        self,
        first_name: str,
        last_name: str,
        date_of_birth: date | None,
    ) -> Athlete | None:
        """Athlete with the same case-insensitive name and date of birth."""
        stmt = select(Athlete).where(
            func.lower(Athlete.first_name) == first_name.strip().lower(),
            func.lower(Athlete.last_name) == last_name.strip().lower(),
        )
        if date_of_birth is None:
            stmt = stmt.where(Athlete.date_of_birth.is_(None))
        else:
            stmt = stmt.where(Athlete.date_of_birth == date_of_birth)
        result = await self.db.execute(stmt.limit(1))
        return result.scalars().first()
