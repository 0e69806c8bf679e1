"""
Approval and access request repositories.
"""

from uuid import UUID
from sqlalchemy import Select, select

from clubaccess.models.requests import ApprovalRequest, AccessRequest, RequestStatus
from .base import BaseRepository


class ApprovalRequestRepository(BaseRepository[ApprovalRequest]):
    model = ApprovalRequest

    def _base_query(self) -> Select:
        return select(ApprovalRequest).order_by(ApprovalRequest.request_date.desc())


class AccessRequestRepository(BaseRepository[AccessRequest]):
    model = AccessRequest

    def _base_query(self) -> Select:
        return select(AccessRequest).order_by(AccessRequest.request_date.desc())

    async def for_triple(
        self,
        parent_id: UUID,
        athlete_id: UUID,
        coach_id: UUID,
    ) -> list[AccessRequest]:
        """All requests for one (parent, athlete, coach) triple."""
        return await self.all(parent_id=parent_id, athlete_id=athlete_id, coach_id=coach_id)

    async def latest_pending_for_parent(self, parent_id: UUID) -> AccessRequest | None:
        """Most recent pending request opened by a guardian."""
        stmt = (
            self._base_query()
            .where(AccessRequest.parent_id == parent_id)
            .where(AccessRequest.status == RequestStatus.PENDING.value)
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()
