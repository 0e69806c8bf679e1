"""
Access request ledger.

A guardian asks the coach of an athlete for access to that athlete's data.
One request should exist per (parent, athlete, coach) triple; this is checked
when a request is opened, not enforced by the store.
"""

from datetime import datetime
from typing import Callable
from uuid import UUID

import structlog

from clubaccess.core.errors import (
    AlreadyProcessed,
    Conflict,
    Forbidden,
    NotFound,
    Outcome,
    ValidationFailed,
)
from clubaccess.core.uow import UnitOfWork
from clubaccess.models.requests import AccessRequest, RequestStatus
from clubaccess.models.user import User, UserRole
from clubaccess.permissions.resolver import PermissionService
from clubaccess.schemas.requests import AccessRequestCreate
from clubaccess.services.base import run_operation
from clubaccess.utils.timezone import utc_now

logger = structlog.get_logger()

TERMINAL_STATUSES = (RequestStatus.APPROVED.value, RequestStatus.REJECTED.value)


class AccessRequestLedger:
    """
    CRUD over access requests, plus the triple-level transitions the
    approval workflow applies inside its own unit of work.

    Usage:
        ledger = AccessRequestLedger(uow_factory)
        outcome = await ledger.create(parent, AccessRequestCreate(
            parent_id=parent.id, athlete_id=athlete.id, coach_id=coach.id,
        ))
    """

    def __init__(self, uow_factory: Callable[[], UnitOfWork]):
        self.uow_factory = uow_factory

    # =========================================================================
    # Triple transitions (caller owns the unit of work)
    # =========================================================================

    async def settle_pending(
        self,
        uow: UnitOfWork,
        parent_id: UUID,
        athlete_id: UUID,
        coach_id: UUID,
        status: RequestStatus,
        *,
        now: datetime | None = None,
    ) -> int:
        """Move every pending request of the triple to status; returns the count."""
        return await uow.access_requests.update_where(
            {
                "parent_id": parent_id,
                "athlete_id": athlete_id,
                "coach_id": coach_id,
                "status": RequestStatus.PENDING.value,
            },
            status=status.value,
            response_date=now or utc_now(),
        )

    async def approve_triple(
        self,
        uow: UnitOfWork,
        parent_id: UUID,
        athlete_id: UUID,
        coach_id: UUID,
        *,
        message: str | None = None,
        now: datetime | None = None,
    ) -> None:
        """
        Approve pending requests of the triple, or record a pre-approved one
        when the triple has no request at all.
        """
        now = now or utc_now()
        existing = await uow.access_requests.for_triple(parent_id, athlete_id, coach_id)
        if not existing:
            await uow.access_requests.add(AccessRequest(
                parent_id=parent_id,
                athlete_id=athlete_id,
                coach_id=coach_id,
                status=RequestStatus.APPROVED.value,
                request_date=now,
                response_date=now,
                message=message,
            ))
            return
        await self.settle_pending(
            uow, parent_id, athlete_id, coach_id, RequestStatus.APPROVED, now=now
        )

    # =========================================================================
    # Public operations
    # =========================================================================

    @staticmethod
    def _can_see(acting: User, request: AccessRequest) -> bool:
        return acting.role == UserRole.SUPERADMIN or acting.id in (request.parent_id, request.coach_id)

    async def create(
        self,
        acting: User,
        data: AccessRequestCreate | dict,
    ) -> Outcome[AccessRequest]:
        async def body(uow: UnitOfWork) -> AccessRequest:
            req = data if isinstance(data, AccessRequestCreate) else AccessRequestCreate.model_validate(data)
            if acting.role != UserRole.SUPERADMIN and acting.id != req.parent_id:
                raise Forbidden("Guardians can only request access for themselves")
            if await uow.athletes.get_by_id(req.athlete_id) is None:
                raise NotFound("Athlete not found")
            if await uow.users.get_by_id(req.coach_id) is None:
                raise NotFound("Coach not found")

            existing = await uow.access_requests.for_triple(req.parent_id, req.athlete_id, req.coach_id)
            if any(r.status != RequestStatus.REJECTED.value for r in existing):
                raise Conflict("An access request for this athlete already exists")

            return await uow.access_requests.add(AccessRequest(
                parent_id=req.parent_id,
                athlete_id=req.athlete_id,
                coach_id=req.coach_id,
                message=req.message,
            ))

        outcome = await run_operation(self.uow_factory, "access_request.create", body)
        if outcome.ok:
            logger.info("Access request opened", request_id=str(outcome.value.id))
        return outcome

    async def get(self, acting: User, request_id: UUID) -> Outcome[AccessRequest]:
        async def body(uow: UnitOfWork) -> AccessRequest:
            request = await uow.access_requests.get_by_id(request_id)
            if request is None:
                raise NotFound("Access request not found")
            if not self._can_see(acting, request):
                raise Forbidden("Not allowed to view this access request")
            return request

        return await run_operation(self.uow_factory, "access_request.get", body)

    async def list_for(self, acting: User) -> Outcome[list[AccessRequest]]:
        """Coaches see requests addressed to them, guardians their own."""
        async def body(uow: UnitOfWork) -> list[AccessRequest]:
            if acting.role == UserRole.COACH:
                return await uow.access_requests.all(coach_id=acting.id)
            if acting.role == UserRole.PARENT:
                return await uow.access_requests.all(parent_id=acting.id)
            if await PermissionService(uow).has_permission(acting, "access_requests.view"):
                return await uow.access_requests.all()
            return []

        return await run_operation(self.uow_factory, "access_request.list", body)

    async def find_for_triple(
        self,
        parent_id: UUID,
        athlete_id: UUID,
        coach_id: UUID,
    ) -> Outcome[AccessRequest | None]:
        """Most recent request for the triple, if any."""
        async def body(uow: UnitOfWork) -> AccessRequest | None:
            requests = await uow.access_requests.for_triple(parent_id, athlete_id, coach_id)
            return requests[0] if requests else None

        return await run_operation(self.uow_factory, "access_request.find", body)

    async def set_status(
        self,
        acting: User,
        request_id: UUID,
        status: RequestStatus | str,
    ) -> Outcome[AccessRequest]:
        """
        Decide a pending request. Needs access_requests.approve, and a
        non-admin must be the addressed coach.
        """
        async def body(uow: UnitOfWork) -> AccessRequest:
            try:
                target = RequestStatus(status)
            except ValueError:
                target = None
            if target is None or target.value not in TERMINAL_STATUSES:
                raise ValidationFailed("Status must be approved or rejected")
            request = await uow.access_requests.get_by_id(request_id, for_update=True)
            if request is None:
                raise NotFound("Access request not found")
            await PermissionService(uow).require(acting, "access_requests.approve")
            if acting.role != UserRole.SUPERADMIN and acting.id != request.coach_id:
                raise Forbidden("Only the addressed coach can decide this request")

            changed = await uow.access_requests.update_where(
                {"id": request.id, "status": RequestStatus.PENDING.value},
                status=target.value,
                response_date=utc_now(),
            )
            if changed == 0:
                raise AlreadyProcessed("Access request already processed")
            await uow.session.refresh(request)
            return request

        outcome = await run_operation(self.uow_factory, "access_request.set_status", body)
        if outcome.ok:
            logger.info("Access request decided", request_id=str(request_id), status=outcome.value.status)
        return outcome

    async def delete(self, acting: User, request_id: UUID) -> Outcome[None]:
        async def body(uow: UnitOfWork) -> None:
            request = await uow.access_requests.get_by_id(request_id)
            if request is None:
                raise NotFound("Access request not found")
            if not self._can_see(acting, request):
                raise Forbidden("Not allowed to delete this access request")
            await uow.access_requests.remove(request)

        return await run_operation(self.uow_factory, "access_request.delete", body)
