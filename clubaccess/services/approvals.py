"""
Approval workflow.

An ApprovalRequest gates a self-registered account. It starts pending and
moves exactly once to approved or rejected:

    pending --approve--> approved
    pending --reject---> rejected

Approving activates the user. For a guardian, approval also settles the
access request for the athlete named in the request context (or, when the
request has no context, in the guardian's latest pending access request).

The status flip is a compare-and-set on status = 'pending', so of two
concurrent reviewers exactly one succeeds and the other gets AlreadyProcessed.
"""

from typing import Callable
from uuid import UUID

import structlog

from clubaccess.core.errors import AlreadyProcessed, Forbidden, NotFound, Outcome
from clubaccess.core.hooks import HookManager, hooks as default_hooks
from clubaccess.core.uow import UnitOfWork
from clubaccess.models.requests import ApprovalRequest, RequestStatus
from clubaccess.models.user import User, UserRole
from clubaccess.permissions.resolver import PermissionService
from clubaccess.services.access_requests import AccessRequestLedger
from clubaccess.services.base import run_operation
from clubaccess.utils.timezone import utc_now

logger = structlog.get_logger()

REVIEW_PERMISSION = "approval_requests.approve"


class ApprovalWorkflow:
    """
    Reviews account approval requests.

    Usage:
        workflow = ApprovalWorkflow(uow_factory)
        outcome = await workflow.approve(admin, request_id)
        if outcome.kind == ErrorKind.ALREADY_PROCESSED:
            ...
    """

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        *,
        ledger: AccessRequestLedger | None = None,
        hook_manager: HookManager | None = None,
    ):
        self.uow_factory = uow_factory
        self.ledger = ledger or AccessRequestLedger(uow_factory)
        self.hooks = hook_manager or default_hooks

    async def _effective_context(
        self,
        uow: UnitOfWork,
        request: ApprovalRequest,
    ) -> tuple[UUID | None, UUID | None]:
        """(coach_id, athlete_id) of the request, filled from the guardian's latest pending access request."""
        coach_id = request.coach_id if uow.capabilities.approval_request_context else None
        athlete_id = request.athlete_id if uow.capabilities.approval_request_context else None
        if request.requested_role == UserRole.PARENT and (coach_id is None or athlete_id is None):
            pending = await uow.access_requests.latest_pending_for_parent(request.user_id)
            if pending is not None:
                coach_id = coach_id or pending.coach_id
                athlete_id = athlete_id or pending.athlete_id
        return coach_id, athlete_id

    async def _authorize(
        self,
        uow: UnitOfWork,
        acting: User,
        request: ApprovalRequest,
        coach_id: UUID | None,
    ) -> None:
        """Reviewers need approval_requests.approve; non-admins only on guardian requests naming them."""
        await PermissionService(uow).require(acting, REVIEW_PERMISSION)
        if acting.role == UserRole.SUPERADMIN:
            return
        if request.requested_role == UserRole.PARENT and coach_id is not None and acting.id == coach_id:
            return
        raise Forbidden("Not allowed to review this request")

    @staticmethod
    async def _context_exists(uow: UnitOfWork, coach_id: UUID, athlete_id: UUID) -> bool:
        """Athlete and coach may have been deleted since signup."""
        return (
            await uow.athletes.get_by_id(athlete_id) is not None
            and await uow.users.get_by_id(coach_id) is not None
        )

    async def _load_pending(self, uow: UnitOfWork, request_id: UUID) -> ApprovalRequest:
        request = await uow.approval_requests.get_by_id(request_id, for_update=True)
        if request is None:
            raise NotFound("Approval request not found")
        if not request.is_pending:
            raise AlreadyProcessed(f"Request already {request.status}")
        return request

    async def _flip(self, uow: UnitOfWork, request: ApprovalRequest, **values) -> None:
        changed = await uow.approval_requests.update_where(
            {"id": request.id, "status": RequestStatus.PENDING.value},
            **values,
        )
        if changed == 0:
            raise AlreadyProcessed("Request already processed")

    async def approve(self, acting: User, request_id: UUID) -> Outcome[ApprovalRequest]:
        """
        Approve a pending request and activate its user.

        Returns:
            Outcome with the updated request; NotFound, AlreadyProcessed or
            Forbidden when a guard fails
        """
        async def body(uow: UnitOfWork) -> ApprovalRequest:
            request = await self._load_pending(uow, request_id)
            coach_id, athlete_id = await self._effective_context(uow, request)
            await self._authorize(uow, acting, request, coach_id)

            user = await uow.users.get_by_id(request.user_id, for_update=True)
            if user is None:
                raise NotFound("User not found")
            if user.is_active and not user.needs_approval:
                raise AlreadyProcessed("User is already approved")

            now = utc_now()
            await self._flip(
                uow,
                request,
                status=RequestStatus.APPROVED.value,
                response_date=now,
                approved_by=acting.id,
            )
            await uow.users.update(
                user,
                is_active=True,
                needs_approval=False,
                approved_by=acting.id,
                approved_at=now,
            )

            if request.requested_role == UserRole.PARENT and coach_id and athlete_id:
                if await self._context_exists(uow, coach_id, athlete_id):
                    notes = request.approval_notes if uow.capabilities.approval_request_context else None
                    await self.ledger.approve_triple(
                        uow, user.id, athlete_id, coach_id, message=notes, now=now
                    )
                else:
                    logger.warning(
                        "Approval context no longer exists, no access request recorded",
                        request_id=str(request.id),
                        coach_id=str(coach_id),
                        athlete_id=str(athlete_id),
                    )

            await uow.session.refresh(request)
            return request

        outcome = await run_operation(
            self.uow_factory, "approval.approve", body,
            request_id=str(request_id), actor_id=str(acting.id),
        )
        if outcome.ok:
            logger.info("Approval request approved", request_id=str(request_id), actor_id=str(acting.id))
            await self.hooks.trigger("approval.approved", request=outcome.value)
        return outcome

    async def reject(
        self,
        acting: User,
        request_id: UUID,
        reason: str | None = None,
    ) -> Outcome[ApprovalRequest]:
        """Reject a pending request. The user's flags are left as they are."""
        async def body(uow: UnitOfWork) -> ApprovalRequest:
            request = await self._load_pending(uow, request_id)
            coach_id, athlete_id = await self._effective_context(uow, request)
            await self._authorize(uow, acting, request, coach_id)

            if await uow.users.get_by_id(request.user_id) is None:
                raise NotFound("User not found")

            now = utc_now()
            await self._flip(
                uow,
                request,
                status=RequestStatus.REJECTED.value,
                response_date=now,
                approved_by=acting.id,
                rejection_reason=reason,
            )
            if request.requested_role == UserRole.PARENT and coach_id and athlete_id:
                await self.ledger.settle_pending(
                    uow, request.user_id, athlete_id, coach_id, RequestStatus.REJECTED, now=now
                )

            await uow.session.refresh(request)
            return request

        outcome = await run_operation(
            self.uow_factory, "approval.reject", body,
            request_id=str(request_id), actor_id=str(acting.id),
        )
        if outcome.ok:
            logger.info("Approval request rejected", request_id=str(request_id), actor_id=str(acting.id))
            await self.hooks.trigger("approval.rejected", request=outcome.value)
        return outcome

    async def delete_request(self, acting: User, request_id: UUID) -> Outcome[None]:
        async def body(uow: UnitOfWork) -> None:
            if acting.role != UserRole.SUPERADMIN:
                raise Forbidden("Only administrators can delete approval requests")
            request = await uow.approval_requests.get_by_id(request_id)
            if request is None:
                raise NotFound("Approval request not found")
            await uow.approval_requests.remove(request)

        return await run_operation(self.uow_factory, "approval.delete", body)

    async def list_requests(
        self,
        acting: User,
        status: str | None = None,
    ) -> Outcome[list[ApprovalRequest]]:
        """
        Superadmins see every request, coaches the guardian requests that
        name them, everyone else only their own.
        """
        async def body(uow: UnitOfWork) -> list[ApprovalRequest]:
            if acting.role == UserRole.SUPERADMIN:
                return await uow.approval_requests.all(status=status)
            if acting.role == UserRole.COACH:
                if not uow.capabilities.approval_request_context:
                    return []
                return await uow.approval_requests.all(
                    requested_role=UserRole.PARENT, coach_id=acting.id, status=status
                )
            return await uow.approval_requests.all(user_id=acting.id, status=status)

        return await run_operation(self.uow_factory, "approval.list", body)
