"""
Approval request routes.
"""

from uuid import UUID
from fastapi import APIRouter, Query, Response, status

from clubaccess.schemas.requests import ApprovalRequestResponse, RejectRequest
from clubaccess.api.dependencies.auth import CurrentActor
from clubaccess.api.dependencies.services import Approvals

router = APIRouter()


@router.get("", response_model=list[ApprovalRequestResponse])
async def list_approval_requests(
    approvals: Approvals,
    actor: CurrentActor,
    status_filter: str | None = Query(None, alias="status"),
):
    requests = (await approvals.list_requests(actor, status=status_filter)).unwrap()
    return [ApprovalRequestResponse.model_validate(r) for r in requests]


@router.post("/{request_id}/approve", response_model=ApprovalRequestResponse)
async def approve_request(request_id: UUID, approvals: Approvals, actor: CurrentActor):
    request = (await approvals.approve(actor, request_id)).unwrap()
    return ApprovalRequestResponse.model_validate(request)


@router.post("/{request_id}/reject", response_model=ApprovalRequestResponse)
async def reject_request(
    request_id: UUID,
    approvals: Approvals,
    actor: CurrentActor,
    data: RejectRequest | None = None,
):
    reason = data.reason if data else None
    request = (await approvals.reject(actor, request_id, reason)).unwrap()
    return ApprovalRequestResponse.model_validate(request)


@router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_request(request_id: UUID, approvals: Approvals, actor: CurrentActor):
    (await approvals.delete_request(actor, request_id)).unwrap()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
