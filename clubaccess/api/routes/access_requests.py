"""
Access request routes.
"""

from uuid import UUID
from fastapi import APIRouter, Response, status

from clubaccess.schemas.requests import (
    AccessRequestCreate,
    AccessRequestResponse,
    AccessRequestStatusUpdate,
)
from clubaccess.api.dependencies.auth import CurrentActor
from clubaccess.api.dependencies.services import AccessRequests

router = APIRouter()


@router.get("", response_model=list[AccessRequestResponse])
async def list_access_requests(ledger: AccessRequests, actor: CurrentActor):
    requests = (await ledger.list_for(actor)).unwrap()
    return [AccessRequestResponse.model_validate(r) for r in requests]


@router.post("", response_model=AccessRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_access_request(
    data: AccessRequestCreate,
    ledger: AccessRequests,
    actor: CurrentActor,
):
    request = (await ledger.create(actor, data)).unwrap()
    return AccessRequestResponse.model_validate(request)


@router.get("/{request_id}", response_model=AccessRequestResponse)
async def get_access_request(request_id: UUID, ledger: AccessRequests, actor: CurrentActor):
    request = (await ledger.get(actor, request_id)).unwrap()
    return AccessRequestResponse.model_validate(request)


@router.patch("/{request_id}", response_model=AccessRequestResponse)
async def update_access_request(
    request_id: UUID,
    data: AccessRequestStatusUpdate,
    ledger: AccessRequests,
    actor: CurrentActor,
):
    request = (await ledger.set_status(actor, request_id, data.status)).unwrap()
    return AccessRequestResponse.model_validate(request)


@router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_access_request(request_id: UUID, ledger: AccessRequests, actor: CurrentActor):
    (await ledger.delete(actor, request_id)).unwrap()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
