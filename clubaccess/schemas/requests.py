"""
Approval and access request schemas.
"""

from datetime import datetime
from typing import Literal
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field


class ApprovalRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    requested_role: str
    status: str
    request_date: datetime
    response_date: datetime | None = None
    approved_by: UUID | None = None
    rejection_reason: str | None = None
    coach_id: UUID | None = None
    athlete_id: UUID | None = None
    approval_notes: str | None = None


class RejectRequest(BaseModel):
    reason: str | None = Field(None, max_length=1000)


class AccessRequestCreate(BaseModel):
    parent_id: UUID
    athlete_id: UUID
    coach_id: UUID
    message: str | None = Field(None, max_length=1000)


class AccessRequestStatusUpdate(BaseModel):
    status: Literal["approved", "rejected"]


class AccessRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    parent_id: UUID
    athlete_id: UUID
    coach_id: UUID
    status: str
    request_date: datetime
    response_date: datetime | None = None
    message: str | None = None
