"""
Approval and access request models.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID
from sqlalchemy import String, DateTime, ForeignKey, Uuid, Text
from sqlalchemy.orm import Mapped, mapped_column

from clubaccess.utils.timezone import utc_now
from .base import Base, StandardMixin


class RequestStatus(str, Enum):
    """Lifecycle of approval and access requests."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalRequest(Base, StandardMixin):
    """
    Gate on a newly registered account.

    Moves exactly once from pending to approved or rejected. coach_id and
    athlete_id carry the guardian context used to open an access request on
    approval.
    """

    __tablename__ = "approval_requests"

    user_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    requested_role: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=RequestStatus.PENDING.value,
        nullable=False,
        index=True,
    )
    request_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )
    response_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_by: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Guardian context (optional columns, see SchemaCapabilities)
    coach_id: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)
    athlete_id: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)
    approval_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING.value

    def __repr__(self) -> str:
        return f"<ApprovalRequest {self.id} {self.requested_role} {self.status}>"


class AccessRequest(Base, StandardMixin):
    """A guardian's request to view one athlete, mediated by the athlete's coach."""

    __tablename__ = "access_requests"

    parent_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    athlete_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("athletes.id", ondelete="CASCADE"),
        nullable=False,
    )
    coach_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=RequestStatus.PENDING.value,
        nullable=False,
    )
    request_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )
    response_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING.value

    def __repr__(self) -> str:
        return f"<AccessRequest parent={self.parent_id} athlete={self.athlete_id} {self.status}>"
