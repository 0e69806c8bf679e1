"""
Account schemas.

Account creation payloads are a tagged union keyed by `role`: athletes carry a
nested profile, guardians carry the athlete they are linked to, every other
role (coach, superadmin, custom roles) uses the staff variant.
"""

from datetime import date, datetime
from typing import Annotated, Any, Literal, Union
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, field_validator


class AthleteProfileIn(BaseModel):
    """Athlete profile supplied with an athlete-role account."""
    first_name: str | None = None
    last_name: str | None = None
    date_of_birth: date | str | None = None
    age: Any = None
    category: str | None = None
    gender: str | None = None
    coach_id: UUID | None = None


class AccountBase(BaseModel):
    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    role_id: UUID | None = None
    is_active: bool | None = None
    needs_approval: bool | None = None


class AthleteAccountCreate(AccountBase):
    role: Literal["athlete"]
    profile: AthleteProfileIn | None = None
    coach_id: UUID | None = None


class ParentAccountCreate(AccountBase):
    role: Literal["parent"]
    linked_athlete_id: UUID | None = None
    coach_id: UUID | None = None


class StaffAccountCreate(AccountBase):
    role: str = Field(min_length=1, max_length=50)
    specialization: str | None = Field(None, max_length=200)
    approval_notes: str | None = None

    @field_validator("role")
    @classmethod
    def role_has_own_variant(cls, v: str) -> str:
        if v in ("athlete", "parent"):
            raise ValueError(f"role {v!r} requires its own payload variant")
        return v


def _account_variant(value: Any) -> str:
    role = value.get("role") if isinstance(value, dict) else getattr(value, "role", None)
    return role if role in ("athlete", "parent") else "staff"


AccountCreate = Annotated[
    Union[
        Annotated[AthleteAccountCreate, Tag("athlete")],
        Annotated[ParentAccountCreate, Tag("parent")],
        Annotated[StaffAccountCreate, Tag("staff")],
    ],
    Discriminator(_account_variant),
]


class SignupRequest(BaseModel):
    """Self-registration; the account waits for approval."""
    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    role: str = Field(min_length=1, max_length=50)
    coach_id: UUID | None = None
    athlete_id: UUID | None = None
    approval_notes: str | None = None


class AccountUpdate(BaseModel):
    """Partial update; only fields that are set are applied."""
    email: str | None = Field(None, min_length=1, max_length=255)
    password: str | None = None
    current_password: str | None = None
    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    role: str | None = Field(None, min_length=1, max_length=50)
    role_id: UUID | None = None
    is_active: bool | None = None
    needs_approval: bool | None = None
    athlete_id: UUID | None = None
    avatar_path: str | None = Field(None, max_length=500)


class UserResponse(BaseModel):
    """User response schema."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    first_name: str
    last_name: str
    role: str
    role_id: UUID | None = None
    is_active: bool
    needs_approval: bool
    athlete_id: UUID | None = None
    avatar_path: str | None = None
    approved_by: UUID | None = None
    approved_at: datetime | None = None
    created_at: datetime


class AthleteCreate(BaseModel):
    """Staff creation of an athlete profile without an account."""
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    date_of_birth: date | str | None = None
    age: Any = None
    category: str | None = None
    gender: str | None = None
    coach_id: UUID | None = None


class AthleteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    first_name: str
    last_name: str
    age: int
    category: str
    gender: str
    date_of_birth: date | None = None
    coach_id: UUID | None = None
    parent_id: UUID | None = None
    created_at: datetime
