"""
Role, permission, grant and tab schemas.
"""

from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field, model_validator


class PermissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None = None
    is_active: bool


class PermissionCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100, pattern=r"^(\*|[a-z_]+(\.[a-z_]+)+)$")
    description: str | None = Field(None, max_length=500)


class RoleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    display_name: str | None = None
    description: str | None = None
    is_system: bool
    is_active: bool
    permissions: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def flatten_permissions(cls, data):
        perms = getattr(data, "permissions", None)
        if perms is not None and not isinstance(data, dict):
            return {
                "id": data.id,
                "name": data.name,
                "display_name": data.display_name,
                "description": data.description,
                "is_system": data.is_system,
                "is_active": data.is_active,
                "permissions": sorted(p.name for p in perms),
            }
        return data


class RoleCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    display_name: str | None = Field(None, max_length=200)
    description: str | None = Field(None, max_length=500)
    permissions: list[str] = Field(default_factory=list)
    is_active: bool = True


class RoleUpdate(BaseModel):
    display_name: str | None = Field(None, max_length=200)
    description: str | None = Field(None, max_length=500)
    permissions: list[str] | None = None
    is_active: bool | None = None


class GrantCreate(BaseModel):
    user_id: UUID
    permission_id: UUID
    resource_type: str | None = Field(None, max_length=50)
    resource_id: str | None = Field(None, max_length=100)
    expires_at: datetime | None = None


class GrantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    permission_id: UUID
    resource_type: str | None = None
    resource_id: str | None = None
    granted_by: UUID | None = None
    granted_at: datetime
    expires_at: datetime | None = None


class TabResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    label: str
    permission: str
    category: str
    order: int


class CapabilitiesResponse(BaseModel):
    permissions: list[str]
    tabs: list[TabResponse]
