"""
Role, permission and grant routes.
"""

from uuid import UUID
from fastapi import APIRouter, Query, Response, status
from pydantic import BaseModel

from clubaccess.schemas.rbac import (
    GrantCreate,
    GrantResponse,
    PermissionCreate,
    PermissionResponse,
    RoleCreate,
    RoleResponse,
    RoleUpdate,
)
from clubaccess.api.dependencies.auth import CurrentActor
from clubaccess.api.dependencies.services import RBAC

router = APIRouter()


class PermissionActiveUpdate(BaseModel):
    is_active: bool


# ============================================================
# ROLES
# ============================================================

@router.get("/roles", response_model=list[RoleResponse])
async def list_roles(rbac: RBAC, actor: CurrentActor):
    roles = (await rbac.list_roles(actor)).unwrap()
    return [RoleResponse.model_validate(r) for r in roles]


@router.post("/roles", response_model=RoleResponse, status_code=status.HTTP_201_CREATED)
async def create_role(data: RoleCreate, rbac: RBAC, actor: CurrentActor):
    role = (await rbac.create_role(actor, data)).unwrap()
    return RoleResponse.model_validate(role)


@router.patch("/roles/{role_id}", response_model=RoleResponse)
async def update_role(role_id: UUID, data: RoleUpdate, rbac: RBAC, actor: CurrentActor):
    role = (await rbac.update_role(actor, role_id, data)).unwrap()
    return RoleResponse.model_validate(role)


@router.delete("/roles/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_role(role_id: UUID, rbac: RBAC, actor: CurrentActor):
    (await rbac.delete_role(actor, role_id)).unwrap()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================
# PERMISSIONS
# ============================================================

@router.get("/permissions", response_model=list[PermissionResponse])
async def list_permissions(rbac: RBAC, actor: CurrentActor):
    permissions = (await rbac.list_permissions(actor)).unwrap()
    return [PermissionResponse.model_validate(p) for p in permissions]


@router.post("/permissions", response_model=PermissionResponse, status_code=status.HTTP_201_CREATED)
async def create_permission(data: PermissionCreate, rbac: RBAC, actor: CurrentActor):
    permission = (await rbac.create_permission(actor, data)).unwrap()
    return PermissionResponse.model_validate(permission)


@router.patch("/permissions/{permission_id}", response_model=PermissionResponse)
async def set_permission_active(
    permission_id: UUID,
    data: PermissionActiveUpdate,
    rbac: RBAC,
    actor: CurrentActor,
):
    permission = (await rbac.set_permission_active(actor, permission_id, data.is_active)).unwrap()
    return PermissionResponse.model_validate(permission)


# ============================================================
# GRANTS
# ============================================================

@router.get("/grants", response_model=list[GrantResponse])
async def list_grants(rbac: RBAC, actor: CurrentActor, user_id: UUID = Query(...)):
    grants = (await rbac.list_grants(actor, user_id)).unwrap()
    return [GrantResponse.model_validate(g) for g in grants]


@router.post("/grants", response_model=GrantResponse, status_code=status.HTTP_201_CREATED)
async def grant_permission(data: GrantCreate, rbac: RBAC, actor: CurrentActor):
    grant = (await rbac.grant_permission(actor, data)).unwrap()
    return GrantResponse.model_validate(grant)


@router.delete("/grants/{grant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_permission(grant_id: UUID, rbac: RBAC, actor: CurrentActor):
    (await rbac.revoke_permission(actor, grant_id)).unwrap()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
