"""
Current actor routes.
"""

from fastapi import APIRouter, Depends

from clubaccess.core.uow import UnitOfWorkFactory
from clubaccess.permissions.resolver import PermissionService
from clubaccess.permissions.tabs import project
from clubaccess.schemas.account import UserResponse
from clubaccess.schemas.rbac import CapabilitiesResponse, TabResponse
from clubaccess.api.dependencies.auth import CurrentActor
from clubaccess.api.dependencies.database import get_uow_factory

router = APIRouter()


@router.get("", response_model=UserResponse)
async def get_me(actor: CurrentActor):
    """Get current user profile."""
    return UserResponse.model_validate(actor)


@router.get("/capabilities", response_model=CapabilitiesResponse)
async def get_capabilities(
    actor: CurrentActor,
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
):
    """Effective permissions and the navigation tabs they unlock."""
    async with uow_factory() as uow:
        permissions = await PermissionService(uow).effective_permissions(actor)
        await uow.commit()

    return CapabilitiesResponse(
        permissions=sorted(permissions),
        tabs=[TabResponse.model_validate(tab) for tab in project(permissions)],
    )
