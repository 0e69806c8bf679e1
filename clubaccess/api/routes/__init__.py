"""
API routes aggregation.
"""

from fastapi import APIRouter

from .auth import router as auth_router
from .me import router as me_router
from .users import router as users_router
from .athletes import router as athletes_router
from .approval_requests import router as approval_requests_router
from .access_requests import router as access_requests_router
from .rbac import router as rbac_router

router = APIRouter()

router.include_router(auth_router, prefix="/auth", tags=["auth"])
router.include_router(me_router, prefix="/me", tags=["me"])
router.include_router(users_router, prefix="/users", tags=["users"])
router.include_router(athletes_router, prefix="/athletes", tags=["athletes"])
router.include_router(approval_requests_router, prefix="/approval-requests", tags=["approval-requests"])
router.include_router(access_requests_router, prefix="/access-requests", tags=["access-requests"])
router.include_router(rbac_router, tags=["rbac"])
