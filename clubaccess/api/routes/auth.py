"""
Signup route.
"""

from fastapi import APIRouter, status

from clubaccess.schemas.account import SignupRequest, UserResponse
from clubaccess.api.dependencies.services import Accounts

router = APIRouter()


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(data: SignupRequest, accounts: Accounts):
    """Self-registration; most roles wait for approval before they can sign in."""
    user = (await accounts.register(data)).unwrap()
    return UserResponse.model_validate(user)
