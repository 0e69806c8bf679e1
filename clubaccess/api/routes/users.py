"""
Account routes.
"""

from uuid import UUID
from fastapi import APIRouter, Query, Response, status

from clubaccess.schemas.account import AccountCreate, AccountUpdate, UserResponse
from clubaccess.api.dependencies.auth import CurrentActor
from clubaccess.api.dependencies.services import Accounts

router = APIRouter()


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: AccountCreate,
    accounts: Accounts,
    actor: CurrentActor,
):
    """Create an account (requires users.create)."""
    user = (await accounts.create_account(payload, acting=actor)).unwrap()
    return UserResponse.model_validate(user)


@router.get("", response_model=list[UserResponse])
async def list_users(
    accounts: Accounts,
    actor: CurrentActor,
    role: str | None = Query(None),
):
    """List accounts (requires users.view)."""
    users = (await accounts.list_accounts(actor, role=role)).unwrap()
    return [UserResponse.model_validate(u) for u in users]


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: UUID, accounts: Accounts, actor: CurrentActor):
    """Get user by ID."""
    user = (await accounts.get_account(actor, user_id)).unwrap()
    return UserResponse.model_validate(user)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: UUID,
    data: AccountUpdate,
    accounts: Accounts,
    actor: CurrentActor,
):
    """Update user."""
    user = (await accounts.update_account(actor, user_id, data)).unwrap()
    return UserResponse.model_validate(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(user_id: UUID, accounts: Accounts, actor: CurrentActor):
    """Delete user and owned athlete profile."""
    (await accounts.delete_account(actor, user_id)).unwrap()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
