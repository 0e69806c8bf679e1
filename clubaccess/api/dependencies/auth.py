"""
Authentication dependencies.

Tokens are issued elsewhere; this module only verifies the bearer token and
loads the actor it names.

Usage:
    from clubaccess.api.dependencies.auth import CurrentActor

    @router.get("/me")
    async def me(actor: CurrentActor):
        ...
"""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from clubaccess.core.config import settings
from clubaccess.core.uow import UnitOfWorkFactory
from clubaccess.models.user import User
from clubaccess.repositories.base import as_uuid
from .database import get_uow_factory

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
) -> User:
    """
    Get the authenticated actor from the bearer token's `sub` claim.

    Raises:
        HTTPException 401: missing or invalid token, unknown or inactive user
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")

    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.auth.secret_key,
            algorithms=[settings.auth.algorithm],
        )
        user_id = as_uuid(payload.get("sub") or "")
    except (JWTError, ValueError):
        raise _unauthorized("Invalid token")

    async with uow_factory() as uow:
        user = await uow.users.get_by_id(user_id)
        await uow.commit()

    if user is None:
        raise _unauthorized("User not found")
    if not user.is_active:
        raise _unauthorized("User is inactive")
    return user


CurrentActor = Annotated[User, Depends(get_current_actor)]
