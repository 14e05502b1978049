"""
FastAPI dependency functions.

Provides reusable dependency injection functions for FastAPI routes:
database sessions, the authenticated user and role guards.
"""

from typing import Annotated, Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import decode_access_token, get_user, User


# HTTP Bearer token scheme
security = HTTPBearer()


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """
    Dependency to get the current authenticated user from JWT token.

    Extracts and validates the JWT token from the Authorization header,
    then loads the user row so role and district changes take effect
    without waiting for token expiry.

    Raises:
        HTTPException 401: If token is missing, invalid, expired, or user not found

    Note:
        The token should be sent in the Authorization header as:
        Authorization: Bearer <token>
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    token_data = decode_access_token(credentials.credentials)

    if token_data is None or token_data.username is None:
        raise credentials_exception

    user = await get_user(db, username=token_data.username)

    if user is None:
        raise credentials_exception

    return User.from_model(user)


async def get_current_active_user(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """
    Dependency to get the current active (non-disabled) user.

    Raises:
        HTTPException 400: If user account is disabled
    """
    if current_user.disabled:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user account"
        )

    return current_user


def require_roles(*roles: str) -> Callable:
    """
    Build a dependency that only admits users holding one of ``roles``.

    Example:
        @router.post("/applications/{id}/accept")
        async def accept(user: Annotated[User, Depends(require_roles(*DTDO_ROLES))]):
            ...
    """
    allowed = frozenset(roles)

    async def _checker(
        current_user: Annotated[User, Depends(get_current_active_user)],
    ) -> User:
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to perform this action",
            )
        return current_user

    return _checker


# Type alias for dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]
CurrentActiveUser = Annotated[User, Depends(get_current_active_user)]
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
