"""
Authentication endpoints.

JWT token issuance for owners and officers, and property owner
self-registration.
"""

import logging
from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm

from app.api.dependencies import CurrentActiveUser, DatabaseSession
from app.core.config import settings
from app.core.security import PROPERTY_OWNER, authenticate_user, create_access_token
from app.repositories.users import UserRepository
from app.schemas.auth import MeResponse, RegisterRequest, TokenResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/token", response_model=TokenResponse, status_code=status.HTTP_200_OK)
async def login(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: DatabaseSession,
) -> TokenResponse:
    """
    OAuth2 compatible token login endpoint.

    Args:
        form_data: OAuth2 form with username and password
        db: Database session (injected)

    Returns:
        Token with access_token, token_type and the user's role

    Raises:
        HTTPException 401: If credentials are invalid or the account is disabled

    Example:
        POST /api/v1/auth/token
        Content-Type: application/x-www-form-urlencoded

        username=da_shimla&password=changeme123

        Response:
        {
            "accessToken": "eyJ...",
            "tokenType": "bearer",
            "role": "dealing_assistant"
        }

    Security:
        - Credentials are validated against database (bcrypt hash comparison)
        - Generic error message on failure (don't reveal if username exists)
        - Stricter rate limit than the rest of the API
    """
    user = await authenticate_user(db, form_data.username, form_data.password)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token_expires = timedelta(minutes=settings.access_token_expire_minutes)
    access_token = create_access_token(
        data={"sub": user.username, "role": user.role},
        expires_delta=access_token_expires
    )

    return TokenResponse(access_token=access_token, token_type="bearer", role=user.role)


@router.post("/register", response_model=MeResponse, status_code=status.HTTP_201_CREATED)
async def register(request: RegisterRequest, db: DatabaseSession) -> MeResponse:
    """
    Register a property owner account.

    Officer accounts are provisioned by administrators (scripts/seed_users.py),
    never through this endpoint.

    Raises:
        HTTPException 409: If the username is taken
    """
    repo = UserRepository(db)
    try:
        user = await repo.create_user(
            username=request.username,
            password=request.password,
            role=PROPERTY_OWNER,
            full_name=request.full_name,
            mobile=request.mobile,
            email=request.email,
            district=request.district,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    logger.info(f"Registered property owner {user.username}")
    return MeResponse.from_row(user)


@router.get("/me", response_model=MeResponse)
async def read_users_me(current_user: CurrentActiveUser) -> MeResponse:
    """
    Get current authenticated user information.

    Example:
        GET /api/v1/auth/me
        Authorization: Bearer eyJ...

        Response:
        {
            "id": "…",
            "username": "owner1",
            "role": "property_owner",
            "fullName": "Owner One",
            "district": "Shimla"
        }
    """
    return MeResponse.from_row(current_user)
