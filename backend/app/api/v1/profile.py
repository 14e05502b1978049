"""
Staff profile and password routes.

Mounted on the DA and DTDO routers so each role edits its own account
under its own prefix (``/da/profile``, ``/dtdo/change-password``).
"""

from typing import Callable

from fastapi import APIRouter, Depends

from app.api.dependencies import DatabaseSession
from app.api.errors import service_errors
from app.core.security import User
from app.schemas.auth import ChangePasswordRequest, MeResponse, ProfileUpdateRequest
from app.schemas.common import MessageResponse
from app.services.accounts import AccountService


def add_profile_routes(router: APIRouter, role_dependency: Callable) -> None:
    @router.patch("/profile", response_model=MeResponse, summary="Update own profile")
    async def update_profile(
        request: ProfileUpdateRequest,
        db: DatabaseSession,
        current_user: User = Depends(role_dependency),
    ) -> MeResponse:
        with service_errors():
            user = await AccountService(db).update_profile(
                current_user, request.model_dump(exclude_unset=True)
            )
        return MeResponse.from_row(user)

    @router.post("/change-password", response_model=MessageResponse, summary="Change own password")
    async def change_password(
        request: ChangePasswordRequest,
        db: DatabaseSession,
        current_user: User = Depends(role_dependency),
    ) -> MessageResponse:
        """
        Raises:
            HTTPException 400: If the current password is wrong or unchanged
        """
        with service_errors():
            await AccountService(db).change_password(
                current_user, request.current_password, request.new_password
            )
        return MessageResponse(message="Password changed successfully")
