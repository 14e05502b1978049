"""
Self-service profile and password changes for signed-in users.
"""

import logging
from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import WorkflowError
from app.core.security import User, get_password_hash, verify_password
from app.models.user import User as UserModel
from app.repositories.users import UserRepository

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("full_name", "mobile", "email")


class AccountService:
    """
    Attributes:
        session: SQLAlchemy async session for database operations
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.users = UserRepository(session)

    async def _load(self, actor: User) -> UserModel:
        user = await self.users.get(actor.id)
        if user is None:
            raise WorkflowError("User not found")
        return user

    async def update_profile(self, actor: User, changes: Dict[str, Any]) -> UserModel:
        """
        Apply name and contact changes. Role, district and username are
        managed by administrators and cannot be changed here.
        """
        user = await self._load(actor)
        applied = {k: v for k, v in changes.items() if k in PROFILE_FIELDS}
        if "full_name" in applied and not (applied["full_name"] or "").strip():
            raise WorkflowError("Full name cannot be empty")
        for field, value in applied.items():
            setattr(user, field, value.strip() if isinstance(value, str) else value)
        await self.session.flush()
        logger.info(
            "Profile updated",
            extra={"user_id": user.id, "fields": sorted(applied)},
        )
        return user

    async def change_password(self, actor: User, current_password: str, new_password: str) -> None:
        user = await self._load(actor)
        if not verify_password(current_password, user.hashed_password):
            raise WorkflowError("Current password is incorrect")
        if current_password == new_password:
            raise WorkflowError("New password must be different from the current password")
        user.hashed_password = get_password_hash(new_password)
        await self.session.flush()
        logger.info("Password changed", extra={"user_id": user.id})
