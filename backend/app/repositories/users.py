"""
User repository.

Lookups and creation for owner and officer accounts.
"""

from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import DEALING_ASSISTANT, DTDO_ROLES, get_password_hash
from app.models.user import User
from app.repositories.applications import district_clause


class UserRepository:
    """
    Repository for user data access.

    Attributes:
        session: SQLAlchemy async session for database operations
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, user_id: Optional[str]) -> Optional[User]:
        if not user_id:
            return None
        return await self.session.get(User, user_id)

    async def get_by_username(self, username: str) -> Optional[User]:
        result = await self.session.execute(
            select(User).where(User.username == username)
        )
        return result.scalar_one_or_none()

    async def username_exists(self, username: str) -> bool:
        return await self.get_by_username(username) is not None

    async def create_user(
        self,
        username: str,
        password: str,
        role: str,
        full_name: Optional[str] = None,
        mobile: Optional[str] = None,
        email: Optional[str] = None,
        district: Optional[str] = None,
    ) -> User:
        """
        Create a user with a bcrypt-hashed password.

        Raises:
            ValueError: If username already exists
        """
        if await self.username_exists(username):
            raise ValueError(f"User '{username}' already exists")

        user = User(
            username=username,
            hashed_password=get_password_hash(password),
            role=role,
            full_name=full_name,
            mobile=mobile,
            email=email,
            district=district,
            is_active=True,
        )
        self.session.add(user)
        await self.session.flush()
        return user

    async def list_dealing_assistants(self, district: str) -> List[User]:
        """Active DAs serving ``district``, by name."""
        result = await self.session.execute(
            select(User)
            .where(
                User.role == DEALING_ASSISTANT,
                User.is_active.is_(True),
                district_clause(User.district, district),
            )
            .order_by(User.full_name)
        )
        return list(result.scalars().all())

    async def list_district_officers(self, district: Optional[str]) -> List[User]:
        """Active DTDOs of ``district`` (the OTP recipients for send-backs)."""
        if not district:
            return []
        result = await self.session.execute(
            select(User).where(
                User.role.in_(DTDO_ROLES),
                User.is_active.is_(True),
                district_clause(User.district, district),
            )
        )
        return list(result.scalars().all())

    async def search_dealing_assistants(self, term: str) -> List[User]:
        """Case-insensitive search on full name or username."""
        pattern = f"%{term.lower()}%"
        result = await self.session.execute(
            select(User)
            .where(
                User.role == DEALING_ASSISTANT,
                or_(
                    func.lower(User.full_name).like(pattern),
                    func.lower(User.username).like(pattern),
                ),
            )
            .order_by(User.username)
        )
        return list(result.scalars().all())
