"""
Security module for authentication and authorization.

Provides JWT token handling, password hashing, role constants and
authentication utilities (bcrypt, python-jose).
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
import bcrypt
from pydantic import BaseModel, ConfigDict
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.user import User as UserModel

# JWT Algorithm
ALGORITHM = "HS256"

# Roles
PROPERTY_OWNER = "property_owner"
DEALING_ASSISTANT = "dealing_assistant"
DISTRICT_TOURISM_OFFICER = "district_tourism_officer"
DISTRICT_OFFICER = "district_officer"
STATE_OFFICER = "state_officer"
ADMIN = "admin"
SUPER_ADMIN = "super_admin"

ROLES = (
    PROPERTY_OWNER,
    DEALING_ASSISTANT,
    DISTRICT_TOURISM_OFFICER,
    DISTRICT_OFFICER,
    STATE_OFFICER,
    ADMIN,
    SUPER_ADMIN,
)
OFFICER_ROLES = frozenset(ROLES) - {PROPERTY_OWNER}
DTDO_ROLES = (DISTRICT_TOURISM_OFFICER, DISTRICT_OFFICER)
ADMIN_ROLES = (ADMIN, SUPER_ADMIN)


class TokenData(BaseModel):
    """
    JWT token payload data model.

    Contains the claims stored in the JWT token.
    """
    username: str
    role: Optional[str] = None
    exp: Optional[datetime] = None


class User(BaseModel):
    """
    Authenticated user as seen by the API layer.

    Never carries the password hash.
    """
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    role: str
    full_name: Optional[str] = None
    mobile: Optional[str] = None
    email: Optional[str] = None
    district: Optional[str] = None
    disabled: bool = False

    @property
    def is_officer(self) -> bool:
        return self.role in OFFICER_ROLES

    @classmethod
    def from_model(cls, user: UserModel) -> "User":
        return cls(
            id=user.id,
            username=user.username,
            role=user.role,
            full_name=user.full_name,
            mobile=user.mobile,
            email=user.email,
            district=user.district,
            disabled=not user.is_active,
        )


def _password_bytes(password: str) -> bytes:
    # bcrypt only looks at the first 72 bytes
    password_bytes = password.encode('utf-8')
    if len(password_bytes) > 72:
        password_bytes = password_bytes[:72]
    return password_bytes


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a hashed password.

    Args:
        plain_password: The plain text password to verify
        hashed_password: The hashed password to compare against

    Returns:
        True if password matches, False otherwise
    """
    if isinstance(hashed_password, str):
        hashed_bytes = hashed_password.encode('utf-8')
    else:
        hashed_bytes = hashed_password

    return bcrypt.checkpw(_password_bytes(plain_password), hashed_bytes)


def get_password_hash(password: str) -> str:
    """
    Hash a password using bcrypt (12 rounds).

    Passwords longer than 72 bytes are truncated, matching bcrypt's limit.
    """
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(_password_bytes(password), salt)
    return hashed.decode('utf-8')


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Dictionary of claims to encode in the token ("sub", "role")
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string

    Example:
        >>> token = create_access_token({"sub": "da_shimla", "role": "dealing_assistant"})
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.access_token_expire_minutes
        )

    to_encode.update({"exp": expire})

    return jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=ALGORITHM
    )


def decode_access_token(token: str) -> Optional[TokenData]:
    """
    Decode and validate a JWT access token.

    Returns:
        TokenData if valid, None if invalid, expired or missing "sub"
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[ALGORITHM]
        )
        username: str = payload.get("sub")

        if username is None:
            return None

        return TokenData(
            username=username,
            role=payload.get("role"),
            exp=payload.get("exp"),
        )

    except JWTError:
        return None


async def get_user(session: AsyncSession, username: str) -> Optional[UserModel]:
    """Look up a user row by username."""
    result = await session.execute(
        select(UserModel).where(UserModel.username == username)
    )
    return result.scalar_one_or_none()


async def authenticate_user(
    session: AsyncSession,
    username: str,
    password: str,
) -> Optional[User]:
    """
    Authenticate a user with username and password.

    Returns:
        User if authentication successful, None otherwise (unknown user,
        wrong password or deactivated account)
    """
    user = await get_user(session, username)

    if not user:
        return None

    if not verify_password(password, user.hashed_password):
        return None

    if not user.is_active:
        return None

    return User.from_model(user)
