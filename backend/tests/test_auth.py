"""
Tests for authentication system.

Tests cover:
- Password hashing and verification
- JWT token creation and validation (including the role claim)
- User repository operations
- authenticate_user against the users table
"""

import pytest
from datetime import timedelta
from jose import jwt

from app.core.security import (
    DEALING_ASSISTANT,
    PROPERTY_OWNER,
    authenticate_user,
    create_access_token,
    decode_access_token,
    get_password_hash,
    verify_password,
)
from app.core.config import settings
from app.repositories.users import UserRepository


class TestPasswordHashing:
    """Test password hashing utilities."""

    def test_hash_password(self):
        """Test that password hashing works."""
        # Arrange
        plain_password = "test_password_123"

        # Act
        hashed = get_password_hash(plain_password)

        # Assert
        assert hashed != plain_password
        assert hashed.startswith("$2b$")  # bcrypt prefix

    def test_verify_password_success(self):
        """Test password verification with correct password."""
        # Arrange
        hashed = get_password_hash("test_password_123")

        # Act
        result = verify_password("test_password_123", hashed)

        # Assert
        assert result is True

    def test_verify_password_failure(self):
        """Test password verification with incorrect password."""
        # Arrange
        hashed = get_password_hash("test_password_123")

        # Act
        result = verify_password("wrong_password", hashed)

        # Assert
        assert result is False

    def test_same_password_twice_produces_different_hashes(self):
        """Test that hashing the same password twice produces different hashes (salt)."""
        # Act
        hash1 = get_password_hash("test_password")
        hash2 = get_password_hash("test_password")

        # Assert
        assert hash1 != hash2
        assert verify_password("test_password", hash1)
        assert verify_password("test_password", hash2)

    def test_long_password_truncated_to_bcrypt_limit(self):
        """Passwords longer than 72 bytes only compare on their first 72 bytes."""
        # Arrange
        base = "a" * 72
        hashed = get_password_hash(base + "suffix-one")

        # Act / Assert
        assert verify_password(base + "suffix-two", hashed)


class TestJWTTokens:
    """Test JWT token creation and validation."""

    def test_token_carries_subject_and_role(self):
        """Token payload keeps the username in ``sub`` and the role claim."""
        # Arrange
        data = {"sub": "da_shimla", "role": DEALING_ASSISTANT}

        # Act
        token = create_access_token(data, timedelta(minutes=30))

        # Assert
        payload = jwt.decode(token, settings.secret_key, algorithms=["HS256"])
        assert payload["sub"] == "da_shimla"
        assert payload["role"] == DEALING_ASSISTANT
        assert "exp" in payload

    def test_decode_access_token_success(self):
        """Test decoding a valid token."""
        # Arrange
        token = create_access_token({"sub": "owner_ram", "role": PROPERTY_OWNER})

        # Act
        token_data = decode_access_token(token)

        # Assert
        assert token_data is not None
        assert token_data.username == "owner_ram"
        assert token_data.role == PROPERTY_OWNER
        assert token_data.exp is not None

    def test_decode_access_token_invalid(self):
        """Test decoding an invalid token."""
        assert decode_access_token("invalid.token.string") is None

    def test_decode_access_token_expired(self):
        """Test decoding an expired token."""
        # Arrange
        token = create_access_token({"sub": "testuser"}, timedelta(seconds=-1))  # Already expired

        # Act / Assert
        assert decode_access_token(token) is None

    def test_decode_token_without_subject(self):
        """A token without ``sub`` is rejected."""
        # Arrange
        token = create_access_token({"role": PROPERTY_OWNER})

        # Act / Assert
        assert decode_access_token(token) is None

    def test_token_signed_with_other_key_rejected(self):
        """Tokens signed with a different secret do not validate."""
        # Arrange
        token = jwt.encode({"sub": "intruder"}, "x" * 40, algorithm="HS256")

        # Act / Assert
        assert decode_access_token(token) is None


@pytest.mark.anyio
class TestUserRepository:
    """Test user database operations."""

    async def test_create_user_hashes_password(self, db_session):
        """Created users store a bcrypt hash, never the plain password."""
        # Arrange
        repo = UserRepository(db_session)

        # Act
        user = await repo.create_user(
            username="owner_one",
            password="secret-pass-1",
            role=PROPERTY_OWNER,
            full_name="Owner One",
        )
        await db_session.commit()

        # Assert
        stored = await repo.get_by_username("owner_one")
        assert stored is not None
        assert stored.id == user.id
        assert stored.hashed_password.startswith("$2b$")
        assert verify_password("secret-pass-1", stored.hashed_password)
        assert stored.is_active is True

    async def test_duplicate_username_rejected(self, db_session):
        """Creating a second user with the same username raises ValueError."""
        # Arrange
        repo = UserRepository(db_session)
        await repo.create_user(username="taken", password="password1", role=PROPERTY_OWNER)
        await db_session.commit()

        # Act & Assert
        with pytest.raises(ValueError, match="already exists"):
            await repo.create_user(username="taken", password="password2", role=PROPERTY_OWNER)

    async def test_list_dealing_assistants_filters_district(self, db_session, make_user):
        """Only active dealing assistants of the requested district are listed."""
        # Arrange
        await make_user("da_shimla_1", DEALING_ASSISTANT, district="Shimla")
        await make_user("da_kullu_1", DEALING_ASSISTANT, district="Kullu")
        await make_user("owner_x", PROPERTY_OWNER, district="Shimla")

        # Act
        das = await UserRepository(db_session).list_dealing_assistants("shimla")

        # Assert
        assert [u.username for u in das] == ["da_shimla_1"]

    async def test_search_dealing_assistants(self, db_session, make_user):
        """Search matches full name or username, case-insensitively."""
        # Arrange
        await make_user("da_one", DEALING_ASSISTANT, district="Shimla", full_name="Anil Sharma")
        await make_user("da_two", DEALING_ASSISTANT, district="Kullu", full_name="Meena Thakur")

        # Act
        by_name = await UserRepository(db_session).search_dealing_assistants("SHARMA")
        by_username = await UserRepository(db_session).search_dealing_assistants("da_t")

        # Assert
        assert [u.username for u in by_name] == ["da_one"]
        assert [u.username for u in by_username] == ["da_two"]


@pytest.mark.anyio
class TestAuthenticateUser:
    """authenticate_user against stored users."""

    async def test_authenticate_user_success(self, db_session, owner):
        """Test authenticating a valid user."""
        # Act
        user = await authenticate_user(db_session, owner.username, "testpass123")

        # Assert
        assert user is not None
        assert user.username == owner.username
        assert user.role == PROPERTY_OWNER

    async def test_authenticate_user_wrong_password(self, db_session, owner):
        """Test authentication fails with wrong password."""
        assert await authenticate_user(db_session, owner.username, "wrong_password") is None

    async def test_authenticate_nonexistent_user(self, db_session):
        """Test authentication fails for non-existent user."""
        assert await authenticate_user(db_session, "nonexistent_user", "any_password") is None

    async def test_authenticate_disabled_user(self, db_session, owner):
        """Deactivated accounts cannot log in."""
        # Arrange
        owner.is_active = False
        await db_session.commit()

        # Act / Assert
        assert await authenticate_user(db_session, owner.username, "testpass123") is None
