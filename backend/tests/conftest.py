"""
Pytest configuration and shared fixtures.

This module provides:
- Environment variable setup for tests
- An in-memory database per test (schema created from the models)
- An HTTP client wired to that database
- User factories and bearer token helpers
"""

import os
import sys
from pathlib import Path

import pytest


# Set test environment variables BEFORE any imports
# This must happen first to ensure settings load with test values
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test_secret_key_at_least_32_characters_long_for_jwt"
os.environ["ACCESS_TOKEN_EXPIRE_MINUTES"] = "60"
os.environ["DISABLE_RATE_LIMIT"] = "true"  # Disable rate limiting for tests
os.environ["ENABLE_DB_CREATE_ALL"] = "false"  # Tests own the schema
os.environ["LOG_JSON"] = "false"

# Add backend directory to path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

TEST_PASSWORD = "testpass123"
TEST_DISTRICT = "Shimla"


@pytest.fixture
def anyio_backend():
    """
    Configure anyio backend for async tests.

    Returns:
        str: Backend name ("asyncio")
    """
    return "asyncio"


@pytest.fixture
async def db_engine():
    """
    Fresh in-memory SQLite engine with every table created.

    Disposed after the test, so no state leaks between tests.
    """
    from app.core.database import get_async_engine
    from app.models.base import Base
    from app import models  # noqa: F401 - Import to register models

    engine = get_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(db_engine):
    """Session bound to the per-test engine."""
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    maker = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with maker() as session:
        yield session


@pytest.fixture
async def client(db_session):
    """
    HTTP client for the FastAPI app.

    get_db is overridden to hand out the test session, with the same
    commit-on-success / rollback-on-error behaviour as production.
    """
    from httpx import AsyncClient, ASGITransport

    from app.core.database import get_db
    from app.main import app

    async def _get_test_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = _get_test_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    """
    Factory creating a committed user row.

    Usage:
        da = await make_user("da_shimla", DEALING_ASSISTANT, district="Shimla")
    """
    from app.repositories.users import UserRepository

    async def _make(username, role, district=None, full_name=None, mobile=None, email=None):
        user = await UserRepository(db_session).create_user(
            username=username,
            password=TEST_PASSWORD,
            role=role,
            full_name=full_name or username.replace("_", " ").title(),
            mobile=mobile,
            email=email,
            district=district,
        )
        await db_session.commit()
        return user

    return _make


@pytest.fixture
def auth_headers():
    """Build an Authorization header for a user row."""
    from app.core.security import create_access_token

    def _headers(user):
        token = create_access_token(data={"sub": user.username, "role": user.role})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
async def owner(make_user):
    from app.core.security import PROPERTY_OWNER
    return await make_user("owner_ram", PROPERTY_OWNER, full_name="Ram Lal", mobile="9816012345")


@pytest.fixture
async def dealing_assistant(make_user):
    from app.core.security import DEALING_ASSISTANT
    return await make_user("da_shimla", DEALING_ASSISTANT, district=TEST_DISTRICT)


@pytest.fixture
async def dtdo(make_user):
    from app.core.security import DISTRICT_TOURISM_OFFICER
    return await make_user("dtdo_shimla", DISTRICT_TOURISM_OFFICER, district=TEST_DISTRICT)


@pytest.fixture
async def admin(make_user):
    from app.core.security import ADMIN
    return await make_user("admin_user", ADMIN)


@pytest.fixture
async def super_admin(make_user):
    from app.core.security import SUPER_ADMIN
    return await make_user("super_admin_user", SUPER_ADMIN)


def valid_application_form(**overrides):
    """A silver homestay in Shimla that passes every submission check."""
    form = {
        "propertyName": "Pine View Homestay",
        "category": "silver",
        "locationType": "gp",
        "address": "Village Mashobra, Shimla",
        "district": TEST_DISTRICT,
        "tehsil": "Shimla Rural",
        "pincode": "171007",
        "ownerName": "Ram Lal",
        "ownerGender": "male",
        "ownerMobile": "9816012345",
        "ownerAadhaar": "123456789012",
        "singleBedRooms": 1,
        "singleBedRoomRate": 1500,
        "doubleBedRooms": 2,
        "doubleBedRoomRate": 2500,
        "attachedWashrooms": 3,
        "validityYears": 1,
    }
    form.update(overrides)
    return form


@pytest.fixture
def application_form():
    return valid_application_form


@pytest.fixture
def submit_application(client, auth_headers, application_form):
    """
    Drive an owner through draft -> document -> submit over the API.

    Returns the submitted application JSON.
    """

    async def _submit(user, **form_overrides):
        headers = auth_headers(user)
        response = await client.post(
            "/api/v1/applications/draft",
            json=application_form(**form_overrides),
            headers=headers,
        )
        assert response.status_code == 201, response.text
        application_id = response.json()["id"]

        response = await client.post(
            f"/api/v1/applications/{application_id}/documents",
            json={
                "documentType": "ownership_proof",
                "fileName": "jamabandi.pdf",
                "filePath": f"uploads/{application_id}/jamabandi.pdf",
                "mimeType": "application/pdf",
            },
            headers=headers,
        )
        assert response.status_code == 201, response.text

        response = await client.post(
            f"/api/v1/applications/{application_id}/submit", headers=headers
        )
        assert response.status_code == 200, response.text
        return response.json()

    return _submit


@pytest.fixture
def set_setting(db_session):
    """Store a system setting directly."""
    from app.repositories.settings import SettingsRepository

    async def _set(key, value):
        await SettingsRepository(db_session).set_value(key, value)
        await db_session.commit()

    return _set
