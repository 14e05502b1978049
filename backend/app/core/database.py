"""
Database configuration and session management.

Provides the SQLAlchemy async engine, the session factory, and the
session dependency used by the API routers and maintenance scripts.
"""

import os
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    AsyncEngine,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy import event, text
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.models.base import Base


def is_sqlite_url(url: str) -> bool:
    return url.startswith("sqlite")


def get_async_engine(database_url: str | None = None) -> AsyncEngine:
    """
    Create and configure the async SQLAlchemy engine.

    For SQLite:
    - Uses StaticPool (single file or in-memory database)
    - Enables check_same_thread=False for async compatibility
    - Turns on foreign keys so application deletes cascade

    PostgreSQL (asyncpg) uses the driver's default pooling.

    Args:
        database_url: Override for settings.database_url (tests, scripts)

    Returns:
        Configured AsyncEngine instance
    """
    url = database_url or settings.database_url
    is_sqlite = is_sqlite_url(url)

    connect_args: dict = {"check_same_thread": False} if is_sqlite else {}

    engine_kwargs = {
        "echo": False,
        "future": True,
        "connect_args": connect_args,
    }
    if is_sqlite:
        engine_kwargs["poolclass"] = StaticPool

    engine = create_async_engine(url, **engine_kwargs)

    if is_sqlite:
        @event.listens_for(engine.sync_engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ANN001
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            if ":memory:" not in url:
                cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    return engine


# Global async engine instance
engine = get_async_engine()


async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def init_db() -> None:
    """
    Initialize the database.

    Production schemas are managed out of band; set ENABLE_DB_CREATE_ALL=1
    to let local/dev runs create missing tables on startup.
    """
    # Populate metadata before create_all()
    from app import models  # noqa: F401

    async with engine.begin() as conn:
        if os.getenv("ENABLE_DB_CREATE_ALL", "").lower() in {"1", "true", "yes"}:
            await conn.run_sync(Base.metadata.create_all)

        if is_sqlite_url(settings.database_url):
            await conn.execute(text("PRAGMA foreign_keys=ON"))


async def close_db() -> None:
    """Dispose the engine at application shutdown."""
    await engine.dispose()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function to get database session.

    The session commits when the request handler returns normally and
    rolls back on any exception, so a failed workflow step never leaves
    a half-applied status change behind.

    Yields:
        AsyncSession instance for database operations
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def get_db_context() -> AsyncSession:
    """
    Get database session for use outside of FastAPI dependencies.

    Used by the maintenance scripts:

        async with get_db_context() as db:
            ...
            await db.commit()

    Caller is responsible for committing.
    """
    return async_session_maker()
