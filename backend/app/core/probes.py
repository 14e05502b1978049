"""
Health probe functions for dependency checks.

Each probe returns bool (True = healthy) and never raises:
- Database connectivity (SQLite/PostgreSQL), critical
- HimKosh key file presence, informational (payments fail without it)
"""

import asyncio
import logging

from sqlalchemy import text

from app.core.config import settings
from app.core.database import async_session_maker
from app.services.himkosh import key_file_present

logger = logging.getLogger(__name__)


async def check_database(timeout_seconds: float = 2.0) -> bool:
    """
    Check database connectivity.

    Executes a simple SELECT 1 query under a timeout so an unreachable
    database cannot hang the readiness probe.

    Args:
        timeout_seconds: Maximum time to wait for response (default: 2.0)

    Returns:
        True if database is reachable and healthy, False otherwise
    """
    try:
        async with asyncio.timeout(timeout_seconds):
            async with async_session_maker() as session:
                result = await session.execute(text("SELECT 1"))
                result.scalar()
                return True

    except asyncio.TimeoutError:
        logger.warning("Database probe timed out")
        return False
    except Exception as e:
        logger.warning(f"Database probe failed: {e}")
        return False


async def check_himkosh_key() -> bool:
    """True when the HimKosh key file exists at HIMKOSH_KEY_FILE."""
    return key_file_present(settings.himkosh_key_file)
