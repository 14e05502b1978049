"""
Application number allocation.

Numbers look like ``HP-HS-2025-SML-000005``: scheme prefix, year, district
code and a six digit serial that restarts every year per district. Legacy
RC onboarding cases use the ``LG-HS`` prefix.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.districts import normalize_district
from app.core.errors import WorkflowError
from app.models.application import ApplicationSequence, HomestayApplication

logger = logging.getLogger(__name__)

MAX_ALLOCATION_ATTEMPTS = 5

REGULAR_PREFIX = "HP-HS"
LEGACY_PREFIX = "LG-HS"

DISTRICT_CODES = {
    "bilaspur": "BLP",
    "chamba": "CHM",
    "hamirpur": "HMR",
    "kangra": "KGR",
    "kinnaur": "KNR",
    "kullu": "KLU",
    "lahaul and spiti": "LHS",
    "lahaul-spiti": "LHS",
    "mandi": "MND",
    "shimla": "SML",
    "sirmaur": "SMR",
    "solan": "SLN",
    "una": "UNA",
}


def district_code(district: Optional[str]) -> str:
    """Three letter district code; unknown districts use their first letters."""
    normalized = normalize_district(district)
    if normalized in DISTRICT_CODES:
        return DISTRICT_CODES[normalized]
    letters = re.sub(r"[^a-z]", "", normalized).upper()
    return (letters[:3] or "GEN").ljust(3, "X")


def format_application_number(prefix: str, year: int, code: str, serial: int) -> str:
    return f"{prefix}-{year}-{code}-{serial:06d}"


async def allocate_application_number(
    session: AsyncSession,
    district: Optional[str],
    is_legacy: bool = False,
    year: Optional[int] = None,
) -> str:
    """
    Reserve the next free application number for ``district``.

    The sequence row is bumped inside the caller's transaction. If the
    candidate number is already taken (imported data, manual fixes) the
    sequence advances and allocation retries, up to
    MAX_ALLOCATION_ATTEMPTS times.

    Raises:
        WorkflowError: When no free number was found
    """
    prefix = LEGACY_PREFIX if is_legacy else REGULAR_PREFIX
    year = year or datetime.now(timezone.utc).year
    code = district_code(district)
    scope = f"{prefix}-{year}-{code}"

    sequence = await session.get(ApplicationSequence, scope, with_for_update=True)
    if sequence is None:
        sequence = ApplicationSequence(scope=scope, last_value=0)
        session.add(sequence)

    for attempt in range(1, MAX_ALLOCATION_ATTEMPTS + 1):
        sequence.last_value = (sequence.last_value or 0) + 1
        candidate = format_application_number(prefix, year, code, sequence.last_value)

        taken = await session.execute(
            select(HomestayApplication.id).where(
                HomestayApplication.application_number == candidate
            )
        )
        if taken.scalar_one_or_none() is None:
            await session.flush()
            return candidate

        logger.warning(
            "Application number already in use, retrying",
            extra={"application_number": candidate, "attempt": attempt},
        )

    raise WorkflowError("Unable to allocate application number")
