"""
Registration certificate issuance, revocation and public verification.
"""

import logging
import random
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core import workflow
from app.models.application import HomestayApplication
from app.models.base import parse_iso, utc_now
from app.services.notifications import NotificationService

logger = logging.getLogger(__name__)

MAX_NUMBER_ATTEMPTS = 5


def generate_certificate_number(year: int) -> str:
    """HP-HST-{year}-{5 digit random}."""
    return f"HP-HST-{year}-{random.randint(10000, 99999)}"


def add_years(moment: datetime, years: int) -> datetime:
    """Same calendar date ``years`` later; 29 February becomes 28 February."""
    try:
        return moment.replace(year=moment.year + years)
    except ValueError:
        return moment.replace(year=moment.year + years, day=28)


async def _unused_certificate_number(session: AsyncSession, year: int) -> str:
    for _ in range(MAX_NUMBER_ATTEMPTS):
        candidate = generate_certificate_number(year)
        taken = await session.execute(
            select(HomestayApplication.id).where(
                HomestayApplication.certificate_number == candidate
            )
        )
        if taken.scalar_one_or_none() is None:
            return candidate
    raise RuntimeError("Unable to allocate a unique certificate number")


async def issue_certificate(
    session: AsyncSession,
    application: HomestayApplication,
    actor_id: Optional[str],
    feedback: Optional[str] = None,
    action: str = "approved",
    notify: bool = True,
) -> str:
    """
    Approve ``application`` and stamp a new certificate on it.

    Returns:
        The certificate number
    """
    issued = utc_now()
    number = await _unused_certificate_number(session, issued.year)
    expiry = add_years(issued, settings.certificate_validity_years)

    application.certificate_number = number
    application.certificate_issued_date = issued.isoformat()
    application.certificate_expiry_date = expiry.isoformat()
    application.approved_at = issued.isoformat()

    await workflow.record_transition(
        session,
        application,
        workflow.APPROVED,
        actor_id=actor_id,
        action=action,
        feedback=feedback or f"Certificate {number} issued.",
    )
    logger.info(
        "Certificate issued",
        extra={
            "application_id": application.id,
            "certificate_number": number,
            "expires": application.certificate_expiry_date,
        },
    )

    if notify:
        await NotificationService(session).notify_owner("application_approved", application)
    return number


async def revoke_certificate(
    session: AsyncSession,
    application: HomestayApplication,
    actor_id: Optional[str],
    feedback: str,
    action: str = "certificate_revoked",
) -> None:
    """Cancel the certificate with immediate expiry."""
    application.certificate_expiry_date = utc_now().isoformat()
    await workflow.record_transition(
        session,
        application,
        workflow.CERTIFICATE_CANCELLED,
        actor_id=actor_id,
        action=action,
        feedback=feedback,
    )


def certificate_validity(application: HomestayApplication, now: Optional[datetime] = None) -> str:
    """``valid``, ``expired`` or ``cancelled``."""
    if application.status in (workflow.CERTIFICATE_CANCELLED, workflow.SUPERSEDED):
        return "cancelled"
    expiry = parse_iso(application.certificate_expiry_date)
    now = now or utc_now()
    if application.status != workflow.APPROVED or expiry is None or expiry < now:
        return "expired"
    return "valid"


def certificate_summary(application: HomestayApplication) -> Dict[str, Any]:
    return {
        "certificateNumber": application.certificate_number,
        "validity": certificate_validity(application),
        "propertyName": application.property_name,
        "district": application.district,
        "category": application.category,
        "issuedDate": application.certificate_issued_date,
        "expiryDate": application.certificate_expiry_date,
    }
