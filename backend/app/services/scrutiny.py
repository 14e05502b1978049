"""
Dealing Assistant scrutiny service.

DAs pick up submitted applications of their district, verify each
uploaded document, then either forward the file to the DTDO or send it
back to the applicant. A send-back needs an OTP that is issued to the
district's DTDO, and a second send-back rejects the application outright.
"""

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import workflow
from app.core.config import settings
from app.core.districts import districts_match
from app.core.errors import DistrictAccessDenied, WorkflowError
from app.core.security import User
from app.models.application import HomestayApplication
from app.models.base import parse_iso, utc_now, utc_now_iso
from app.models.document import Document, VERIFICATION_STATUSES
from app.models.notification import SendBackOtp
from app.repositories.applications import ApplicationRepository
from app.repositories.settings import SettingsRepository
from app.repositories.users import UserRepository
from app.services.notifications import NotificationService

logger = logging.getLogger(__name__)

AUTO_REJECT_TEMPLATE = (
    "APPLICATION AUTO-REJECTED: Application was sent back twice. "
    "Original reason: {reason}"
)
SEND_BACK_WARNING = (
    "This application has now been sent back once. "
    "A second send-back will reject it automatically."
)


def hash_otp(code: str) -> str:
    return hashlib.sha256(code.encode("utf-8")).hexdigest()


def generate_otp() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


def require_district(user: User) -> str:
    if not user.district:
        raise WorkflowError("DA must be assigned to a district")
    return user.district


@dataclass
class SendBackResult:
    application: HomestayApplication
    auto_rejected: bool
    new_revert_count: int
    warning: Optional[str] = None


async def auto_reject(
    session: AsyncSession,
    application: HomestayApplication,
    actor_id: str,
    reason: str,
) -> HomestayApplication:
    """Second send-back: reject instead of reverting again."""
    application.rejection_reason = AUTO_REJECT_TEMPLATE.format(reason=reason)
    application.revert_count = (application.revert_count or 0) + 1
    await workflow.record_transition(
        session,
        application,
        workflow.REJECTED,
        actor_id=actor_id,
        action="auto_rejected",
        feedback=application.rejection_reason,
    )
    await NotificationService(session).notify_owner(
        "application_rejected",
        application,
        extras={"REMARKS": application.rejection_reason},
    )
    return application


class ScrutinyService:
    """
    DA operations. Every call is scoped to the DA's own district.

    Attributes:
        session: SQLAlchemy async session for database operations
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.applications = ApplicationRepository(session)
        self.settings = SettingsRepository(session)
        self.users = UserRepository(session)
        self.notifications = NotificationService(session)

    async def _get_in_district(self, application_id: str, user: User) -> HomestayApplication:
        district = require_district(user)
        application = await self.applications.get_or_404(application_id)
        if not districts_match(application.district, district):
            raise DistrictAccessDenied()
        return application

    async def list_incomplete(self, user: User) -> List[HomestayApplication]:
        """Drafts owners of the district have not submitted yet."""
        district = require_district(user)
        return await self.applications.list_for_district(
            district, statuses=[workflow.DRAFT], newest_by="updated_at"
        )

    async def list_applications(self, user: User) -> List[Dict[str, Any]]:
        district = require_district(user)
        applications = await self.applications.list_for_district(district)
        corrections = await self.applications.latest_corrections([a.id for a in applications])

        rows = []
        for application in applications:
            owner = await self.users.get(application.user_id)
            correction = corrections.get(application.id)
            rows.append({
                "application": application,
                "owner": owner,
                "latest_correction": {
                    "created_at": correction.created_at,
                    "feedback": correction.feedback,
                } if correction else None,
            })
        return rows

    async def get_detail(self, application_id: str, user: User) -> Dict[str, Any]:
        application = await self._get_in_district(application_id, user)
        corrections = await self.applications.list_actions_of_type(
            application.id, "correction_resubmitted"
        )
        return {
            "application": application,
            "owner": await self.users.get(application.user_id),
            "documents": await self.applications.list_documents(application.id),
            "send_back_enabled": await self.settings.is_send_back_enabled(),
            "legacy_forward_enabled": await self.settings.is_legacy_forward_enabled(),
            "correction_history": [
                {"created_at": c.created_at, "feedback": c.feedback} for c in corrections
            ],
        }

    async def start_scrutiny(self, application_id: str, user: User) -> HomestayApplication:
        application = await self._get_in_district(application_id, user)
        workflow.ensure_status(
            application,
            [workflow.SUBMITTED],
            "Only submitted applications can be put under scrutiny",
        )
        application.da_id = user.id
        await workflow.record_transition(
            self.session,
            application,
            workflow.UNDER_SCRUTINY,
            actor_id=user.id,
            action="start_scrutiny",
        )
        return application

    async def save_scrutiny(
        self,
        application_id: str,
        user: User,
        verifications: List[Dict[str, Any]],
    ) -> List[Document]:
        """
        Record the DA's verdict on each document.

        ``verifications`` items carry ``document_id``, ``status`` and
        optional ``notes``.
        """
        application = await self._get_in_district(application_id, user)
        workflow.ensure_status(
            application,
            workflow.SCRUTINY_STATUSES,
            "Document updates are locked once the application leaves scrutiny",
        )

        documents = {d.id: d for d in await self.applications.list_documents(application.id)}
        now = utc_now_iso()
        for item in verifications:
            document = documents.get(item["document_id"])
            if document is None:
                raise WorkflowError("Document does not belong to this application")
            status = item["status"]
            if status not in VERIFICATION_STATUSES:
                raise WorkflowError(f"Invalid verification status: {status}")

            document.verification_status = status
            document.verification_notes = item.get("notes")
            document.is_verified = status == "verified"
            if status == "pending":
                document.verified_by = None
                document.verification_date = None
            else:
                document.verified_by = user.id
                document.verification_date = now

        await self.session.flush()
        logger.info(
            "Scrutiny progress saved",
            extra={
                "application_id": application.id,
                "actor_id": user.id,
                "documents": len(verifications),
            },
        )
        return list(documents.values())

    async def forward_to_dtdo(
        self,
        application_id: str,
        user: User,
        remarks: Optional[str],
    ) -> HomestayApplication:
        if not (remarks or "").strip():
            raise WorkflowError("Scrutiny remarks are required before forwarding.")

        application = await self._get_in_district(application_id, user)
        workflow.ensure_status(
            application,
            workflow.SCRUTINY_STATUSES,
            "Only applications under scrutiny can be forwarded",
        )
        if application.is_legacy and not await self.settings.is_legacy_forward_enabled():
            raise WorkflowError("Forwarding legacy RC applications to the DTDO is currently disabled")

        if application.application_kind != workflow.CANCEL_CERTIFICATE:
            documents = await self.applications.list_documents(application.id)
            if not documents:
                raise WorkflowError("Upload and verify required documents before forwarding")
            if any(d.verification_status == "pending" for d in documents):
                raise WorkflowError(
                    "Verify every document (mark Verified / Needs correction / Rejected) before forwarding"
                )

        now = utc_now_iso()
        application.da_id = user.id
        application.da_review_date = now
        application.da_forwarded_date = now
        application.da_remarks = remarks.strip()

        await workflow.record_transition(
            self.session,
            application,
            workflow.FORWARDED_TO_DTDO,
            actor_id=user.id,
            action="forwarded_to_dtdo",
            feedback=application.da_remarks,
        )
        await self.notifications.notify_owner("forwarded_to_dtdo", application)
        return application

    async def request_send_back_otp(self, application_id: str, user: User) -> Dict[str, Any]:
        """
        Issue a send-back OTP to the district's DTDOs.

        Any earlier unused code for the application is invalidated.
        """
        application = await self._get_in_district(application_id, user)
        workflow.ensure_status(
            application,
            workflow.SCRUTINY_STATUSES,
            "Only applications under scrutiny can be sent back",
        )
        officers = await self.users.list_district_officers(application.district)
        if not officers:
            raise WorkflowError("No District Tourism Officer is available to authorise this send-back")

        previous = await self.session.execute(
            select(SendBackOtp).where(
                SendBackOtp.application_id == application.id,
                SendBackOtp.consumed.is_(False),
            )
        )
        for stale in previous.scalars().all():
            stale.consumed = True

        code = generate_otp()
        expires_at = utc_now() + timedelta(minutes=settings.otp_ttl_minutes)
        self.session.add(SendBackOtp(
            application_id=application.id,
            requested_by=user.id,
            code_hash=hash_otp(code),
            expires_at=expires_at.isoformat(),
            consumed=False,
        ))
        await self.notifications.queue(
            "send_back_otp",
            officers,
            application=application,
            extras={"OTP": code, "OTP_TTL": settings.otp_ttl_minutes},
        )
        logger.info(
            "Send-back OTP issued",
            extra={"application_id": application.id, "actor_id": user.id},
        )
        return {"expires_at": expires_at.isoformat(), "recipients": len(officers)}

    async def _consume_otp(self, application_id: str, code: Optional[str]) -> bool:
        """
        Check ``code`` against the live OTP for the application.

        Wrong guesses are counted and committed straight away, since the
        failed send-back rolls the request back. Once ``otp_max_attempts``
        is reached the code is withdrawn and a new one must be requested.
        """
        if not code:
            return False
        result = await self.session.execute(
            select(SendBackOtp)
            .where(
                SendBackOtp.application_id == application_id,
                SendBackOtp.consumed.is_(False),
            )
            .order_by(SendBackOtp.created_at.desc())
        )
        otp = result.scalars().first()
        if otp is None:
            return False
        expires_at = parse_iso(otp.expires_at)
        if expires_at is None or expires_at < utc_now():
            return False
        if secrets.compare_digest(otp.code_hash, hash_otp(code.strip())):
            otp.consumed = True
            return True

        otp.failed_attempts = (otp.failed_attempts or 0) + 1
        if otp.failed_attempts >= settings.otp_max_attempts:
            otp.consumed = True
            logger.warning(
                "Send-back OTP withdrawn after repeated wrong entries",
                extra={"application_id": application_id, "attempts": otp.failed_attempts},
            )
        await self.session.commit()
        return False

    async def send_back(
        self,
        application_id: str,
        user: User,
        reason: Optional[str],
        otp_code: Optional[str] = None,
    ) -> SendBackResult:
        if not await self.settings.is_send_back_enabled():
            raise WorkflowError("Sending back to applicant is currently disabled")
        if not (reason or "").strip():
            raise WorkflowError("Please provide a reason for sending the application back")
        reason = reason.strip()

        application = await self._get_in_district(application_id, user)
        workflow.ensure_status(
            application,
            workflow.SCRUTINY_STATUSES,
            "Only applications under scrutiny can be sent back",
        )

        if (application.revert_count or 0) >= 1:
            await auto_reject(self.session, application, user.id, reason)
            return SendBackResult(
                application=application,
                auto_rejected=True,
                new_revert_count=application.revert_count,
            )

        if not await self._consume_otp(application.id, otp_code):
            raise WorkflowError(
                "OTP verification from DTDO is required before sending back",
                extra={"requireOtp": True, "revertCount": application.revert_count or 0},
            )

        application.revert_count = (application.revert_count or 0) + 1
        application.clarification_requested = reason
        application.da_remarks = reason
        application.da_id = user.id
        await workflow.record_transition(
            self.session,
            application,
            workflow.REVERTED_TO_APPLICANT,
            actor_id=user.id,
            action="reverted_by_da",
            feedback=reason,
        )
        await self.notifications.notify_owner(
            "da_send_back", application, extras={"REMARKS": reason}
        )
        return SendBackResult(
            application=application,
            auto_rejected=False,
            new_revert_count=application.revert_count,
            warning=SEND_BACK_WARNING,
        )
