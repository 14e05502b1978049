"""
Notification service.

Every workflow event produces an in-app notification row for the
recipient. When NOTIFICATION_WEBHOOK_URL is configured the same payload
is relayed (SMS/email gateway) in the background once the database
transaction commits; a rolled-back step sends nothing. Relay failures
are logged and never fail the workflow step that triggered them.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional, Set

import httpx
from sqlalchemy import desc, event, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import ApplicationNotFound
from app.core.retry import retry_with_backoff
from app.core.workflow import display_label
from app.models.application import HomestayApplication
from app.models.notification import Notification
from app.models.user import User

logger = logging.getLogger(__name__)

# event -> (title, message); placeholders are {APPLICATION_NUMBER} style
TEMPLATES: Dict[str, tuple] = {
    "application_submitted": (
        "Application submitted",
        "Your homestay application {APPLICATION_NUMBER} has been submitted for scrutiny.",
    ),
    "forwarded_to_dtdo": (
        "Application forwarded",
        "Application {APPLICATION_NUMBER} has been scrutinised and forwarded to the District Tourism Officer.",
    ),
    "da_send_back": (
        "Corrections required",
        "Application {APPLICATION_NUMBER} was sent back for corrections. Remarks: {REMARKS}",
    ),
    "dtdo_revert": (
        "Corrections required",
        "The District Tourism Officer requested corrections on {APPLICATION_NUMBER}. Remarks: {REMARKS}",
    ),
    "application_rejected": (
        "Application rejected",
        "Application {APPLICATION_NUMBER} has been rejected. Remarks: {REMARKS}",
    ),
    "inspection_scheduled": (
        "Inspection scheduled",
        "A site inspection for {APPLICATION_NUMBER} is scheduled on {INSPECTION_DATE}.",
    ),
    "inspection_assigned": (
        "Inspection assigned",
        "{RECIPIENT_NAME}, you have been assigned an inspection for application {APPLICATION_NUMBER} on {INSPECTION_DATE}.",
    ),
    "verified_for_payment": (
        "Payment due",
        "Inspection of {APPLICATION_NUMBER} is complete. Please pay the registration fee to receive your certificate.",
    ),
    "application_approved": (
        "Application approved",
        "Application {APPLICATION_NUMBER} is {STATUS}. Certificate: {CERTIFICATE_NUMBER}. {REMARKS}",
    ),
    "objection_raised": (
        "Objections raised",
        "Objections were raised after inspecting {APPLICATION_NUMBER}: {REMARKS}",
    ),
    "send_back_otp": (
        "Send-back authorisation code",
        "{RECIPIENT_NAME}, OTP {OTP} authorises sending application {APPLICATION_NUMBER} back to the applicant. Valid for {OTP_TTL} minutes.",
    ),
    "payment_received": (
        "Payment received",
        "We received your payment for {APPLICATION_NUMBER}.",
    ),
    "grievance_created": (
        "Grievance registered",
        "Your grievance {TICKET_NUMBER} ({SUBJECT}) has been registered.",
    ),
    "grievance_reply": (
        "New reply on your grievance",
        "An officer replied on grievance {TICKET_NUMBER} ({SUBJECT}).",
    ),
    "grievance_status_changed": (
        "Grievance updated",
        "Grievance {TICKET_NUMBER} is now {STATUS}. {REMARKS}",
    ),
}

# Keeps background relay tasks referenced until they finish
_pending_deliveries: Set[asyncio.Task] = set()

PENDING_RELAYS_KEY = "pending_notification_relays"


class _SafeDict(dict):
    def __missing__(self, key: str) -> str:
        return ""


def render(event: str, values: Dict[str, Any]) -> tuple:
    """
    Render the (title, message) pair for ``event``.

    Raises:
        KeyError: If the event has no template
    """
    title, body = TEMPLATES[event]
    safe = _SafeDict({k: ("" if v is None else v) for k, v in values.items()})
    return title.format_map(safe), " ".join(body.format_map(safe).split())


def application_values(application: Optional[HomestayApplication]) -> Dict[str, Any]:
    if application is None:
        return {}
    return {
        "APPLICATION_NUMBER": application.application_number,
        "STATUS": display_label(application.status),
        "CERTIFICATE_NUMBER": application.certificate_number or "",
        "INSPECTION_DATE": (application.inspection_date or "")[:10],
    }


@retry_with_backoff(max_retries=2, base_delay=0.5, exceptions=(httpx.HTTPError,))
async def _post_webhook(payload: Dict[str, Any]) -> None:
    async with httpx.AsyncClient(timeout=settings.notification_timeout_seconds) as client:
        response = await client.post(settings.notification_webhook_url, json=payload)
        response.raise_for_status()


async def deliver_webhook(payload: Dict[str, Any]) -> bool:
    """Relay one notification; returns False (and logs) on failure."""
    try:
        await _post_webhook(payload)
        return True
    except httpx.HTTPError as e:
        logger.warning(
            "Notification relay failed",
            extra={"event": payload.get("event"), "error": str(e)},
        )
        return False


class NotificationService:
    """
    Queues notifications inside the caller's database transaction.

    Attributes:
        session: SQLAlchemy async session for database operations
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def queue(
        self,
        event: str,
        recipients: Iterable[Optional[User]],
        application: Optional[HomestayApplication] = None,
        extras: Optional[Dict[str, Any]] = None,
    ) -> List[Notification]:
        """
        Create notifications for ``event``; relay delivery waits for commit.

        Recipients that are None (e.g. owner lookup failed) are skipped.
        """
        base_values = application_values(application)
        base_values.update(extras or {})

        created: List[Notification] = []
        for user in recipients:
            if user is None:
                continue
            values = {"RECIPIENT_NAME": user.full_name or user.username, **base_values}
            title, message = render(event, values)

            channels = ["in_app"]
            if settings.notification_webhook_url:
                channels.append("webhook")

            notification = Notification(
                user_id=user.id,
                application_id=application.id if application else None,
                event=event,
                title=title,
                message=message,
                is_read=False,
            )
            notification.set_channels(channels)
            self.session.add(notification)
            created.append(notification)

            if settings.notification_webhook_url:
                _pending_relays(self.session).append({
                    "event": event,
                    "title": title,
                    "message": message,
                    "mobile": user.mobile,
                    "email": user.email,
                    "applicationNumber": values.get("APPLICATION_NUMBER"),
                })

        await self.session.flush()
        logger.info(
            "Notifications queued",
            extra={
                "event": event,
                "application_id": application.id if application else None,
                "count": len(created),
            },
        )
        return created

    async def notify_owner(
        self,
        event: str,
        application: HomestayApplication,
        extras: Optional[Dict[str, Any]] = None,
    ) -> List[Notification]:
        owner = await self.session.get(User, application.user_id)
        return await self.queue(event, [owner], application=application, extras=extras)

    async def list_for_user(self, user_id: str, unread_only: bool = False) -> List[Notification]:
        """Inbox, newest first."""
        stmt = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            stmt = stmt.where(Notification.is_read.is_(False))
        result = await self.session.execute(stmt.order_by(desc(Notification.created_at)))
        return list(result.scalars().all())

    async def mark_read(self, notification_id: str, user_id: str) -> Notification:
        """
        Raises:
            ApplicationNotFound: Unknown id, or the notification belongs to someone else
        """
        notification = await self.session.get(Notification, notification_id)
        if notification is None or notification.user_id != user_id:
            raise ApplicationNotFound("Notification not found")
        notification.is_read = True
        await self.session.flush()
        return notification


def schedule_delivery(payload: Dict[str, Any]) -> None:
    task = asyncio.create_task(deliver_webhook(payload))
    _pending_deliveries.add(task)
    task.add_done_callback(_pending_deliveries.discard)


def _pending_relays(session: AsyncSession) -> List[Dict[str, Any]]:
    """Relay payloads held on the session until its transaction commits."""
    sync_session = session.sync_session
    if PENDING_RELAYS_KEY not in sync_session.info:
        sync_session.info[PENDING_RELAYS_KEY] = []
        event.listen(sync_session, "after_commit", _relay_after_commit)
        event.listen(sync_session, "after_rollback", _drop_pending_relays)
    return sync_session.info[PENDING_RELAYS_KEY]


def _relay_after_commit(sync_session) -> None:
    payloads = sync_session.info.get(PENDING_RELAYS_KEY) or []
    sync_session.info[PENDING_RELAYS_KEY] = []
    for payload in payloads:
        schedule_delivery(payload)


def _drop_pending_relays(sync_session) -> None:
    dropped = sync_session.info.get(PENDING_RELAYS_KEY) or []
    sync_session.info[PENDING_RELAYS_KEY] = []
    if dropped:
        logger.info("Notification relays dropped on rollback", extra={"count": len(dropped)})
