"""
Grievance (support ticket) service.

Owners raise ``owner_grievance`` tickets about their applications;
officers may also open ``internal_ticket`` items among themselves. Every
field change is written to the grievance audit log.
"""

import logging
import secrets
import string
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ApplicationNotFound, DistrictAccessDenied, WorkflowError
from app.core.security import User
from app.models.base import utc_now, utc_now_iso
from app.models.grievance import Grievance, GrievanceAuditLog, GrievanceComment
from app.models.user import User as UserModel
from app.services.notifications import NotificationService

logger = logging.getLogger(__name__)

OWNER_GRIEVANCE = "owner_grievance"
INTERNAL_TICKET = "internal_ticket"
TICKET_TYPES = (OWNER_GRIEVANCE, INTERNAL_TICKET)

STATUSES = ("open", "in_progress", "resolved", "closed")
PRIORITIES = ("low", "medium", "high", "urgent")

_TICKET_ALPHABET = string.ascii_uppercase + string.digits


def generate_ticket_number(ticket_type: str, year: Optional[int] = None) -> str:
    prefix = "INT" if ticket_type == INTERNAL_TICKET else "GRV"
    year = year or utc_now().year
    suffix = "".join(secrets.choice(_TICKET_ALPHABET) for _ in range(6))
    return f"{prefix}-{year}-{suffix}"


def is_unread_for(grievance: Grievance, user: User) -> bool:
    last_read = grievance.last_read_by_officer if user.is_officer else grievance.last_read_by_owner
    last_activity = grievance.last_comment_at
    return bool(last_activity) and (not last_read or last_read < last_activity)


class GrievanceService:
    """
    Attributes:
        session: SQLAlchemy async session for database operations
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.notifications = NotificationService(session)

    async def _audit(
        self,
        grievance: Grievance,
        action: str,
        user: User,
        old_value: Optional[str] = None,
        new_value: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        self.session.add(GrievanceAuditLog(
            grievance_id=grievance.id,
            action=action,
            old_value=old_value,
            new_value=new_value,
            performed_by=user.id,
            ip_address=ip_address,
            user_agent=(user_agent or "")[:255] or None,
        ))

    async def _get_visible(self, grievance_id: str, user: User) -> Grievance:
        grievance = await self.session.get(Grievance, grievance_id)
        if grievance is None:
            raise ApplicationNotFound("Grievance not found")
        if not user.is_officer and grievance.user_id != user.id:
            raise DistrictAccessDenied("You do not have access to this grievance")
        return grievance

    async def create(
        self,
        user: User,
        subject: str,
        description: str,
        category: str,
        priority: str = "medium",
        ticket_type: str = OWNER_GRIEVANCE,
        application_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Grievance:
        if not (subject or "").strip() or not (description or "").strip():
            raise WorkflowError("Subject and description are required")
        if priority not in PRIORITIES:
            raise WorkflowError(f"Invalid priority: {priority}")
        if not user.is_officer or ticket_type not in TICKET_TYPES:
            ticket_type = OWNER_GRIEVANCE

        now = utc_now_iso()
        grievance = Grievance(
            ticket_number=generate_ticket_number(ticket_type),
            ticket_type=ticket_type,
            user_id=user.id,
            application_id=application_id,
            category=category,
            priority=priority,
            status="open",
            subject=subject.strip(),
            description=description.strip(),
            last_comment_at=now,
        )
        if user.is_officer:
            grievance.last_read_by_officer = now
        else:
            grievance.last_read_by_owner = now
        self.session.add(grievance)
        await self.session.flush()

        await self._audit(grievance, "created", user, new_value=grievance.status,
                          ip_address=ip_address, user_agent=user_agent)
        owner = await self.session.get(UserModel, user.id)
        await self.notifications.queue(
            "grievance_created",
            [owner],
            extras={"TICKET_NUMBER": grievance.ticket_number, "SUBJECT": grievance.subject},
        )
        logger.info(
            "Grievance created",
            extra={"grievance_id": grievance.id, "ticket_number": grievance.ticket_number},
        )
        return grievance

    async def list_for_user(self, user: User, ticket_type: Optional[str] = None) -> List[Grievance]:
        stmt = select(Grievance)
        if user.is_officer:
            if ticket_type:
                stmt = stmt.where(Grievance.ticket_type == ticket_type)
        else:
            stmt = stmt.where(
                Grievance.user_id == user.id,
                Grievance.ticket_type == OWNER_GRIEVANCE,
            )
        result = await self.session.execute(stmt.order_by(Grievance.created_at.desc()))
        return list(result.scalars().all())

    async def get_detail(self, grievance_id: str, user: User) -> Dict[str, Any]:
        """Ticket with its comments; marks it read for the viewer's side."""
        grievance = await self._get_visible(grievance_id, user)
        stmt = select(GrievanceComment).where(GrievanceComment.grievance_id == grievance.id)
        if not user.is_officer:
            stmt = stmt.where(GrievanceComment.is_internal.is_(False))
        comments = (await self.session.execute(stmt.order_by(GrievanceComment.created_at))).scalars().all()
        self._mark_read(grievance, user)
        await self.session.flush()
        return {"grievance": grievance, "comments": list(comments)}

    def _mark_read(self, grievance: Grievance, user: User) -> None:
        if user.is_officer:
            grievance.last_read_by_officer = utc_now_iso()
        elif grievance.user_id == user.id:
            grievance.last_read_by_owner = utc_now_iso()

    async def mark_read(self, grievance_id: str, user: User) -> Grievance:
        grievance = await self._get_visible(grievance_id, user)
        self._mark_read(grievance, user)
        await self.session.flush()
        return grievance

    async def add_comment(
        self,
        grievance_id: str,
        user: User,
        comment: str,
        is_internal: bool = False,
    ) -> GrievanceComment:
        if not (comment or "").strip():
            raise WorkflowError("Comment cannot be empty")
        grievance = await self._get_visible(grievance_id, user)

        row = GrievanceComment(
            grievance_id=grievance.id,
            user_id=user.id,
            comment=comment.strip(),
            is_internal=bool(is_internal) and user.is_officer,
        )
        self.session.add(row)
        grievance.last_comment_at = utc_now_iso()
        self._mark_read(grievance, user)
        await self.session.flush()

        if user.is_officer and not row.is_internal and grievance.user_id != user.id:
            owner = await self.session.get(UserModel, grievance.user_id)
            await self.notifications.queue(
                "grievance_reply",
                [owner],
                extras={"TICKET_NUMBER": grievance.ticket_number, "SUBJECT": grievance.subject},
            )
        return row

    async def update(
        self,
        grievance_id: str,
        user: User,
        changes: Dict[str, Any],
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Grievance:
        """Officer update of status, priority, assignee and resolution notes."""
        if not user.is_officer:
            raise DistrictAccessDenied("Only officers can update grievances")
        grievance = await self._get_visible(grievance_id, user)

        if "status" in changes and changes["status"] not in STATUSES:
            raise WorkflowError(f"Invalid status: {changes['status']}")
        if "priority" in changes and changes["priority"] not in PRIORITIES:
            raise WorkflowError(f"Invalid priority: {changes['priority']}")

        status_changed = False
        for field_name in ("status", "priority", "assigned_to", "resolution_notes"):
            if field_name not in changes:
                continue
            old, new = getattr(grievance, field_name), changes[field_name]
            if old == new:
                continue
            setattr(grievance, field_name, new)
            await self._audit(
                grievance, f"{field_name}_changed", user,
                old_value=None if old is None else str(old),
                new_value=None if new is None else str(new),
                ip_address=ip_address, user_agent=user_agent,
            )
            if field_name == "status":
                status_changed = True
                if new == "resolved":
                    grievance.resolved_at = utc_now_iso()

        await self.session.flush()
        if status_changed:
            owner = await self.session.get(UserModel, grievance.user_id)
            await self.notifications.queue(
                "grievance_status_changed",
                [owner],
                extras={
                    "TICKET_NUMBER": grievance.ticket_number,
                    "SUBJECT": grievance.subject,
                    "STATUS": grievance.status.replace("_", " "),
                    "REMARKS": grievance.resolution_notes or "",
                },
            )
        return grievance

    async def audit_log(self, grievance_id: str, user: User) -> List[GrievanceAuditLog]:
        if not user.is_officer:
            raise DistrictAccessDenied("Only officers can view the audit log")
        grievance = await self._get_visible(grievance_id, user)
        result = await self.session.execute(
            select(GrievanceAuditLog)
            .where(GrievanceAuditLog.grievance_id == grievance.id)
            .order_by(GrievanceAuditLog.created_at)
        )
        return list(result.scalars().all())

    async def unread_count(self, user: User) -> int:
        if user.is_officer:
            condition = or_(
                Grievance.last_read_by_officer.is_(None),
                Grievance.last_read_by_officer < Grievance.last_comment_at,
            )
            stmt = select(func.count(Grievance.id)).where(
                Grievance.last_comment_at.is_not(None), condition
            )
        else:
            condition = or_(
                Grievance.last_read_by_owner.is_(None),
                Grievance.last_read_by_owner < Grievance.last_comment_at,
            )
            stmt = select(func.count(Grievance.id)).where(
                and_(
                    Grievance.user_id == user.id,
                    Grievance.ticket_type == OWNER_GRIEVANCE,
                    Grievance.last_comment_at.is_not(None),
                    condition,
                )
            )
        return (await self.session.execute(stmt)).scalar_one()
