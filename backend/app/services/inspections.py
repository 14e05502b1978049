"""
DA inspection service: assigned orders and report filing.
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import workflow
from app.core.config import settings
from app.core.errors import ApplicationNotFound, DistrictAccessDenied, WorkflowError
from app.core.security import User
from app.models.inspection import InspectionOrder, InspectionReport
from app.repositories.applications import ApplicationRepository

logger = logging.getLogger(__name__)

RECOMMENDATIONS = ("approve", "raise_objections", "reject")

SITE_OUTCOMES = {
    "raise_objections": "objection",
    "approve": "recommended",
}


def to_date(value: Any) -> date:
    """Accept ``date``, ``datetime`` or an ISO string (date or datetime)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        raise WorkflowError(f"Invalid date: {text}")


def check_inspection_date(
    actual: date,
    scheduled: date,
    override: bool,
    reason: Optional[str],
    today: Optional[date] = None,
) -> Optional[str]:
    """
    Validate the reported inspection date.

    Returns the remark to append when an early inspection is accepted,
    otherwise None.

    Raises:
        WorkflowError: Future date, or an early date without a valid override
    """
    today = today or date.today()
    if actual > today:
        raise WorkflowError("Inspection date cannot be in the future")
    if actual >= scheduled:
        return None

    if not override:
        raise WorkflowError(
            "Inspection date is before the scheduled date. "
            "Confirm the early inspection override to continue."
        )
    days_early = (scheduled - actual).days
    if days_early > settings.inspection_early_override_days:
        raise WorkflowError(
            f"Inspections can be reported at most {settings.inspection_early_override_days} "
            "days before the scheduled date"
        )
    reason = (reason or "").strip()
    if len(reason) < settings.inspection_override_min_reason:
        raise WorkflowError(
            f"Please explain the early inspection in at least "
            f"{settings.inspection_override_min_reason} characters"
        )
    return f"[Early inspection override: {reason}]"


class InspectionService:
    """
    Attributes:
        session: SQLAlchemy async session for database operations
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.applications = ApplicationRepository(session)

    async def list_assigned(self, user: User) -> List[Dict[str, Any]]:
        result = await self.session.execute(
            select(InspectionOrder)
            .where(InspectionOrder.assigned_to == user.id)
            .order_by(desc(InspectionOrder.inspection_date))
        )
        rows = []
        for order in result.scalars().all():
            application = await self.applications.get(order.application_id)
            report = await self.applications.get_report_for_order(order.id)
            rows.append({
                "order": order,
                "application": application,
                "report_submitted": report is not None,
            })
        return rows

    async def _get_assigned(self, order_id: str, user: User) -> InspectionOrder:
        order = await self.session.get(InspectionOrder, order_id)
        if order is None:
            raise ApplicationNotFound("Inspection order not found")
        if order.assigned_to != user.id:
            raise DistrictAccessDenied("This inspection is not assigned to you")
        return order

    async def get_detail(self, order_id: str, user: User) -> Dict[str, Any]:
        order = await self._get_assigned(order_id, user)
        application = await self.applications.get_or_404(order.application_id)
        return {
            "order": order,
            "application": application,
            "documents": await self.applications.list_documents(application.id),
            "report": await self.applications.get_report_for_order(order.id),
        }

    async def submit_report(
        self,
        order_id: str,
        user: User,
        actual_inspection_date: Any,
        recommendation: str,
        mandatory_remarks: Optional[str] = None,
        findings: Optional[Dict[str, Any]] = None,
        early_inspection_override: bool = False,
        early_inspection_reason: Optional[str] = None,
    ) -> InspectionReport:
        order = await self._get_assigned(order_id, user)
        if await self.applications.get_report_for_order(order.id) is not None:
            raise WorkflowError("Inspection report already submitted")
        if not actual_inspection_date:
            raise WorkflowError("Actual inspection date is required")
        if recommendation not in RECOMMENDATIONS:
            raise WorkflowError("Recommendation must be approve, raise_objections or reject")

        application = await self.applications.get_or_404(order.application_id)
        workflow.ensure_status(
            application,
            [workflow.INSPECTION_SCHEDULED],
            "This application is not awaiting an inspection report",
        )

        actual = to_date(actual_inspection_date)
        early_note = check_inspection_date(
            actual,
            to_date(order.inspection_date),
            early_inspection_override,
            early_inspection_reason,
        )
        remarks = (mandatory_remarks or "").strip()
        if early_note:
            remarks = f"{remarks}\n\n{early_note}".strip()

        report = InspectionReport(
            inspection_order_id=order.id,
            application_id=application.id,
            submitted_by=user.id,
            actual_inspection_date=actual.isoformat(),
            recommendation=recommendation,
            mandatory_remarks=remarks or None,
            early_inspection_override=bool(early_note),
            early_inspection_reason=early_inspection_reason.strip() if early_note else None,
        )
        report.set_findings(findings or {})
        self.session.add(report)
        order.status = "completed"

        if not await self.applications.has_action(application.id, "inspection_acknowledged"):
            await workflow.log_action(
                self.session,
                application_id=application.id,
                actor_id=user.id,
                action="inspection_acknowledged",
                previous_status=application.status,
                new_status=application.status,
                feedback="Acknowledged automatically when the inspection report was filed",
            )

        application.inspection_status = "completed"
        application.site_inspection_outcome = SITE_OUTCOMES.get(recommendation, "completed")
        await workflow.record_transition(
            self.session,
            application,
            workflow.INSPECTION_UNDER_REVIEW,
            actor_id=user.id,
            action="inspection_completed",
            feedback=remarks or None,
        )
        return report
