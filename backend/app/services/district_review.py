"""
District Tourism Officer review service.

The DTDO takes over forwarded applications, accepts/rejects/reverts
them, schedules the site inspection with a DA of the district, and acts
on the inspection report. Approval of cancellation requests also lands
here.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core import workflow
from app.core.districts import districts_match
from app.core.errors import ApplicationNotFound, DistrictAccessDenied, WorkflowError
from app.core.security import DEALING_ASSISTANT, User
from app.models.application import HomestayApplication
from app.models.base import utc_now_iso
from app.models.inspection import InspectionOrder
from app.repositories.applications import ApplicationRepository
from app.repositories.users import UserRepository
from app.services.applications import build_timeline
from app.services.certificates import issue_certificate, revoke_certificate
from app.services.notifications import NotificationService
from app.services.inspections import to_date
from app.services.scrutiny import auto_reject

logger = logging.getLogger(__name__)

PROCESS_DENIED = "You can only process applications from your district"


def _required(value: Optional[str], message: str) -> str:
    if not (value or "").strip():
        raise WorkflowError(message)
    return value.strip()


class DistrictReviewService:
    """
    DTDO operations, scoped to the officer's district.

    Attributes:
        session: SQLAlchemy async session for database operations
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.applications = ApplicationRepository(session)
        self.users = UserRepository(session)
        self.notifications = NotificationService(session)

    async def _get(self, application_id: str, user: User, write: bool = False) -> HomestayApplication:
        application = await self.applications.get_or_404(application_id)
        if not districts_match(application.district, user.district):
            raise DistrictAccessDenied(PROCESS_DENIED) if write else DistrictAccessDenied()
        return application

    async def list_applications(self, user: User) -> List[Dict[str, Any]]:
        if not user.district:
            return []
        applications = await self.applications.list_for_district(user.district)
        corrections = await self.applications.latest_corrections([a.id for a in applications])

        rows = []
        for application in applications:
            da = await self.users.get(application.da_id)
            correction = corrections.get(application.id)
            rows.append({
                "application": application,
                "owner": await self.users.get(application.user_id),
                "da_name": da.full_name if da else None,
                "latest_correction": {
                    "created_at": correction.created_at,
                    "feedback": correction.feedback,
                } if correction else None,
            })
        return rows

    async def get_detail(self, application_id: str, user: User) -> Dict[str, Any]:
        application = await self._get(application_id, user)
        order = await self.applications.latest_inspection_order(application.id)
        report = await self.applications.get_report_for_order(order.id) if order else None
        return {
            "application": application,
            "owner": await self.users.get(application.user_id),
            "documents": await self.applications.list_documents(application.id),
            "inspection_order": order,
            "inspection_report": report,
        }

    async def timeline(self, application_id: str, user: User) -> List[Dict[str, Any]]:
        application = await self._get(application_id, user)
        return await build_timeline(self.session, application.id)

    async def accept(self, application_id: str, user: User, remarks: Optional[str]) -> HomestayApplication:
        remarks = _required(remarks, "Remarks are required to accept the application")
        application = await self._get(application_id, user, write=True)
        workflow.ensure_status(
            application,
            [workflow.FORWARDED_TO_DTDO, workflow.DTDO_REVIEW],
            "Only applications forwarded by the DA can be accepted",
        )
        application.dtdo_id = user.id
        application.dtdo_remarks = remarks
        application.district_officer_id = user.id
        application.district_review_date = utc_now_iso()
        await workflow.record_transition(
            self.session,
            application,
            workflow.DTDO_REVIEW,
            actor_id=user.id,
            action="dtdo_accept",
            feedback=remarks,
        )
        return application

    async def reject(self, application_id: str, user: User, remarks: Optional[str]) -> HomestayApplication:
        remarks = _required(remarks, "Please provide a reason for rejection")
        application = await self._get(application_id, user, write=True)
        workflow.ensure_status(
            application,
            [workflow.FORWARDED_TO_DTDO, workflow.DTDO_REVIEW],
            "This application cannot be rejected at its current stage",
        )
        application.dtdo_id = user.id
        application.dtdo_remarks = remarks
        application.rejection_reason = remarks
        application.district_review_date = utc_now_iso()
        await workflow.record_transition(
            self.session,
            application,
            workflow.REJECTED,
            actor_id=user.id,
            action="dtdo_reject",
            feedback=remarks,
        )
        await self.notifications.notify_owner(
            "application_rejected", application, extras={"REMARKS": remarks}
        )
        return application

    async def revert(self, application_id: str, user: User, remarks: Optional[str]) -> Dict[str, Any]:
        remarks = _required(remarks, "Please specify what corrections are needed")
        application = await self._get(application_id, user, write=True)
        workflow.ensure_status(
            application,
            [workflow.FORWARDED_TO_DTDO, workflow.DTDO_REVIEW],
            "This application cannot be reverted at its current stage",
        )

        if (application.revert_count or 0) >= 1:
            await auto_reject(self.session, application, user.id, remarks)
            return {"application": application, "auto_rejected": True}

        application.dtdo_id = user.id
        application.dtdo_remarks = remarks
        application.clarification_requested = remarks
        application.revert_count = (application.revert_count or 0) + 1
        await workflow.record_transition(
            self.session,
            application,
            workflow.REVERTED_BY_DTDO,
            actor_id=user.id,
            action="dtdo_revert",
            feedback=remarks,
        )
        await self.notifications.notify_owner(
            "dtdo_revert", application, extras={"REMARKS": remarks}
        )
        return {"application": application, "auto_rejected": False}

    async def available_das(self, user: User) -> list:
        if not user.district:
            return []
        return await self.users.list_dealing_assistants(user.district)

    async def schedule_inspection(
        self,
        user: User,
        application_id: Optional[str],
        inspection_date: Optional[str],
        assigned_to: Optional[str],
        special_instructions: Optional[str] = None,
    ) -> InspectionOrder:
        if not application_id or not inspection_date or not assigned_to:
            raise WorkflowError("Missing required fields")

        to_date(inspection_date)
        application = await self._get(application_id, user, write=True)
        workflow.ensure_status(
            application,
            [workflow.DTDO_REVIEW],
            "Application must be accepted by DTDO before scheduling inspection",
        )

        da = await self.users.get(assigned_to)
        if (
            da is None
            or da.role != DEALING_ASSISTANT
            or not da.is_active
            or not districts_match(da.district, user.district)
        ):
            raise WorkflowError("Selected DA is not available for your district")

        now = utc_now_iso()
        order = InspectionOrder(
            application_id=application.id,
            scheduled_by=user.id,
            scheduled_date=now,
            assigned_to=da.id,
            assigned_date=now,
            inspection_date=inspection_date,
            inspection_address=application.address,
            special_instructions=special_instructions,
            status="scheduled",
        )
        self.session.add(order)

        application.assigned_dealing_assistant_id = da.id
        application.inspection_date = inspection_date
        application.inspection_status = "pending"
        await workflow.record_transition(
            self.session,
            application,
            workflow.INSPECTION_SCHEDULED,
            actor_id=user.id,
            action="inspection_scheduled",
            feedback=special_instructions or f"Inspection scheduled for {inspection_date[:10]}",
        )

        await self.notifications.notify_owner("inspection_scheduled", application)
        await self.notifications.queue("inspection_assigned", [da], application=application)
        return order

    async def get_inspection_report(self, application_id: str, user: User) -> Dict[str, Any]:
        application = await self._get(application_id, user)
        order = await self.applications.latest_inspection_order(application.id)
        if order is None:
            raise ApplicationNotFound("No inspection order found")
        report = await self.applications.get_report_for_order(order.id)
        if report is None:
            raise ApplicationNotFound("Inspection report not found")
        return {"application": application, "order": order, "report": report}

    async def approve_inspection(
        self,
        application_id: str,
        user: User,
        remarks: Optional[str] = None,
    ) -> HomestayApplication:
        """
        Accept the inspection outcome.

        Applications that already paid are approved immediately; the rest
        wait for payment in ``verified_for_payment``.
        """
        application = await self._get(application_id, user, write=True)
        workflow.ensure_status(
            application,
            [workflow.INSPECTION_UNDER_REVIEW],
            "Inspection report can only be approved while under review",
        )
        application.dtdo_id = user.id
        if remarks:
            application.dtdo_remarks = remarks.strip()

        if application.is_paid:
            await issue_certificate(self.session, application, user.id, feedback=remarks)
            return application

        await workflow.record_transition(
            self.session,
            application,
            workflow.VERIFIED_FOR_PAYMENT,
            actor_id=user.id,
            action="verified_for_payment",
            feedback=remarks,
        )
        await self.notifications.notify_owner("verified_for_payment", application)
        return application

    async def reject_inspection(self, application_id: str, user: User, reason: Optional[str]) -> HomestayApplication:
        reason = _required(reason, "Please provide a reason for rejection")
        application = await self._get(application_id, user, write=True)
        workflow.ensure_status(
            application,
            [workflow.INSPECTION_UNDER_REVIEW],
            "Inspection report can only be rejected while under review",
        )
        application.dtdo_id = user.id
        application.rejection_reason = reason
        await workflow.record_transition(
            self.session,
            application,
            workflow.REJECTED,
            actor_id=user.id,
            action="inspection_rejected",
            feedback=reason,
        )
        await self.notifications.notify_owner(
            "application_rejected", application, extras={"REMARKS": reason}
        )
        return application

    async def raise_objections(self, application_id: str, user: User, objections: Optional[str]) -> HomestayApplication:
        objections = _required(objections, "Please list the objections")
        application = await self._get(application_id, user, write=True)
        workflow.ensure_status(
            application,
            [workflow.INSPECTION_UNDER_REVIEW],
            "Objections can only be raised while the inspection is under review",
        )
        application.dtdo_id = user.id
        application.clarification_requested = objections
        await workflow.record_transition(
            self.session,
            application,
            workflow.OBJECTION_RAISED,
            actor_id=user.id,
            action="objection_raised",
            feedback=objections,
        )
        await self.notifications.notify_owner(
            "objection_raised", application, extras={"REMARKS": objections}
        )
        return application

    async def approve_cancellation(
        self,
        application_id: str,
        user: User,
        remarks: Optional[str] = None,
    ) -> HomestayApplication:
        application = await self._get(application_id, user, write=True)
        if application.application_kind != workflow.CANCEL_CERTIFICATE:
            raise WorkflowError("This action is only for cancellation requests")
        workflow.ensure_status(
            application,
            [workflow.FORWARDED_TO_DTDO, workflow.DTDO_REVIEW],
            "Cancellation request must be forwarded by the DA first",
        )

        feedback = remarks or "Certificate cancellation approved"
        application.dtdo_id = user.id
        application.certificate_expiry_date = utc_now_iso()
        await workflow.record_transition(
            self.session,
            application,
            workflow.CERTIFICATE_CANCELLED,
            actor_id=user.id,
            action="cancellation_approved",
            feedback=feedback,
        )

        if application.parent_application_id:
            parent = await self.applications.get(application.parent_application_id)
            if parent is not None:
                await revoke_certificate(
                    self.session,
                    parent,
                    actor_id=user.id,
                    feedback=f"Revoked by cancellation request {application.application_number}",
                )
        return application
