"""
Owner-side application service.

Drafting, submission checks, correction resubmission, documents,
inspection acknowledgement and certificate cancellation requests.
Officer-side steps live in scrutiny.py, district_review.py and
inspections.py.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import workflow
from app.core.config import settings
from app.core.errors import (
    ApplicationNotFound,
    ConflictError,
    DistrictAccessDenied,
    WorkflowError,
)
from app.core.features import is_feature_enabled
from app.core.fees import (
    DEFAULT_BEDS_PER_ROOM,
    MAX_BEDS_ALLOWED,
    MAX_ROOMS_ALLOWED,
    calculate_fee,
    requires_gstin,
    validate_category,
    validate_gstin,
)
from app.core.security import PROPERTY_OWNER, User
from app.models.application import HomestayApplication
from app.models.base import utc_now_iso
from app.models.document import Document
from app.models.inspection import InspectionOrder
from app.models.user import User as UserModel
from app.repositories.applications import ApplicationRepository
from app.repositories.settings import SettingsRepository
from app.repositories.users import UserRepository
from app.services.notifications import NotificationService
from app.services.numbering import allocate_application_number

logger = logging.getLogger(__name__)

# Columns an owner may fill in on a draft or while correcting
EDITABLE_FIELDS = (
    "property_name",
    "category",
    "location_type",
    "address",
    "district",
    "tehsil",
    "pincode",
    "owner_name",
    "owner_gender",
    "owner_mobile",
    "owner_email",
    "owner_aadhaar",
    "gstin",
    "single_bed_rooms",
    "single_bed_beds",
    "single_bed_room_rate",
    "double_bed_rooms",
    "double_bed_beds",
    "double_bed_room_rate",
    "family_suites",
    "family_suite_beds",
    "family_suite_rate",
    "attached_washrooms",
    "validity_years",
)

# Applications in these states do not block a fresh registration
CLOSED_STATUSES = frozenset({
    workflow.REJECTED,
    workflow.CERTIFICATE_CANCELLED,
    workflow.SUPERSEDED,
})

NO_ROOMS_MESSAGE = "Please configure at least one room before submitting the application."
MAX_ROOMS_MESSAGE = f"HP Homestay Rules 2025 permit a maximum of {MAX_ROOMS_ALLOWED} rooms."
MAX_BEDS_MESSAGE = f"HP Homestay Rules 2025 permit a maximum of {MAX_BEDS_ALLOWED} beds."
WASHROOM_MESSAGE = "Every room must have an attached washroom."
GSTIN_MESSAGE = "A valid 15 character GSTIN is required for Diamond and Gold category homestays."


@dataclass
class RoomType:
    label: str
    rooms_field: str
    beds_field: str
    rate_field: str
    default_beds: int


ROOM_TYPES = (
    RoomType("single", "single_bed_rooms", "single_bed_beds", "single_bed_room_rate",
             DEFAULT_BEDS_PER_ROOM["single"]),
    RoomType("double", "double_bed_rooms", "double_bed_beds", "double_bed_room_rate",
             DEFAULT_BEDS_PER_ROOM["double"]),
    RoomType("family suite", "family_suites", "family_suite_beds", "family_suite_rate",
             DEFAULT_BEDS_PER_ROOM["suite"]),
)


def count_rooms(application: HomestayApplication) -> int:
    return sum(getattr(application, room.rooms_field) or 0 for room in ROOM_TYPES)


def count_beds(application: HomestayApplication) -> int:
    """
    Total beds. Per-room bed counts entered by the owner only count when
    advanced room configuration is switched on.
    """
    advanced = is_feature_enabled("SHOW_ADVANCED_ROOM_CONFIG")
    total = 0
    for room in ROOM_TYPES:
        rooms = getattr(application, room.rooms_field) or 0
        beds = getattr(application, room.beds_field) if advanced else None
        total += rooms * (beds if beds else room.default_beds)
    return total


def highest_rate(application: HomestayApplication) -> float:
    rates = [
        getattr(application, room.rate_field) or 0
        for room in ROOM_TYPES
        if (getattr(application, room.rooms_field) or 0) > 0
    ]
    return max(rates, default=0)


def validate_for_submission(application: HomestayApplication) -> List[str]:
    """All problems that block submission, in form order."""
    errors: List[str] = []

    total_rooms = count_rooms(application)
    if total_rooms <= 0:
        return [NO_ROOMS_MESSAGE]
    if total_rooms > MAX_ROOMS_ALLOWED:
        errors.append(MAX_ROOMS_MESSAGE)
    if count_beds(application) > MAX_BEDS_ALLOWED:
        errors.append(MAX_BEDS_MESSAGE)
    if (application.attached_washrooms or 0) < total_rooms:
        errors.append(WASHROOM_MESSAGE)

    for room in ROOM_TYPES:
        if (getattr(application, room.rooms_field) or 0) > 0 and not getattr(application, room.rate_field):
            errors.append(f"Please enter the nightly rate for {room.label} rooms.")

    if not application.category:
        errors.append("Please select a homestay category.")
    else:
        errors.extend(validate_category(application.category, highest_rate(application)))
        if requires_gstin(application.category) and not validate_gstin(application.gstin):
            errors.append(GSTIN_MESSAGE)

    if not application.location_type:
        errors.append("Please select the location type (MC / TCP / GP).")
    if not application.district:
        errors.append("Please select the district.")

    return errors


def apply_fees(application: HomestayApplication) -> None:
    """
    Compute and store the fee snapshot.

    Raises:
        WorkflowError: If category, location type or validity are invalid
    """
    try:
        breakdown = calculate_fee(
            category=application.category,
            location_type=application.location_type,
            validity_years=application.validity_years or 1,
            owner_gender=application.owner_gender,
            district=application.district,
            tehsil=application.tehsil,
        )
    except ValueError as e:
        raise WorkflowError(str(e)) from e

    application.base_fee = breakdown.gross_fee
    application.total_fee = breakdown.payable
    application.set_fee_breakdown(breakdown.to_dict())


def clear_fees(application: HomestayApplication) -> None:
    """Drop a stale fee snapshot; it is recomputed on payment or submission."""
    application.base_fee = None
    application.total_fee = None
    application.fee_breakdown = None


def apply_form_fields(application: HomestayApplication, data: Dict[str, Any]) -> None:
    for field_name, value in data.items():
        if field_name in EDITABLE_FIELDS:
            setattr(application, field_name, value)
    if application.gstin:
        application.gstin = application.gstin.strip().upper()
    application.total_rooms = count_rooms(application)
    if not application.is_paid:
        clear_fees(application)


def ensure_owner(application: HomestayApplication, user: User) -> None:
    if application.user_id != user.id:
        raise DistrictAccessDenied("You do not have access to this application")


def ensure_can_view(application: HomestayApplication, user: User) -> None:
    """Owners see their own applications; every officer role may read."""
    if user.role == PROPERTY_OWNER:
        ensure_owner(application, user)
    elif not user.is_officer:
        raise DistrictAccessDenied("You do not have access to this application")


class ApplicationService:
    """
    Owner operations on homestay applications.

    Attributes:
        session: SQLAlchemy async session for database operations
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.applications = ApplicationRepository(session)
        self.settings = SettingsRepository(session)
        self.notifications = NotificationService(session)

    async def get_for_user(self, application_id: str, user: User) -> HomestayApplication:
        application = await self.applications.get_or_404(application_id)
        ensure_can_view(application, user)
        return application

    async def get_owned(self, application_id: str, user: User) -> HomestayApplication:
        application = await self.applications.get_or_404(application_id)
        ensure_owner(application, user)
        return application

    async def find_active_application(self, user_id: str) -> Optional[HomestayApplication]:
        """The owner's in-flight (or approved) new registration, if any."""
        result = await self.session.execute(
            select(HomestayApplication).where(
                HomestayApplication.user_id == user_id,
                HomestayApplication.application_kind == workflow.NEW_REGISTRATION,
                HomestayApplication.status != workflow.DRAFT,
                HomestayApplication.status.not_in(CLOSED_STATUSES),
            ).limit(1)
        )
        return result.scalar_one_or_none()

    async def create_draft(self, user: User, data: Dict[str, Any]) -> HomestayApplication:
        """
        Start a new registration draft with its application number.

        Raises:
            ConflictError: If the owner already has an active application
        """
        existing = await self.find_active_application(user.id)
        if existing is not None:
            raise ConflictError(
                "You already have an active homestay application",
                extra={"existingApplicationId": existing.id},
            )

        application = HomestayApplication(
            user_id=user.id,
            application_kind=workflow.NEW_REGISTRATION,
            status=workflow.DRAFT,
            validity_years=1,
            single_bed_rooms=0,
            double_bed_rooms=0,
            family_suites=0,
            attached_washrooms=0,
            owner_name=user.full_name,
            owner_mobile=user.mobile,
            owner_email=user.email,
        )
        apply_form_fields(application, data)
        application.application_number = await allocate_application_number(
            self.session, application.district
        )
        self.session.add(application)
        await self.session.flush()

        logger.info(
            "Draft created",
            extra={
                "application_id": application.id,
                "application_number": application.application_number,
                "actor_id": user.id,
            },
        )
        return application

    async def update_draft(
        self,
        application_id: str,
        user: User,
        data: Dict[str, Any],
    ) -> HomestayApplication:
        application = await self.get_owned(application_id, user)
        workflow.ensure_status(
            application, [workflow.DRAFT], "Only draft applications can be edited"
        )
        apply_form_fields(application, data)
        await self.session.flush()
        return application

    async def submit(self, application_id: str, user: User) -> HomestayApplication:
        """
        Validate a draft and hand it to the district for scrutiny.

        Raises:
            WorkflowError: Validation failures (all messages in ``extra["errors"]``),
                wrong status, or unpaid upfront fee
        """
        application = await self.get_owned(application_id, user)
        workflow.ensure_status(
            application,
            [workflow.DRAFT, workflow.PAID_PENDING_SUBMIT],
            "Only draft applications can be submitted",
        )
        payment_workflow = await self.settings.get_payment_workflow()
        return await self.submit_application(application, user.id, payment_workflow["workflow"])

    async def submit_application(
        self,
        application: HomestayApplication,
        actor_id: Optional[str],
        payment_workflow: str,
    ) -> HomestayApplication:
        """Shared by the owner submit and the upfront auto-submit after payment."""
        errors = validate_for_submission(application)
        if errors:
            raise WorkflowError(errors[0], extra={"errors": errors})

        if payment_workflow == "upfront" and not application.is_paid:
            raise WorkflowError(
                "Please pay the registration fee before submitting the application",
                extra={"requirePayment": True},
            )

        apply_fees(application)
        if application.is_paid and not await self.settings.is_payment_test_mode():
            paid = Decimal(application.payment_amount or 0)
            if paid < Decimal(application.total_fee):
                raise WorkflowError(
                    "The amount paid does not cover the registration fee for this application",
                    extra={"amountPaid": str(paid), "totalFee": str(application.total_fee)},
                )
        application.total_rooms = count_rooms(application)
        application.submitted_at = utc_now_iso()

        await workflow.record_transition(
            self.session,
            application,
            workflow.SUBMITTED,
            actor_id=actor_id,
            action="submitted",
        )
        await self.notifications.notify_owner("application_submitted", application)
        return application

    async def resubmit_correction(
        self,
        application_id: str,
        user: User,
        data: Dict[str, Any],
        consent_text: Optional[str] = None,
    ) -> HomestayApplication:
        """
        Owner answers a send-back, revert or objection.

        The application returns to DA scrutiny, or straight to the DTDO
        when CORRECTION_RESUBMIT_TARGET is "dtdo".
        """
        application = await self.get_owned(application_id, user)
        if not workflow.is_correction_required_status(application.status):
            raise WorkflowError("This application is not awaiting corrections")

        apply_form_fields(application, data)
        errors = validate_for_submission(application)
        if errors:
            raise WorkflowError(errors[0], extra={"errors": errors})
        if not application.is_paid:
            apply_fees(application)

        target = (
            workflow.DTDO_REVIEW
            if settings.correction_resubmit_target == "dtdo"
            else workflow.UNDER_SCRUTINY
        )
        application.correction_submission_count = (application.correction_submission_count or 0) + 1
        application.clarification_requested = None
        application.dtdo_remarks = None
        application.district_notes = None

        await workflow.record_transition(
            self.session,
            application,
            target,
            actor_id=user.id,
            action="correction_resubmitted",
            feedback=consent_text or "Applicant confirmed that the requested corrections were made.",
        )
        return application

    async def list_for_owner(self, user: User) -> List[HomestayApplication]:
        return await self.applications.list_for_owner(user.id)

    async def primary_for_owner(self, user: User) -> Optional[HomestayApplication]:
        """The owner's newest application that has not been replaced by a later one."""
        if user.role != PROPERTY_OWNER:
            return None
        for application in await self.list_for_owner(user):
            if application.status != workflow.SUPERSEDED:
                return application
        return None

    async def delete_draft(self, application_id: str, user: User) -> None:
        application = await self.get_owned(application_id, user)
        workflow.ensure_status(
            application, [workflow.DRAFT], "Only draft applications can be deleted"
        )
        await self.session.delete(application)
        await self.session.flush()
        logger.info(
            "Draft deleted",
            extra={"application_id": application_id, "actor_id": user.id},
        )

    # Documents

    async def add_document(
        self,
        application_id: str,
        user: User,
        document_type: str,
        file_name: str,
        file_path: str,
        mime_type: Optional[str] = None,
    ) -> Document:
        application = await self.get_owned(application_id, user)
        if application.status != workflow.DRAFT and not workflow.is_correction_required_status(application.status):
            raise WorkflowError("Documents can only be changed while the application is editable")

        document = Document(
            application_id=application.id,
            document_type=document_type,
            file_name=file_name,
            file_path=file_path,
            mime_type=mime_type,
            verification_status="pending",
            is_verified=False,
        )
        self.session.add(document)
        await self.session.flush()
        return document

    async def list_documents(self, application_id: str, user: User) -> List[Document]:
        application = await self.get_for_user(application_id, user)
        return await self.applications.list_documents(application.id)

    # Inspection

    async def get_inspection_schedule(
        self,
        application_id: str,
        user: User,
    ) -> Optional[InspectionOrder]:
        application = await self.get_for_user(application_id, user)
        return await self.applications.latest_inspection_order(application.id)

    async def acknowledged_at(self, application_id: str) -> Optional[str]:
        action = await self.applications.latest_action(application_id, "inspection_acknowledged")
        return action.created_at if action else None

    async def get_inspection_report(self, application_id: str, user: User) -> Dict[str, Any]:
        """
        Latest inspection order and its report, if filed, with the people
        involved. Owners see only their own applications.

        Raises:
            ApplicationNotFound: If no inspection was ever scheduled
        """
        application = await self.get_for_user(application_id, user)
        order = await self.applications.latest_inspection_order(application.id)
        if order is None:
            raise ApplicationNotFound("Inspection not scheduled yet")
        report = await self.applications.get_report_for_order(order.id)
        users = UserRepository(self.session)
        return {
            "application": application,
            "order": order,
            "report": report,
            "owner": await users.get(application.user_id),
            "da": await users.get(order.assigned_to),
            "dtdo": await users.get(order.scheduled_by),
        }

    async def acknowledge_inspection(self, application_id: str, user: User) -> InspectionOrder:
        application = await self.get_owned(application_id, user)
        order = await self.applications.latest_inspection_order(application.id)
        if order is None or order.status != "scheduled":
            raise WorkflowError("No upcoming inspection to acknowledge")
        if await self.applications.has_action(application.id, "inspection_acknowledged"):
            raise WorkflowError("Inspection schedule already acknowledged")

        await workflow.log_action(
            self.session,
            application_id=application.id,
            actor_id=user.id,
            action="inspection_acknowledged",
            previous_status=application.status,
            new_status=application.status,
            feedback=f"Owner acknowledged inspection on {order.inspection_date[:10]}",
        )
        return order

    # Timeline

    async def timeline(self, application_id: str, user: User) -> List[Dict[str, Any]]:
        application = await self.get_for_user(application_id, user)
        return await build_timeline(self.session, application.id)

    # Service requests

    async def request_cancellation(
        self,
        application_id: str,
        user: User,
        reason: str,
    ) -> HomestayApplication:
        """
        File a certificate cancellation request against an approved application.

        The request is a new ``cancel_certificate`` application that goes
        straight to DA scrutiny.
        """
        parent = await self.get_owned(application_id, user)
        if parent.status != workflow.APPROVED:
            raise WorkflowError("Only approved registrations can be cancelled")
        if not (reason or "").strip():
            raise WorkflowError("Please provide a reason for cancellation")

        pending = await self.session.execute(
            select(HomestayApplication.id).where(
                HomestayApplication.parent_application_id == parent.id,
                HomestayApplication.application_kind == workflow.CANCEL_CERTIFICATE,
                HomestayApplication.status.not_in(CLOSED_STATUSES | {workflow.APPROVED}),
            ).limit(1)
        )
        existing_id = pending.scalar_one_or_none()
        if existing_id is not None:
            raise ConflictError(
                "A cancellation request is already in progress",
                extra={"existingApplicationId": existing_id},
            )

        request = HomestayApplication(
            user_id=user.id,
            application_kind=workflow.CANCEL_CERTIFICATE,
            parent_application_id=parent.id,
            status=workflow.SUBMITTED,
            submitted_at=utc_now_iso(),
            validity_years=parent.validity_years,
            total_rooms=parent.total_rooms,
            single_bed_rooms=parent.single_bed_rooms,
            double_bed_rooms=parent.double_bed_rooms,
            family_suites=parent.family_suites,
            attached_washrooms=parent.attached_washrooms,
        )
        for field_name in (
            "property_name", "category", "location_type", "address", "district",
            "tehsil", "pincode", "owner_name", "owner_gender", "owner_mobile",
            "owner_email", "owner_aadhaar", "gstin",
        ):
            setattr(request, field_name, getattr(parent, field_name))
        request.application_number = await allocate_application_number(
            self.session, parent.district
        )
        self.session.add(request)
        await self.session.flush()

        await workflow.log_action(
            self.session,
            application_id=request.id,
            actor_id=user.id,
            action="submitted",
            previous_status=None,
            new_status=workflow.SUBMITTED,
            feedback=reason.strip(),
        )
        return request


async def build_timeline(session: AsyncSession, application_id: str) -> List[Dict[str, Any]]:
    """Audit actions oldest first, each with a summary of who acted."""
    actions = await ApplicationRepository(session).list_actions(application_id)
    actor_ids = {a.officer_id for a in actions if a.officer_id}
    actors: Dict[str, UserModel] = {}
    if actor_ids:
        result = await session.execute(select(UserModel).where(UserModel.id.in_(actor_ids)))
        actors = {u.id: u for u in result.scalars().all()}

    timeline = []
    for action in actions:
        actor = actors.get(action.officer_id)
        timeline.append({
            "id": action.id,
            "action": action.action,
            "previous_status": action.previous_status,
            "new_status": action.new_status,
            "feedback": action.feedback,
            "created_at": action.created_at,
            "actor": {
                "id": actor.id,
                "full_name": actor.full_name,
                "role": actor.role,
                "district": actor.district,
            } if actor else None,
        })
    return timeline

