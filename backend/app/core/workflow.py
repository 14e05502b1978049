"""
Application workflow model.

Defines the raw statuses an application moves through, how they collapse
into the small set of display statuses shown to owners and the public,
and the helper that records a transition together with its audit row.

Main path:

    draft -> submitted -> under_scrutiny -> forwarded_to_dtdo -> dtdo_review
          -> inspection_scheduled -> inspection_under_review
          -> verified_for_payment -> approved

Side exits: rejected (any review step), correction statuses (back to the
owner, who resubmits into scrutiny), certificate_cancelled.
"""

import logging
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import WorkflowError
from app.core.logging_config import log_with_context
from app.models.action import ApplicationAction
from app.models.application import HomestayApplication

logger = logging.getLogger(__name__)

# Raw statuses
DRAFT = "draft"
PAID_PENDING_SUBMIT = "paid_pending_submit"
SUBMITTED = "submitted"
UNDER_SCRUTINY = "under_scrutiny"
LEGACY_RC_REVIEW = "legacy_rc_review"
FORWARDED_TO_DTDO = "forwarded_to_dtdo"
DTDO_REVIEW = "dtdo_review"
REVERTED_TO_APPLICANT = "reverted_to_applicant"
REVERTED_BY_DTDO = "reverted_by_dtdo"
OBJECTION_RAISED = "objection_raised"
SENT_BACK_FOR_CORRECTIONS = "sent_back_for_corrections"
CORRECTION_RESUBMITTED = "correction_resubmitted"
INSPECTION_SCHEDULED = "inspection_scheduled"
INSPECTION_UNDER_REVIEW = "inspection_under_review"
VERIFIED_FOR_PAYMENT = "verified_for_payment"
APPROVED = "approved"
REJECTED = "rejected"
CERTIFICATE_CANCELLED = "certificate_cancelled"
SUPERSEDED = "superseded"

CORRECTION_STATUSES = frozenset({
    SENT_BACK_FOR_CORRECTIONS,
    REVERTED_TO_APPLICANT,
    REVERTED_BY_DTDO,
    OBJECTION_RAISED,
})
SCRUTINY_STATUSES = frozenset({UNDER_SCRUTINY, LEGACY_RC_REVIEW})

# Application kinds
NEW_REGISTRATION = "new_registration"
RENEWAL = "renewal"
ADD_ROOMS = "add_rooms"
DELETE_ROOMS = "delete_rooms"
CANCEL_CERTIFICATE = "cancel_certificate"
CHANGE_CATEGORY = "change_category"
APPLICATION_KINDS = (
    NEW_REGISTRATION,
    RENEWAL,
    ADD_ROOMS,
    DELETE_ROOMS,
    CANCEL_CERTIFICATE,
    CHANGE_CATEGORY,
)

# Display statuses
DISPLAY_LABELS = {
    "draft": "Draft",
    "submitted": "Submitted",
    "under_review": "Under Review",
    "correction_required": "Correction Required",
    "inspection_pending": "Inspection Pending",
    "payment_pending": "Payment Pending",
    "approved": "Approved",
    "rejected": "Rejected",
    "cancelled": "Cancelled",
}

_CONSOLIDATION = {
    DRAFT: "draft",
    SUBMITTED: "submitted",
    FORWARDED_TO_DTDO: "submitted",
    UNDER_SCRUTINY: "under_review",
    DTDO_REVIEW: "under_review",
    LEGACY_RC_REVIEW: "under_review",
    CORRECTION_RESUBMITTED: "under_review",
    SENT_BACK_FOR_CORRECTIONS: "correction_required",
    REVERTED_TO_APPLICANT: "correction_required",
    REVERTED_BY_DTDO: "correction_required",
    OBJECTION_RAISED: "correction_required",
    INSPECTION_SCHEDULED: "inspection_pending",
    "scheduled": "inspection_pending",
    VERIFIED_FOR_PAYMENT: "payment_pending",
    APPROVED: "approved",
    REJECTED: "rejected",
    CERTIFICATE_CANCELLED: "cancelled",
    SUPERSEDED: "cancelled",
}


def consolidate_status(raw: Optional[str]) -> str:
    """
    Collapse a raw workflow status into a display status.

    ``None`` is a fresh draft; statuses this table does not know about
    are treated as still being reviewed.
    """
    if raw is None:
        return "draft"
    return _CONSOLIDATION.get(raw, "under_review")


def display_label(raw: Optional[str]) -> str:
    return DISPLAY_LABELS[consolidate_status(raw)]


def is_correction_required_status(raw: Optional[str]) -> bool:
    return raw in CORRECTION_STATUSES


def ensure_status(
    application: HomestayApplication,
    allowed: Iterable[str],
    message: str,
) -> None:
    """Raise WorkflowError(message) unless the application is in ``allowed``."""
    if application.status not in set(allowed):
        raise WorkflowError(message)


async def log_action(
    session: AsyncSession,
    application_id: str,
    actor_id: Optional[str],
    action: str,
    previous_status: Optional[str],
    new_status: Optional[str],
    feedback: Optional[str] = None,
) -> ApplicationAction:
    """Append an audit row without touching the application."""
    row = ApplicationAction(
        application_id=application_id,
        officer_id=actor_id,
        action=action,
        previous_status=previous_status,
        new_status=new_status,
        feedback=feedback,
    )
    session.add(row)
    await session.flush()
    return row


async def record_transition(
    session: AsyncSession,
    application: HomestayApplication,
    new_status: str,
    actor_id: Optional[str],
    action: str,
    feedback: Optional[str] = None,
) -> ApplicationAction:
    """
    Move ``application`` to ``new_status`` and write the matching audit row.

    The caller sets any other columns (remarks, dates) before or after;
    everything is flushed in the caller's transaction.
    """
    previous = application.status
    application.status = new_status

    row = await log_action(
        session,
        application_id=application.id,
        actor_id=actor_id,
        action=action,
        previous_status=previous,
        new_status=new_status,
        feedback=feedback,
    )

    log_with_context(
        logger,
        "info",
        "Application status changed",
        application_id=application.id,
        application_number=application.application_number,
        actor_id=actor_id,
        status_from=previous,
        status_to=new_status,
        action=action,
    )
    return row
