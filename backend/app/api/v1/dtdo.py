"""
District Tourism Development Officer (DTDO) review endpoints.

Accept / reject / revert forwarded applications, schedule inspections,
act on inspection reports and approve certificate cancellations.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from app.api.dependencies import DatabaseSession, require_roles
from app.api.errors import service_errors
from app.api.v1.profile import add_profile_routes
from app.core.security import DTDO_ROLES, User
from app.schemas.application import (
    ApplicationDetail,
    ApplicationListItem,
    ApplicationResponse,
    InspectionOrderResponse,
    InspectionReportResponse,
    TimelineEntry,
    detail,
    list_item,
)
from app.schemas.review import (
    AvailableDA,
    InspectionReportBundle,
    RemarksRequest,
    RevertResponse,
    ScheduleInspectionRequest,
)
from app.services.district_review import DistrictReviewService

router = APIRouter(prefix="/dtdo")

dtdo_only = require_roles(*DTDO_ROLES)


@router.get(
    "/applications",
    response_model=List[ApplicationListItem],
    summary="District queue",
)
async def list_applications(
    db: DatabaseSession,
    current_user: User = Depends(dtdo_only),
) -> List[ApplicationListItem]:
    with service_errors():
        rows = await DistrictReviewService(db).list_applications(current_user)
    return [list_item(row) for row in rows]


@router.get(
    "/applications/{application_id}",
    response_model=ApplicationDetail,
    summary="Review detail",
)
async def get_application(
    application_id: str,
    db: DatabaseSession,
    current_user: User = Depends(dtdo_only),
) -> ApplicationDetail:
    with service_errors():
        data = await DistrictReviewService(db).get_detail(application_id, current_user)
    return detail(data)


@router.post(
    "/applications/{application_id}/accept",
    response_model=ApplicationResponse,
    summary="Accept application",
)
async def accept(
    application_id: str,
    request: RemarksRequest,
    db: DatabaseSession,
    current_user: User = Depends(dtdo_only),
) -> ApplicationResponse:
    with service_errors():
        application = await DistrictReviewService(db).accept(
            application_id, current_user, request.remarks
        )
    return ApplicationResponse.from_model(application)


@router.post(
    "/applications/{application_id}/reject",
    response_model=ApplicationResponse,
    summary="Reject application",
)
async def reject(
    application_id: str,
    request: RemarksRequest,
    db: DatabaseSession,
    current_user: User = Depends(dtdo_only),
) -> ApplicationResponse:
    with service_errors():
        application = await DistrictReviewService(db).reject(
            application_id, current_user, request.remarks
        )
    return ApplicationResponse.from_model(application)


@router.post(
    "/applications/{application_id}/revert",
    response_model=RevertResponse,
    summary="Revert to applicant",
)
async def revert(
    application_id: str,
    request: RemarksRequest,
    db: DatabaseSession,
    current_user: User = Depends(dtdo_only),
) -> RevertResponse:
    """
    Ask the owner for corrections.

    An application that was already sent back once is auto-rejected
    (``autoRejected`` is true in the response).
    """
    with service_errors():
        result = await DistrictReviewService(db).revert(
            application_id, current_user, request.remarks
        )
    return RevertResponse(
        application=ApplicationResponse.from_model(result["application"]),
        auto_rejected=result["auto_rejected"],
    )


@router.get(
    "/applications/{application_id}/timeline",
    response_model=List[TimelineEntry],
    summary="Application timeline",
)
async def get_timeline(
    application_id: str,
    db: DatabaseSession,
    current_user: User = Depends(dtdo_only),
) -> List[TimelineEntry]:
    with service_errors():
        entries = await DistrictReviewService(db).timeline(application_id, current_user)
    return [TimelineEntry(**entry) for entry in entries]


@router.get(
    "/available-das",
    response_model=List[AvailableDA],
    summary="Dealing assistants of the district",
)
async def available_das(
    db: DatabaseSession,
    current_user: User = Depends(dtdo_only),
) -> List[AvailableDA]:
    das = await DistrictReviewService(db).available_das(current_user)
    return [AvailableDA.from_row(da) for da in das]


@router.post(
    "/schedule-inspection",
    response_model=InspectionOrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Schedule inspection",
)
async def schedule_inspection(
    request: ScheduleInspectionRequest,
    db: DatabaseSession,
    current_user: User = Depends(dtdo_only),
) -> InspectionOrderResponse:
    """
    Create an inspection order and assign it to a DA.

    Raises:
        HTTPException 400: Missing fields, wrong status, or the DA is not
            an active DA of the district
    """
    with service_errors():
        order = await DistrictReviewService(db).schedule_inspection(
            current_user,
            application_id=request.application_id,
            inspection_date=request.inspection_date,
            assigned_to=request.assigned_to,
            special_instructions=request.special_instructions,
        )
    return InspectionOrderResponse.from_row(order)


@router.get(
    "/inspection-report/{application_id}",
    response_model=InspectionReportBundle,
    summary="Inspection report",
)
async def get_inspection_report(
    application_id: str,
    db: DatabaseSession,
    current_user: User = Depends(dtdo_only),
) -> InspectionReportBundle:
    with service_errors():
        bundle = await DistrictReviewService(db).get_inspection_report(application_id, current_user)
    return InspectionReportBundle(
        application=ApplicationResponse.from_model(bundle["application"]),
        order=InspectionOrderResponse.from_row(bundle["order"]),
        report=InspectionReportResponse.from_model(bundle["report"]),
    )


@router.post(
    "/inspection-report/{application_id}/approve",
    response_model=ApplicationResponse,
    summary="Approve inspection",
    description="Issue the certificate if paid, otherwise move to verified_for_payment",
)
async def approve_inspection(
    application_id: str,
    request: RemarksRequest,
    db: DatabaseSession,
    current_user: User = Depends(dtdo_only),
) -> ApplicationResponse:
    with service_errors():
        application = await DistrictReviewService(db).approve_inspection(
            application_id, current_user, request.remarks
        )
    return ApplicationResponse.from_model(application)


@router.post(
    "/inspection-report/{application_id}/reject",
    response_model=ApplicationResponse,
    summary="Reject after inspection",
)
async def reject_inspection(
    application_id: str,
    request: RemarksRequest,
    db: DatabaseSession,
    current_user: User = Depends(dtdo_only),
) -> ApplicationResponse:
    with service_errors():
        application = await DistrictReviewService(db).reject_inspection(
            application_id, current_user, request.remarks
        )
    return ApplicationResponse.from_model(application)


@router.post(
    "/inspection-report/{application_id}/raise-objections",
    response_model=ApplicationResponse,
    summary="Raise objections",
)
async def raise_objections(
    application_id: str,
    request: RemarksRequest,
    db: DatabaseSession,
    current_user: User = Depends(dtdo_only),
) -> ApplicationResponse:
    with service_errors():
        application = await DistrictReviewService(db).raise_objections(
            application_id, current_user, request.remarks
        )
    return ApplicationResponse.from_model(application)


@router.post(
    "/applications/{application_id}/approve-cancellation",
    response_model=ApplicationResponse,
    summary="Approve certificate cancellation",
)
async def approve_cancellation(
    application_id: str,
    request: RemarksRequest,
    db: DatabaseSession,
    current_user: User = Depends(dtdo_only),
) -> ApplicationResponse:
    """Cancel the request's parent certificate as well."""
    with service_errors():
        application = await DistrictReviewService(db).approve_cancellation(
            application_id, current_user, request.remarks
        )
    return ApplicationResponse.from_model(application)


add_profile_routes(router, dtdo_only)
