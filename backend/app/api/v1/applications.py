"""
Owner-facing application endpoints.

Drafting, submission, corrections, documents, inspection schedule,
timeline and certificate cancellation requests. Officers may read an
application, its documents and its timeline.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from app.api.dependencies import CurrentActiveUser, DatabaseSession, require_roles
from app.api.errors import service_errors
from app.core.security import PROPERTY_OWNER, User
from app.schemas.application import (
    ApplicationDetail,
    ApplicationForm,
    ApplicationResponse,
    CancellationRequest,
    CorrectionRequest,
    DocumentCreate,
    DocumentResponse,
    InspectionOrderResponse,
    InspectionReportResponse,
    InspectionScheduleResponse,
    OwnerInspectionReport,
    PrimaryApplicationResponse,
    TimelineEntry,
)
from app.schemas.common import MessageResponse, UserSummary
from app.repositories.applications import ApplicationRepository
from app.repositories.users import UserRepository
from app.services.applications import ApplicationService

router = APIRouter()

owner_only = require_roles(PROPERTY_OWNER)


@router.post(
    "/applications/draft",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create draft",
    description="Start a new homestay registration draft",
)
async def create_draft(
    form: ApplicationForm,
    db: DatabaseSession,
    current_user: User = Depends(owner_only),
) -> ApplicationResponse:
    """
    Create a draft application.

    The application number is allocated immediately.

    Raises:
        HTTPException 409: If the owner already has an active application
            (detail carries ``existingApplicationId``)
    """
    with service_errors():
        application = await ApplicationService(db).create_draft(current_user, form.changes())
    return ApplicationResponse.from_model(application)


@router.patch(
    "/applications/{application_id}/draft",
    response_model=ApplicationResponse,
    summary="Update draft",
)
async def update_draft(
    application_id: str,
    form: ApplicationForm,
    db: DatabaseSession,
    current_user: User = Depends(owner_only),
) -> ApplicationResponse:
    with service_errors():
        application = await ApplicationService(db).update_draft(
            application_id, current_user, form.changes()
        )
    return ApplicationResponse.from_model(application)


@router.post(
    "/applications/{application_id}/submit",
    response_model=ApplicationResponse,
    summary="Submit application",
    description="Validate a draft and send it for district scrutiny",
)
async def submit_application(
    application_id: str,
    db: DatabaseSession,
    current_user: User = Depends(owner_only),
) -> ApplicationResponse:
    """
    Submit a draft.

    Raises:
        HTTPException 400: Validation failed (``errors`` lists every problem),
            or payment is required first under the upfront workflow
            (``requirePayment``)
    """
    with service_errors():
        application = await ApplicationService(db).submit(application_id, current_user)
    return ApplicationResponse.from_model(application)


@router.patch(
    "/applications/{application_id}",
    response_model=ApplicationResponse,
    summary="Resubmit corrections",
)
async def resubmit_correction(
    application_id: str,
    request: CorrectionRequest,
    db: DatabaseSession,
    current_user: User = Depends(owner_only),
) -> ApplicationResponse:
    with service_errors():
        application = await ApplicationService(db).resubmit_correction(
            application_id,
            current_user,
            request.changes(),
            consent_text=request.consent_text,
        )
    return ApplicationResponse.from_model(application)


@router.get(
    "/applications",
    response_model=List[ApplicationResponse],
    summary="List my applications",
)
async def list_my_applications(
    db: DatabaseSession,
    current_user: User = Depends(owner_only),
) -> List[ApplicationResponse]:
    applications = await ApplicationService(db).list_for_owner(current_user)
    return [ApplicationResponse.from_model(a) for a in applications]


@router.get(
    "/applications/primary",
    response_model=PrimaryApplicationResponse,
    summary="Current application",
)
async def get_primary_application(
    db: DatabaseSession,
    current_user: CurrentActiveUser,
) -> PrimaryApplicationResponse:
    """
    The owner's newest application, skipping superseded ones.

    Officers always receive ``{"application": null}``.
    """
    application = await ApplicationService(db).primary_for_owner(current_user)
    return PrimaryApplicationResponse(
        application=ApplicationResponse.from_model(application) if application else None
    )


@router.get(
    "/applications/{application_id}",
    response_model=ApplicationDetail,
    summary="Application detail",
)
async def get_application(
    application_id: str,
    db: DatabaseSession,
    current_user: CurrentActiveUser,
) -> ApplicationDetail:
    """Owner of the application, or any officer."""
    with service_errors():
        service = ApplicationService(db)
        application = await service.get_for_user(application_id, current_user)
        documents = await ApplicationRepository(db).list_documents(application.id)
        owner = await UserRepository(db).get(application.user_id)

    return ApplicationDetail(
        application=ApplicationResponse.from_model(application),
        owner=UserSummary.from_row(owner) if owner else None,
        documents=[DocumentResponse.from_row(d) for d in documents],
    )


@router.delete(
    "/applications/{application_id}",
    response_model=MessageResponse,
    summary="Delete draft",
)
async def delete_draft(
    application_id: str,
    db: DatabaseSession,
    current_user: User = Depends(owner_only),
) -> MessageResponse:
    with service_errors():
        await ApplicationService(db).delete_draft(application_id, current_user)
    return MessageResponse(message="Draft deleted")


@router.get(
    "/applications/{application_id}/timeline",
    response_model=List[TimelineEntry],
    summary="Application timeline",
)
async def get_timeline(
    application_id: str,
    db: DatabaseSession,
    current_user: CurrentActiveUser,
) -> List[TimelineEntry]:
    with service_errors():
        entries = await ApplicationService(db).timeline(application_id, current_user)
    return [TimelineEntry(**entry) for entry in entries]


@router.get(
    "/applications/{application_id}/inspection-schedule",
    response_model=InspectionScheduleResponse,
    summary="Inspection schedule",
)
async def get_inspection_schedule(
    application_id: str,
    db: DatabaseSession,
    current_user: CurrentActiveUser,
) -> InspectionScheduleResponse:
    with service_errors():
        service = ApplicationService(db)
        order = await service.get_inspection_schedule(application_id, current_user)
        acknowledged_at = await service.acknowledged_at(application_id)
    return InspectionScheduleResponse(
        order=InspectionOrderResponse.from_row(order) if order else None,
        acknowledged_at=acknowledged_at,
    )


@router.post(
    "/applications/{application_id}/inspection-schedule/acknowledge",
    response_model=InspectionScheduleResponse,
    summary="Acknowledge inspection",
)
async def acknowledge_inspection(
    application_id: str,
    db: DatabaseSession,
    current_user: User = Depends(owner_only),
) -> InspectionScheduleResponse:
    with service_errors():
        service = ApplicationService(db)
        order = await service.acknowledge_inspection(application_id, current_user)
        acknowledged_at = await service.acknowledged_at(application_id)
    return InspectionScheduleResponse(
        order=InspectionOrderResponse.from_row(order),
        acknowledged_at=acknowledged_at,
    )


@router.get(
    "/applications/{application_id}/inspection-report",
    response_model=OwnerInspectionReport,
    summary="Inspection report",
)
async def get_inspection_report(
    application_id: str,
    db: DatabaseSession,
    current_user: CurrentActiveUser,
) -> OwnerInspectionReport:
    """
    Raises:
        HTTPException 403: Owner asking for someone else's application
        HTTPException 404: No inspection scheduled yet
    """
    with service_errors():
        data = await ApplicationService(db).get_inspection_report(application_id, current_user)

    def summary(user):
        return UserSummary.from_row(user) if user else None

    return OwnerInspectionReport(
        application=ApplicationResponse.from_model(data["application"]),
        order=InspectionOrderResponse.from_row(data["order"]),
        report=InspectionReportResponse.from_model(data["report"]) if data["report"] else None,
        owner=summary(data["owner"]),
        da=summary(data["da"]),
        dtdo=summary(data["dtdo"]),
    )


@router.post(
    "/applications/{application_id}/documents",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register document",
    description="Attach metadata for an uploaded document",
)
async def add_document(
    application_id: str,
    request: DocumentCreate,
    db: DatabaseSession,
    current_user: User = Depends(owner_only),
) -> DocumentResponse:
    with service_errors():
        document = await ApplicationService(db).add_document(
            application_id,
            current_user,
            document_type=request.document_type,
            file_name=request.file_name,
            file_path=request.file_path,
            mime_type=request.mime_type,
        )
    return DocumentResponse.from_row(document)


@router.get(
    "/applications/{application_id}/documents",
    response_model=List[DocumentResponse],
    summary="List documents",
)
async def list_documents(
    application_id: str,
    db: DatabaseSession,
    current_user: CurrentActiveUser,
) -> List[DocumentResponse]:
    with service_errors():
        documents = await ApplicationService(db).list_documents(application_id, current_user)
    return [DocumentResponse.from_row(d) for d in documents]


@router.post(
    "/applications/{application_id}/cancellation",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request certificate cancellation",
)
async def request_cancellation(
    application_id: str,
    request: CancellationRequest,
    db: DatabaseSession,
    current_user: User = Depends(owner_only),
) -> ApplicationResponse:
    """
    File a cancellation request against an approved registration.

    Raises:
        HTTPException 400: If the registration is not approved
        HTTPException 409: If a cancellation request is already in progress
    """
    with service_errors():
        cancellation = await ApplicationService(db).request_cancellation(
            application_id, current_user, request.reason
        )
    return ApplicationResponse.from_model(cancellation)
