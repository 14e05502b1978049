"""
Dealing Assistant (DA) scrutiny endpoints.

Every route is restricted to the dealing_assistant role and scoped to the
DA's district.
"""

from typing import List

from fastapi import APIRouter, Depends

from app.api.dependencies import DatabaseSession, require_roles
from app.api.errors import service_errors
from app.api.v1.profile import add_profile_routes
from app.core.security import DEALING_ASSISTANT, User
from app.schemas.application import (
    ApplicationDetail,
    ApplicationListItem,
    ApplicationResponse,
    DocumentResponse,
    detail,
    list_item,
)
from app.schemas.review import (
    OtpIssuedResponse,
    RemarksRequest,
    SaveScrutinyRequest,
    SendBackRequest,
    SendBackResponse,
)
from app.services.scrutiny import ScrutinyService

router = APIRouter(prefix="/da")

da_only = require_roles(DEALING_ASSISTANT)


@router.get(
    "/applications/incomplete",
    response_model=List[ApplicationResponse],
    summary="Unsubmitted drafts",
    description="Draft applications in the DA's district, most recently edited first",
)
async def list_incomplete(
    db: DatabaseSession,
    current_user: User = Depends(da_only),
) -> List[ApplicationResponse]:
    with service_errors():
        applications = await ScrutinyService(db).list_incomplete(current_user)
    return [ApplicationResponse.from_model(a) for a in applications]


@router.get(
    "/applications",
    response_model=List[ApplicationListItem],
    summary="District queue",
)
async def list_applications(
    db: DatabaseSession,
    current_user: User = Depends(da_only),
) -> List[ApplicationListItem]:
    with service_errors():
        rows = await ScrutinyService(db).list_applications(current_user)
    return [list_item(row) for row in rows]


@router.get(
    "/applications/{application_id}",
    response_model=ApplicationDetail,
    summary="Scrutiny detail",
)
async def get_application(
    application_id: str,
    db: DatabaseSession,
    current_user: User = Depends(da_only),
) -> ApplicationDetail:
    with service_errors():
        data = await ScrutinyService(db).get_detail(application_id, current_user)
    return detail(data)


@router.post(
    "/applications/{application_id}/start-scrutiny",
    response_model=ApplicationResponse,
    summary="Start scrutiny",
)
async def start_scrutiny(
    application_id: str,
    db: DatabaseSession,
    current_user: User = Depends(da_only),
) -> ApplicationResponse:
    with service_errors():
        application = await ScrutinyService(db).start_scrutiny(application_id, current_user)
    return ApplicationResponse.from_model(application)


@router.post(
    "/applications/{application_id}/save-scrutiny",
    response_model=List[DocumentResponse],
    summary="Save document verification",
)
async def save_scrutiny(
    application_id: str,
    request: SaveScrutinyRequest,
    db: DatabaseSession,
    current_user: User = Depends(da_only),
) -> List[DocumentResponse]:
    """
    Record a verdict for each listed document.

    Raises:
        HTTPException 400: Application has left scrutiny, or a document id
            does not belong to the application
    """
    verifications = [v.model_dump() for v in request.verifications]
    with service_errors():
        documents = await ScrutinyService(db).save_scrutiny(
            application_id, current_user, verifications
        )
    return [DocumentResponse.from_row(d) for d in documents]


@router.post(
    "/applications/{application_id}/forward-to-dtdo",
    response_model=ApplicationResponse,
    summary="Forward to DTDO",
)
async def forward_to_dtdo(
    application_id: str,
    request: RemarksRequest,
    db: DatabaseSession,
    current_user: User = Depends(da_only),
) -> ApplicationResponse:
    with service_errors():
        application = await ScrutinyService(db).forward_to_dtdo(
            application_id, current_user, request.remarks
        )
    return ApplicationResponse.from_model(application)


@router.post(
    "/applications/{application_id}/send-back/otp",
    response_model=OtpIssuedResponse,
    summary="Request send-back OTP",
    description="Send a one-time code to the district's DTDO(s) to authorise a send-back",
)
async def request_send_back_otp(
    application_id: str,
    db: DatabaseSession,
    current_user: User = Depends(da_only),
) -> OtpIssuedResponse:
    with service_errors():
        issued = await ScrutinyService(db).request_send_back_otp(application_id, current_user)
    return OtpIssuedResponse(
        message="OTP sent to the District Tourism Officer",
        expires_at=issued["expires_at"],
        recipients=issued["recipients"],
    )


@router.post(
    "/applications/{application_id}/send-back",
    response_model=SendBackResponse,
    summary="Send back to applicant",
)
async def send_back(
    application_id: str,
    request: SendBackRequest,
    db: DatabaseSession,
    current_user: User = Depends(da_only),
) -> SendBackResponse:
    """
    Return the application to the owner for corrections.

    A second send-back auto-rejects the application instead.

    Raises:
        HTTPException 400: Send-back disabled, missing reason, or missing
            DTDO OTP (detail carries ``requireOtp`` and ``revertCount``)
    """
    with service_errors():
        result = await ScrutinyService(db).send_back(
            application_id, current_user, request.reason, request.otp_code
        )
    return SendBackResponse(
        application=ApplicationResponse.from_model(result.application),
        auto_rejected=result.auto_rejected,
        new_revert_count=result.new_revert_count,
        warning=result.warning,
    )


add_profile_routes(router, da_only)
