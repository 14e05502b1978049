"""
DA field inspection endpoints.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from app.api.dependencies import DatabaseSession, require_roles
from app.api.errors import service_errors
from app.core.security import DEALING_ASSISTANT, User
from app.schemas.application import (
    ApplicationResponse,
    DocumentResponse,
    InspectionOrderResponse,
    InspectionReportResponse,
)
from app.schemas.review import InspectionDetail, InspectionListItem, SubmitReportRequest
from app.services.inspections import InspectionService

router = APIRouter(prefix="/da/inspections")

da_only = require_roles(DEALING_ASSISTANT)


@router.get(
    "",
    response_model=List[InspectionListItem],
    summary="My inspections",
)
async def list_inspections(
    db: DatabaseSession,
    current_user: User = Depends(da_only),
) -> List[InspectionListItem]:
    rows = await InspectionService(db).list_assigned(current_user)
    return [
        InspectionListItem(
            order=InspectionOrderResponse.from_row(row["order"]),
            application=(
                ApplicationResponse.from_model(row["application"])
                if row["application"] else None
            ),
            report_submitted=row["report_submitted"],
        )
        for row in rows
    ]


@router.get(
    "/{order_id}",
    response_model=InspectionDetail,
    summary="Inspection detail",
)
async def get_inspection(
    order_id: str,
    db: DatabaseSession,
    current_user: User = Depends(da_only),
) -> InspectionDetail:
    """
    Raises:
        HTTPException 403: If the order is assigned to another DA
        HTTPException 404: If the order does not exist
    """
    with service_errors():
        data = await InspectionService(db).get_detail(order_id, current_user)
    report = data["report"]
    return InspectionDetail(
        order=InspectionOrderResponse.from_row(data["order"]),
        application=ApplicationResponse.from_model(data["application"]),
        documents=[DocumentResponse.from_row(d) for d in data["documents"]],
        report=InspectionReportResponse.from_model(report) if report else None,
    )


@router.post(
    "/{order_id}/submit-report",
    response_model=InspectionReportResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit inspection report",
)
async def submit_report(
    order_id: str,
    request: SubmitReportRequest,
    db: DatabaseSession,
    current_user: User = Depends(da_only),
) -> InspectionReportResponse:
    """
    File the report for a completed site visit.

    Raises:
        HTTPException 400: Report already filed, date missing or in the
            future, or an early visit without a valid override
    """
    with service_errors():
        report = await InspectionService(db).submit_report(
            order_id,
            current_user,
            actual_inspection_date=request.actual_inspection_date,
            recommendation=request.recommendation,
            mandatory_remarks=request.mandatory_remarks,
            findings=request.findings,
            early_inspection_override=request.early_inspection_override,
            early_inspection_reason=request.early_inspection_reason,
        )
    return InspectionReportResponse.from_model(report)
