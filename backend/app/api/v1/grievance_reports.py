"""
Grievance reporting endpoints (officers only).

Statistics for the grievance dashboard and a CSV export of every ticket.
"""

from typing import Annotated, List

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from app.api.dependencies import DatabaseSession, require_roles
from app.core.security import OFFICER_ROLES, User
from app.models.base import utc_now
from app.schemas.grievance import (
    CategoryCount,
    GrievanceSummary,
    MonthCount,
    PriorityCount,
    StatusCount,
)
from app.services.grievance_reports import GrievanceReportService

router = APIRouter(prefix="/grievances/reports")

Officer = Annotated[User, Depends(require_roles(*OFFICER_ROLES))]


@router.get(
    "/summary",
    response_model=GrievanceSummary,
    summary="Grievance summary",
)
async def summary(db: DatabaseSession, current_user: Officer) -> GrievanceSummary:
    """
    Totals per status, average days to resolution and the last 30 days
    of new and resolved tickets.
    """
    return GrievanceSummary.model_validate(await GrievanceReportService(db).summary())


@router.get("/by-category", response_model=List[CategoryCount], summary="Tickets per category")
async def by_category(db: DatabaseSession, current_user: Officer) -> List[CategoryCount]:
    rows = await GrievanceReportService(db).by_category()
    return [CategoryCount(category=r["key"], count=r["count"]) for r in rows]


@router.get("/by-status", response_model=List[StatusCount], summary="Tickets per status")
async def by_status(db: DatabaseSession, current_user: Officer) -> List[StatusCount]:
    rows = await GrievanceReportService(db).by_status()
    return [StatusCount(status=r["key"], count=r["count"]) for r in rows]


@router.get("/by-priority", response_model=List[PriorityCount], summary="Tickets per priority")
async def by_priority(db: DatabaseSession, current_user: Officer) -> List[PriorityCount]:
    rows = await GrievanceReportService(db).by_priority()
    return [PriorityCount(priority=r["key"], count=r["count"]) for r in rows]


@router.get("/monthly-trend", response_model=List[MonthCount], summary="Tickets per month")
async def monthly_trend(db: DatabaseSession, current_user: Officer) -> List[MonthCount]:
    """Current month and the five before it, oldest first. Empty months are omitted."""
    rows = await GrievanceReportService(db).monthly_trend()
    return [MonthCount(**r) for r in rows]


@router.get("/export", summary="Export grievances as CSV")
async def export(db: DatabaseSession, current_user: Officer) -> StreamingResponse:
    """
    Returns:
        CSV file of every ticket, newest first. Descriptions are cut to
        200 characters.
    """
    content = await GrievanceReportService(db).export_csv()
    filename = f"grievances-report-{utc_now().date().isoformat()}.csv"
    return StreamingResponse(
        iter([content]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
