"""
Grievance ticket endpoints for owners and officers.
"""

from typing import List, Literal, Optional

from fastapi import APIRouter, Query, Request, status

from app.api.dependencies import CurrentActiveUser, DatabaseSession
from app.api.errors import service_errors
from app.core.security import User
from app.schemas.grievance import (
    AuditLogEntry,
    CommentCreate,
    CommentResponse,
    GrievanceCreate,
    GrievanceDetail,
    GrievanceResponse,
    GrievanceUpdate,
    UnreadCountResponse,
)
from app.services.grievances import GrievanceService, is_unread_for

router = APIRouter(prefix="/grievances")


def _client(request: Request):
    ip = request.client.host if request.client else None
    return ip, request.headers.get("user-agent")


def _response(grievance, user: User) -> GrievanceResponse:
    return GrievanceResponse.from_row(grievance, unread=is_unread_for(grievance, user))


@router.post(
    "",
    response_model=GrievanceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Raise a grievance",
)
async def create_grievance(
    payload: GrievanceCreate,
    request: Request,
    db: DatabaseSession,
    current_user: CurrentActiveUser,
) -> GrievanceResponse:
    """
    Open a ticket.

    Owners always get an ``owner_grievance``; officers may open an
    ``internal_ticket``.
    """
    ip_address, user_agent = _client(request)
    with service_errors():
        grievance = await GrievanceService(db).create(
            current_user,
            subject=payload.subject,
            description=payload.description,
            category=payload.category,
            priority=payload.priority,
            ticket_type=payload.ticket_type,
            application_id=payload.application_id,
            ip_address=ip_address,
            user_agent=user_agent,
        )
    return _response(grievance, current_user)


@router.get(
    "",
    response_model=List[GrievanceResponse],
    summary="List grievances",
)
async def list_grievances(
    db: DatabaseSession,
    current_user: CurrentActiveUser,
    ticket_type: Optional[Literal["owner_grievance", "internal_ticket"]] = Query(
        default=None, alias="type", description="Filter by ticket type (officers only)"
    ),
) -> List[GrievanceResponse]:
    grievances = await GrievanceService(db).list_for_user(current_user, ticket_type)
    return [_response(g, current_user) for g in grievances]


@router.get(
    "/unread-count",
    response_model=UnreadCountResponse,
    summary="Unread ticket count",
)
async def unread_count(
    db: DatabaseSession,
    current_user: CurrentActiveUser,
) -> UnreadCountResponse:
    return UnreadCountResponse(count=await GrievanceService(db).unread_count(current_user))


@router.get(
    "/{grievance_id}",
    response_model=GrievanceDetail,
    summary="Grievance detail",
)
async def get_grievance(
    grievance_id: str,
    db: DatabaseSession,
    current_user: CurrentActiveUser,
) -> GrievanceDetail:
    """Internal comments are hidden from owners. Viewing marks the ticket read."""
    with service_errors():
        data = await GrievanceService(db).get_detail(grievance_id, current_user)
    return GrievanceDetail(
        grievance=_response(data["grievance"], current_user),
        comments=[CommentResponse.from_row(c) for c in data["comments"]],
    )


@router.patch(
    "/{grievance_id}",
    response_model=GrievanceResponse,
    summary="Update grievance",
)
async def update_grievance(
    grievance_id: str,
    payload: GrievanceUpdate,
    request: Request,
    db: DatabaseSession,
    current_user: CurrentActiveUser,
) -> GrievanceResponse:
    """
    Officer update of status, priority, assignee or resolution notes.

    Raises:
        HTTPException 403: If the caller is not an officer
    """
    ip_address, user_agent = _client(request)
    with service_errors():
        grievance = await GrievanceService(db).update(
            grievance_id,
            current_user,
            payload.model_dump(exclude_unset=True),
            ip_address=ip_address,
            user_agent=user_agent,
        )
    return _response(grievance, current_user)


@router.patch(
    "/{grievance_id}/mark-read",
    response_model=GrievanceResponse,
    summary="Mark as read",
)
async def mark_read(
    grievance_id: str,
    db: DatabaseSession,
    current_user: CurrentActiveUser,
) -> GrievanceResponse:
    with service_errors():
        grievance = await GrievanceService(db).mark_read(grievance_id, current_user)
    return _response(grievance, current_user)


@router.post(
    "/{grievance_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add comment",
)
async def add_comment(
    grievance_id: str,
    payload: CommentCreate,
    db: DatabaseSession,
    current_user: CurrentActiveUser,
) -> CommentResponse:
    with service_errors():
        comment = await GrievanceService(db).add_comment(
            grievance_id, current_user, payload.comment, is_internal=payload.is_internal
        )
    return CommentResponse.from_row(comment)


@router.get(
    "/{grievance_id}/audit-log",
    response_model=List[AuditLogEntry],
    summary="Grievance audit log",
)
async def audit_log(
    grievance_id: str,
    db: DatabaseSession,
    current_user: CurrentActiveUser,
) -> List[AuditLogEntry]:
    """Officers only."""
    with service_errors():
        entries = await GrievanceService(db).audit_log(grievance_id, current_user)
    return [AuditLogEntry.from_row(e) for e in entries]
