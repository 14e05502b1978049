"""
In-app notification inbox.
"""

from typing import List

from fastapi import APIRouter, Query

from app.api.dependencies import CurrentActiveUser, DatabaseSession
from app.api.errors import service_errors
from app.schemas.public import NotificationResponse
from app.services.notifications import NotificationService

router = APIRouter(prefix="/notifications")


@router.get(
    "",
    response_model=List[NotificationResponse],
    summary="My notifications",
    description="The caller's notifications, newest first",
)
async def list_notifications(
    db: DatabaseSession,
    current_user: CurrentActiveUser,
    unread_only: bool = Query(default=False, alias="unreadOnly"),
) -> List[NotificationResponse]:
    notifications = await NotificationService(db).list_for_user(current_user.id, unread_only)
    return [NotificationResponse.from_model(n) for n in notifications]


@router.post(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark notification read",
)
async def mark_notification_read(
    notification_id: str,
    db: DatabaseSession,
    current_user: CurrentActiveUser,
) -> NotificationResponse:
    with service_errors():
        notification = await NotificationService(db).mark_read(notification_id, current_user.id)
    return NotificationResponse.from_model(notification)
