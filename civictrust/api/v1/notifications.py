"""
Notification endpoints for the signed-in user.
"""

import uuid
from typing import List

from fastapi import APIRouter, Query

from civictrust.api.deps import CurrentUser, DbSession
from civictrust.kernel.errors import NotFoundError
from civictrust.kernel.notifications.dispatcher import NotificationDispatcher
from civictrust.schemas.notification import NotificationResponse

router = APIRouter()


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    user: CurrentUser,
    db: DbSession,
    unread_only: bool = Query(False, alias="unreadOnly"),
    limit: int = Query(50, ge=1, le=200),
):
    """The caller's notifications, newest first."""
    rows = await NotificationDispatcher(db).list_for_user(user.id, unread_only=unread_only, limit=limit)
    return [NotificationResponse.model_validate(n) for n in rows]


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(notification_id: uuid.UUID, user: CurrentUser, db: DbSession):
    """Mark one of the caller's notifications read."""
    notification = await NotificationDispatcher(db).mark_read(user.id, notification_id)
    if notification is None:
        raise NotFoundError(f"Notification {notification_id} not found")
    return NotificationResponse.model_validate(notification)
