"""
Notification dispatcher.

Writes user-visible notices in their own transaction. Callers dispatch only
after their state change has committed, and a dispatch failure is logged and
swallowed: the committed change stays the source of truth.
"""

import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from civictrust.kernel.models.notification import Notification
from civictrust.logging_config import get_logger

logger = get_logger(__name__)


class NotificationDispatcher:
    """Creates and reads notifications for one session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def dispatch(
        self,
        user_id: uuid.UUID,
        type: str,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
        source_module: Optional[str] = None,
    ) -> Optional[Notification]:
        """
        Create and commit a notification.

        Returns:
            The notification, or None if it could not be stored
        """
        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            data=data,
            source_module=source_module,
        )
        try:
            self.session.add(notification)
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            logger.exception(
                "Notification dispatch failed",
                extra={"user_id": str(user_id), "notification_type": type},
            )
            return None
        return notification

    async def list_for_user(
        self,
        user_id: uuid.UUID,
        unread_only: bool = False,
        limit: int = 50,
    ) -> List[Notification]:
        """A user's notifications, newest first."""
        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.is_read == False)  # noqa: E712
        query = query.order_by(desc(Notification.created_at)).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def mark_read(self, user_id: uuid.UUID, notification_id: uuid.UUID) -> Optional[Notification]:
        """Mark one of the user's notifications read. None if not theirs or missing."""
        result = await self.session.execute(
            select(Notification).where(
                and_(
                    Notification.id == notification_id,
                    Notification.user_id == user_id,
                )
            )
        )
        notification = result.scalar_one_or_none()
        if notification is not None and not notification.is_read:
            notification.is_read = True
            await self.session.flush()
        return notification
