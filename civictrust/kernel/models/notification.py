"""
User-facing notifications.
"""

import uuid
from typing import Optional

from sqlalchemy import Boolean, Index, JSON, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from civictrust.kernel.models.base import Base, CreatedAtMixin, generate_uuid


class Notification(Base, CreatedAtMixin):
    """A notice for one recipient. Only is_read changes after creation."""

    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        nullable=False,
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    source_module: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    is_read: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    __table_args__ = (
        Index("ix_notifications_user_time", "user_id", "created_at"),
    )
