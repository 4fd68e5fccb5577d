"""
Email verification codes.

Durable, TTL-bounded store for one-time email codes, so a code issued by one
service instance can be confirmed by another and survives restarts.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from civictrust.kernel.models.base import Base, CreatedAtMixin, as_utc, generate_uuid


class EmailVerificationCode(Base, CreatedAtMixin):
    """One outstanding code per email address. Only a hash of the code is kept."""

    __tablename__ = "email_verification_codes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        nullable=False,
        index=True,
    )
    code_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
    consumed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def is_expired(self, now: datetime) -> bool:
        return as_utc(self.expires_at) <= now
