"""
Identity verification models - one row per submission attempt.

Rows are never deleted; decided rows form the adjudication audit trail.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from civictrust.kernel.models.base import Base, CreatedAtMixin, generate_uuid


class VerificationState(str, Enum):
    """Lifecycle states. APPROVED and REJECTED are terminal."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class VerificationLevel(str, Enum):
    """Strength of identity proof reported to clients."""
    NONE = "none"
    EMAIL = "email"
    GOVERNMENT = "government"


class IdentityVerification(Base, CreatedAtMixin):
    """
    An identity-proof submission and its adjudication outcome.

    reviewer_id and decided_at are written exactly once, by the transition
    out of PENDING.
    """

    __tablename__ = "identity_verifications"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        nullable=False,
        index=True,
    )
    submitted_email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    terms_agreed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
    )
    state: Mapped[VerificationState] = mapped_column(
        String(20),
        default=VerificationState.PENDING.value,
        nullable=False,
        index=True,
    )

    # Adjudication
    reviewer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        nullable=True,
    )
    rejection_reason: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    decided_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    __table_args__ = (
        # At most one pending submission per user
        Index(
            "uq_identity_verifications_one_pending",
            "user_id",
            unique=True,
            postgresql_where=text("state = 'pending'"),
            sqlite_where=text("state = 'pending'"),
        ),
        Index("ix_identity_verifications_user_decided", "user_id", "decided_at"),
    )

    @property
    def is_decided(self) -> bool:
        return self.state != VerificationState.PENDING

    def __repr__(self) -> str:
        return f"<IdentityVerification {self.id} user={self.user_id} state={self.state}>"
