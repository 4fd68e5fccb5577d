"""
Permission models: a flat capability catalog and per-user grants.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, UniqueConstraint, func, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from civictrust.kernel.models.base import Base, CreatedAtMixin, generate_uuid


class Permission(Base, CreatedAtMixin):
    """
    A named capability in the global catalog.

    Rows are created lazily the first time a capability is granted.
    """

    __tablename__ = "permissions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    name: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    category: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Permission {self.name}>"


class UserPermission(Base):
    """
    Grant record linking a user to a capability.

    Revocation flips is_granted instead of deleting, so the row keeps the
    grant history. One row per (user_id, permission_name).
    """

    __tablename__ = "user_permissions"

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
    permission_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("permissions.id"),
        nullable=False,
    )
    # Denormalized for lookups without a join
    permission_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    is_granted: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    # Grant metadata
    granted_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        nullable=True,
    )
    granted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    revoked_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "permission_name", name="uq_user_permissions_user_name"),
    )

    def __repr__(self) -> str:
        return f"<UserPermission user={self.user_id} {self.permission_name} granted={self.is_granted}>"
