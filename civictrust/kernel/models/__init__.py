"""
Kernel Data Models

Core SQLAlchemy models for identity verification, permissions, notifications
and the audit trail, plus read-only mappings of the civic source tables.
"""

from civictrust.kernel.models.base import Base, CreatedAtMixin, generate_uuid, utcnow
from civictrust.kernel.models.user import User
from civictrust.kernel.models.verification import (
    IdentityVerification,
    VerificationLevel,
    VerificationState,
)
from civictrust.kernel.models.permission import Permission, UserPermission
from civictrust.kernel.models.notification import Notification
from civictrust.kernel.models.email_code import EmailVerificationCode
from civictrust.kernel.models.event_log import EventLog, EventType
from civictrust.kernel.models.civic import (
    BillRollcallRecord,
    CampaignFinance,
    Politician,
    PoliticianTruthTracking,
    VoteDecision,
)

__all__ = [
    # Base
    "Base",
    "CreatedAtMixin",
    "generate_uuid",
    "utcnow",
    # User
    "User",
    # Verification
    "IdentityVerification",
    "VerificationLevel",
    "VerificationState",
    "EmailVerificationCode",
    # Permissions
    "Permission",
    "UserPermission",
    # Notifications
    "Notification",
    # Event Log
    "EventLog",
    "EventType",
    # Civic sources
    "Politician",
    "BillRollcallRecord",
    "CampaignFinance",
    "PoliticianTruthTracking",
    "VoteDecision",
]
