"""
Stable Kernel Layer

Foundational components the rest of the platform builds on:
- Identity Core (bearer verification, user lookup, email confirmation)
- Permission Core (flat capability catalog and per-user grants)
- Immutable Event Log (every grant and adjudication logged before commit)
- Notifications (user-visible notices, written after commit)

Architectural Invariants:
- Authorization is re-derived from the grant table on every request
- Adjudicated verifications are never modified or deleted
- Notification failure never rolls back a committed state change
"""

from civictrust.kernel.models import (
    User,
    IdentityVerification,
    VerificationLevel,
    VerificationState,
    Permission,
    UserPermission,
    Notification,
    EventLog,
    EventType,
)
from civictrust.kernel.permissions.capabilities import Capability

__all__ = [
    "User",
    "IdentityVerification",
    "VerificationLevel",
    "VerificationState",
    "Permission",
    "UserPermission",
    "Notification",
    "EventLog",
    "EventType",
    "Capability",
]
