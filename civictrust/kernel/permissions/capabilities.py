"""
The closed set of named capabilities.

Permission names are flat strings with no hierarchy: holding
ADMIN_IDENTITY_REVIEW says nothing about MODERATE_COMMENTS. Code refers to
capabilities only through this enum so a typo cannot mint a capability that
nothing checks.
"""

from enum import Enum
from typing import Dict, Tuple


class Capability(str, Enum):
    """Named capabilities gating privileged actions."""

    # Unlocked by an approved identity verification
    CAN_VOTE = "can_vote"
    CAN_COMMENT = "can_comment"
    CAN_CREATE_PETITIONS = "can_create_petitions"
    CAN_ACCESS_FOI = "can_access_foi"

    # Moderation
    MODERATE_COMMENTS = "moderate_comments"
    REJECT_CONTENT = "reject_content"

    # Content
    CREATE_NEWS = "create_news"

    # Administration
    MANAGE_PERMISSIONS = "manage_permissions"
    ADMIN_IDENTITY_REVIEW = "admin.identity.review"


# Granted together when a verification is approved
VERIFIED_CITIZEN_BUNDLE: Tuple[Capability, ...] = (
    Capability.CAN_VOTE,
    Capability.CAN_COMMENT,
    Capability.CAN_CREATE_PETITIONS,
    Capability.CAN_ACCESS_FOI,
)

# Catalog metadata used when a capability row is first created
CAPABILITY_INFO: Dict[Capability, Tuple[str, str]] = {
    Capability.CAN_VOTE: ("civic", "Cast votes on bills and polls"),
    Capability.CAN_COMMENT: ("civic", "Comment on civic content"),
    Capability.CAN_CREATE_PETITIONS: ("civic", "Create petitions"),
    Capability.CAN_ACCESS_FOI: ("civic", "File and read freedom-of-information requests"),
    Capability.MODERATE_COMMENTS: ("moderation", "Hide or delete user comments"),
    Capability.REJECT_CONTENT: ("moderation", "Reject user-submitted content"),
    Capability.CREATE_NEWS: ("content", "Publish official news"),
    Capability.MANAGE_PERMISSIONS: ("admin", "Grant and revoke capabilities"),
    Capability.ADMIN_IDENTITY_REVIEW: ("admin", "Adjudicate identity verifications"),
}


def parse_capability(name: str) -> Capability:
    """
    Resolve a wire-level permission name to a Capability.

    Raises:
        ValueError: If the name is not in the closed set
    """
    try:
        return Capability(name)
    except ValueError:
        raise ValueError(f"Unknown permission: {name}") from None
