"""
Permission Core - flat capability grants.
"""

from civictrust.kernel.permissions.capabilities import (
    CAPABILITY_INFO,
    Capability,
    VERIFIED_CITIZEN_BUNDLE,
    parse_capability,
)
from civictrust.kernel.permissions.permission_service import (
    PermissionService,
    check_permission,
)

__all__ = [
    "CAPABILITY_INFO",
    "Capability",
    "VERIFIED_CITIZEN_BUNDLE",
    "parse_capability",
    "PermissionService",
    "check_permission",
]
