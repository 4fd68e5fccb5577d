"""
Permission gate - require a named capability for a route.
"""

from fastapi import Depends

from civictrust.api.deps import CurrentUser, DbSession
from civictrust.kernel.errors import ForbiddenError
from civictrust.kernel.permissions.capabilities import Capability
from civictrust.kernel.permissions.permission_service import PermissionService
from civictrust.logging_config import get_logger

logger = get_logger(__name__)


def require_permission(capability: Capability):
    """
    Dependency that requires the current user to hold `capability`.

    The grant table is read on every request. Raises 403 if the grant is
    absent or revoked.
    """

    async def _check(user: CurrentUser, db: DbSession) -> None:
        allowed = await PermissionService(db).check(user.id, capability)
        if not allowed:
            logger.info(
                "Permission denied",
                extra={"user_id": str(user.id), "permission": capability.value},
            )
            raise ForbiddenError(
                f"Permission '{capability.value}' required",
                context={"permission": capability.value},
            )

    return Depends(_check)
