"""
Permission registry: capability catalog and per-user grants.
"""

import uuid
from typing import List, Optional

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from civictrust.kernel.events.event_store import EventStore
from civictrust.kernel.models.base import utcnow
from civictrust.kernel.models.event_log import EventType
from civictrust.kernel.models.permission import Permission, UserPermission
from civictrust.kernel.permissions.capabilities import CAPABILITY_INFO, Capability
from civictrust.kernel.upsert import insert_ignoring_conflicts
from civictrust.logging_config import get_logger

logger = get_logger(__name__)


class PermissionService:
    """
    Service for checking and managing capability grants.

    A user either holds the exact capability or does not: there is no role
    hierarchy, no wildcard and no implied capability. Every check reads the
    grant table, so a revoke takes effect on the next request.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.event_store = EventStore(session)

    async def check(self, user_id: uuid.UUID, capability: Capability) -> bool:
        """
        Check whether the user holds an active grant for the capability.

        Args:
            user_id: The user to check
            capability: The exact capability required

        Returns:
            True if an active grant exists and the catalog entry is active
        """
        query = (
            select(UserPermission.id)
            .join(Permission, Permission.id == UserPermission.permission_id)
            .where(
                and_(
                    UserPermission.user_id == user_id,
                    UserPermission.permission_name == capability.value,
                    UserPermission.is_granted == True,  # noqa: E712
                    Permission.is_active == True,  # noqa: E712
                )
            )
            .limit(1)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none() is not None

    async def grant(
        self,
        user_id: uuid.UUID,
        capability: Capability,
        granted_by: Optional[uuid.UUID] = None,
    ) -> UserPermission:
        """
        Grant a capability to a user. Idempotent.

        An active grant is left untouched; a revoked grant is re-activated;
        otherwise a grant row is inserted, creating the catalog entry first
        if needed.

        Args:
            user_id: User receiving the capability
            capability: Capability to grant
            granted_by: Acting user, or None for system grants

        Returns:
            The grant row
        """
        grant = await self._get_grant(user_id, capability)
        if grant is not None and grant.is_granted:
            return grant

        if grant is not None:
            grant.is_granted = True
            grant.granted_by = granted_by
            grant.granted_at = utcnow()
            grant.revoked_at = None
        else:
            permission = await self._get_or_create_permission(capability)
            await self.session.execute(
                insert_ignoring_conflicts(
                    self.session,
                    UserPermission,
                    {
                        "id": uuid.uuid4(),
                        "user_id": user_id,
                        "permission_id": permission.id,
                        "permission_name": capability.value,
                        "is_granted": True,
                        "granted_by": granted_by,
                    },
                )
            )
            grant = await self._get_grant(user_id, capability)

        await self.event_store.log(
            event_type=EventType.PERMISSION_GRANTED,
            entity_type="user",
            entity_id=user_id,
            user_id=granted_by,
            payload={"permission": capability.value},
        )
        await self.session.flush()
        logger.info(
            "Permission granted",
            extra={"user_id": str(user_id), "permission": capability.value},
        )
        return grant

    async def revoke(
        self,
        user_id: uuid.UUID,
        capability: Capability,
        revoked_by: Optional[uuid.UUID] = None,
    ) -> bool:
        """
        Revoke a capability. The grant row is kept with is_granted=False.

        Returns:
            True if an active grant was revoked, False if there was none
        """
        grant = await self._get_grant(user_id, capability)
        if grant is None or not grant.is_granted:
            return False

        grant.is_granted = False
        grant.revoked_at = utcnow()

        await self.event_store.log(
            event_type=EventType.PERMISSION_REVOKED,
            entity_type="user",
            entity_id=user_id,
            user_id=revoked_by,
            payload={"permission": capability.value},
        )
        await self.session.flush()
        logger.info(
            "Permission revoked",
            extra={"user_id": str(user_id), "permission": capability.value},
        )
        return True

    async def list_user_permissions(self, user_id: uuid.UUID) -> List[str]:
        """Names of the user's active grants, sorted."""
        query = (
            select(UserPermission.permission_name)
            .join(Permission, Permission.id == UserPermission.permission_id)
            .where(
                and_(
                    UserPermission.user_id == user_id,
                    UserPermission.is_granted == True,  # noqa: E712
                    Permission.is_active == True,  # noqa: E712
                )
            )
            .order_by(UserPermission.permission_name)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_catalog(self, include_inactive: bool = False) -> List[Permission]:
        """Catalog entries created so far, by category then name."""
        query = select(Permission)
        if not include_inactive:
            query = query.where(Permission.is_active == True)  # noqa: E712
        query = query.order_by(Permission.category, Permission.name)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def _get_grant(
        self,
        user_id: uuid.UUID,
        capability: Capability,
    ) -> Optional[UserPermission]:
        query = select(UserPermission).where(
            and_(
                UserPermission.user_id == user_id,
                UserPermission.permission_name == capability.value,
            )
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def _get_or_create_permission(self, capability: Capability) -> Permission:
        query = select(Permission).where(Permission.name == capability.value)
        result = await self.session.execute(query)
        permission = result.scalar_one_or_none()
        if permission is not None:
            return permission

        category, description = CAPABILITY_INFO[capability]
        await self.session.execute(
            insert_ignoring_conflicts(
                self.session,
                Permission,
                {
                    "id": uuid.uuid4(),
                    "name": capability.value,
                    "category": category,
                    "description": description,
                    "is_active": True,
                },
            )
        )
        result = await self.session.execute(query)
        return result.scalar_one()


async def check_permission(
    session: AsyncSession,
    user_id: uuid.UUID,
    capability: Capability,
) -> bool:
    """Check if a user holds a capability."""
    return await PermissionService(session).check(user_id, capability)
