"""
Permission endpoints.

Anyone signed in may read their own grants; the catalog and grant/revoke
routes require manage_permissions.
"""

from typing import List

from fastapi import APIRouter

from civictrust.api.deps import CurrentUser, DbSession
from civictrust.api.middleware.permission_gate import require_permission
from civictrust.kernel.errors import NotFoundError, ValidationError
from civictrust.kernel.identity.identity_service import IdentityService
from civictrust.kernel.permissions.capabilities import (
    CAPABILITY_INFO,
    Capability,
    parse_capability,
)
from civictrust.kernel.permissions.permission_service import PermissionService
from civictrust.schemas.permission import (
    MyPermissionsResponse,
    PermissionCatalogEntry,
    PermissionCheckRequest,
    PermissionCheckResponse,
    PermissionGrantRequest,
    PermissionGrantResponse,
)

router = APIRouter()


def _capability_or_400(name: str) -> Capability:
    try:
        return parse_capability(name)
    except ValueError as e:
        raise ValidationError(str(e), code="unknown_permission") from None


@router.get("/me", response_model=MyPermissionsResponse)
async def my_permissions(user: CurrentUser, db: DbSession):
    """List the caller's active grants."""
    names = await PermissionService(db).list_user_permissions(user.id)
    return MyPermissionsResponse(user_id=user.id, permissions=names)


@router.post("/check", response_model=PermissionCheckResponse)
async def check_permission(data: PermissionCheckRequest, user: CurrentUser, db: DbSession):
    """Check one capability for the caller. Unknown names are never held."""
    try:
        capability = parse_capability(data.permission_name)
    except ValueError:
        return PermissionCheckResponse(permission_name=data.permission_name, has_permission=False)
    allowed = await PermissionService(db).check(user.id, capability)
    return PermissionCheckResponse(permission_name=capability.value, has_permission=allowed)


@router.get("/catalog", response_model=List[PermissionCatalogEntry])
async def permission_catalog(
    db: DbSession,
    _: None = require_permission(Capability.MANAGE_PERMISSIONS),
):
    """All grantable capabilities, minus any deactivated in the catalog."""
    rows = {p.name: p for p in await PermissionService(db).list_catalog(include_inactive=True)}
    entries = []
    for capability in Capability:
        row = rows.get(capability.value)
        if row is not None and not row.is_active:
            continue
        category, description = CAPABILITY_INFO[capability]
        entries.append(
            PermissionCatalogEntry(
                name=capability.value,
                category=row.category if row is not None else category,
                description=row.description if row is not None else description,
            )
        )
    return sorted(entries, key=lambda e: (e.category, e.name))


@router.post("/grant", response_model=PermissionGrantResponse)
async def grant_permission(
    data: PermissionGrantRequest,
    user: CurrentUser,
    db: DbSession,
    _: None = require_permission(Capability.MANAGE_PERMISSIONS),
):
    """Grant a capability to a user. Granting an active capability is a no-op."""
    capability = _capability_or_400(data.permission_name)
    if await IdentityService(db).get_user_by_id(data.user_id) is None:
        raise NotFoundError(f"User {data.user_id} not found")

    service = PermissionService(db)
    already = await service.check(data.user_id, capability)
    await service.grant(data.user_id, capability, granted_by=user.id)
    return PermissionGrantResponse(
        user_id=data.user_id,
        permission_name=capability.value,
        is_granted=True,
        changed=not already,
    )


@router.post("/revoke", response_model=PermissionGrantResponse)
async def revoke_permission(
    data: PermissionGrantRequest,
    user: CurrentUser,
    db: DbSession,
    _: None = require_permission(Capability.MANAGE_PERMISSIONS),
):
    """Revoke a capability. Revoking one that is not held is a no-op."""
    capability = _capability_or_400(data.permission_name)
    changed = await PermissionService(db).revoke(data.user_id, capability, revoked_by=user.id)
    return PermissionGrantResponse(
        user_id=data.user_id,
        permission_name=capability.value,
        is_granted=False,
        changed=changed,
    )
