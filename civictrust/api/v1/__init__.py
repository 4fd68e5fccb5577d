"""
API v1 routes.
"""

from fastapi import APIRouter

from civictrust.api.v1 import admin_verification, identity, notifications, permissions, trust

router = APIRouter()

router.include_router(identity.router, prefix="/identity", tags=["Identity"])
router.include_router(
    admin_verification.router,
    prefix="/admin/identity-verifications",
    tags=["Identity Review"],
)
router.include_router(permissions.router, prefix="/permissions", tags=["Permissions"])
router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
router.include_router(trust.router, prefix="/trust", tags=["Trust"])
