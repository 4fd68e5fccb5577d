"""
Pydantic schemas for API request/response validation.
"""

from civictrust.schemas.common import (
    CamelModel,
    ErrorResponse,
    HealthResponse,
    PaginatedResponse,
    SuccessResponse,
)
from civictrust.schemas.identity import (
    AlreadyDecidedResponse,
    EmailCodeRequest,
    EmailCodeSentResponse,
    EmailCodeVerifyRequest,
    EmailVerifiedResponse,
    RejectRequest,
    VerificationEnvelope,
    VerificationResponse,
    VerificationStatusResponse,
    VerificationSubmitRequest,
    VerifiedPermissions,
)
from civictrust.schemas.permission import (
    MyPermissionsResponse,
    PermissionCatalogEntry,
    PermissionCheckRequest,
    PermissionCheckResponse,
    PermissionGrantRequest,
    PermissionGrantResponse,
)
from civictrust.schemas.notification import NotificationResponse
from civictrust.schemas.trust import TrustScoreComponents, TrustScoreResponse

__all__ = [
    # Common
    "CamelModel",
    "ErrorResponse",
    "HealthResponse",
    "PaginatedResponse",
    "SuccessResponse",
    # Identity
    "AlreadyDecidedResponse",
    "EmailCodeRequest",
    "EmailCodeSentResponse",
    "EmailCodeVerifyRequest",
    "EmailVerifiedResponse",
    "RejectRequest",
    "VerificationEnvelope",
    "VerificationResponse",
    "VerificationStatusResponse",
    "VerificationSubmitRequest",
    "VerifiedPermissions",
    # Permissions
    "MyPermissionsResponse",
    "PermissionCatalogEntry",
    "PermissionCheckRequest",
    "PermissionCheckResponse",
    "PermissionGrantRequest",
    "PermissionGrantResponse",
    # Notifications
    "NotificationResponse",
    # Trust
    "TrustScoreComponents",
    "TrustScoreResponse",
]
