"""
Identity Core - bearer verification, user lookup and email confirmation.
"""

from civictrust.kernel.identity.jwt import (
    JWTManager,
    AccessTokenPayload,
    create_access_token,
    verify_access_token,
)
from civictrust.kernel.identity.identity_service import (
    IdentityService,
    purge_expired_email_codes,
)
from civictrust.kernel.identity.mailer import EmailSender

__all__ = [
    "JWTManager",
    "AccessTokenPayload",
    "create_access_token",
    "verify_access_token",
    "IdentityService",
    "purge_expired_email_codes",
    "EmailSender",
]
