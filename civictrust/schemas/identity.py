"""
Pydantic schemas for identity verification and email confirmation.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from civictrust.kernel.models.verification import VerificationLevel, VerificationState
from civictrust.schemas.common import CamelModel


class VerificationSubmitRequest(CamelModel):
    """Identity-proof submission. The email is validated by the workflow."""

    email: str = Field(..., max_length=255)
    terms_agreed: bool = False


class VerificationResponse(CamelModel):
    """A verification record as seen by clients."""

    id: uuid.UUID
    user_id: uuid.UUID
    submitted_email: str
    state: VerificationState
    reviewer_id: Optional[uuid.UUID] = None
    rejection_reason: Optional[str] = None
    created_at: datetime
    decided_at: Optional[datetime] = None


class VerificationEnvelope(CamelModel):
    verification: VerificationResponse


class AlreadyDecidedResponse(CamelModel):
    """409 body: the decision that already stands."""

    detail: str
    code: str
    verification: VerificationResponse


class RejectRequest(CamelModel):
    reason: str = Field(..., max_length=2000)


class VerifiedPermissions(CamelModel):
    """Flags for the capabilities unlocked by an approved verification."""

    can_vote: bool = False
    can_comment: bool = False
    can_create_petitions: bool = False
    can_access_foi: bool = Field(False, alias="canAccessFOI")


class VerificationStatusResponse(CamelModel):
    """Current verification status of the caller."""

    is_verified: bool
    verification_level: VerificationLevel
    permissions: VerifiedPermissions
    verified_at: Optional[datetime] = None


class EmailCodeRequest(CamelModel):
    email: EmailStr


class EmailCodeVerifyRequest(CamelModel):
    email: EmailStr
    code: str = Field(..., min_length=6, max_length=6)


class EmailCodeSentResponse(CamelModel):
    """Acknowledgement that a code was issued."""

    message: str
    expires_in_minutes: int
    delivered: bool


class EmailVerifiedResponse(CamelModel):
    verified: bool = True
    email_verified_at: datetime
    verification_level: VerificationLevel
