"""
Identity verification endpoints for the signed-in user.
"""

from fastapi import APIRouter, Request, Response, status

from civictrust.api.deps import CurrentUser, DbSession, get_client_ip
from civictrust.config import get_settings
from civictrust.engines.verification.workflow import VerificationWorkflow
from civictrust.kernel.identity.identity_service import IdentityService
from civictrust.kernel.identity.mailer import EmailSender
from civictrust.kernel.models.verification import VerificationLevel
from civictrust.schemas.identity import (
    EmailCodeRequest,
    EmailCodeSentResponse,
    EmailCodeVerifyRequest,
    EmailVerifiedResponse,
    VerificationEnvelope,
    VerificationResponse,
    VerificationStatusResponse,
    VerificationSubmitRequest,
    VerifiedPermissions,
)

router = APIRouter()


@router.post("/submit", response_model=VerificationEnvelope)
async def submit_verification(
    request: Request,
    response: Response,
    data: VerificationSubmitRequest,
    user: CurrentUser,
    db: DbSession,
):
    """
    Submit an identity-proof request.

    201 when a new pending record was created, 200 when an existing pending
    or approved record is returned instead.
    """
    workflow = VerificationWorkflow(db)
    record, created = await workflow.submit(
        user.id,
        data.email,
        data.terms_agreed,
        ip_address=get_client_ip(request),
    )
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return VerificationEnvelope(verification=VerificationResponse.model_validate(record))


@router.get("/status", response_model=VerificationStatusResponse)
async def get_verification_status(user: CurrentUser, db: DbSession):
    """Get the caller's verification status and verified-citizen permissions."""
    result = await VerificationWorkflow(db).status(user.id)
    return VerificationStatusResponse(
        is_verified=result.is_verified,
        verification_level=result.verification_level,
        permissions=VerifiedPermissions(**result.permissions),
        verified_at=result.verified_at,
    )


@router.post("/email/send-code", response_model=EmailCodeSentResponse)
async def send_email_code(data: EmailCodeRequest, user: CurrentUser, db: DbSession):
    """Issue a confirmation code for an email address and send it."""
    settings = get_settings()
    code = await IdentityService(db).issue_email_code(user, data.email)
    delivered = await EmailSender(settings).send_verification_code(data.email, code)
    return EmailCodeSentResponse(
        message="Verification code sent" if delivered else "Verification code issued",
        expires_in_minutes=settings.email_code_ttl_minutes,
        delivered=delivered,
    )


@router.post("/email/verify-code", response_model=EmailVerifiedResponse)
async def verify_email_code(data: EmailCodeVerifyRequest, user: CurrentUser, db: DbSession):
    """Confirm an email code."""
    user = await IdentityService(db).confirm_email_code(user, data.email, data.code)
    result = await VerificationWorkflow(db).status(user.id)
    return EmailVerifiedResponse(
        email_verified_at=user.email_verified_at,
        verification_level=result.verification_level,
    )
