"""
Admin review queue for identity verifications.

Every route requires admin.identity.review.
"""

import uuid

from fastapi import APIRouter, Query, Request, status
from fastapi.responses import JSONResponse

from civictrust.api.deps import CurrentUser, DbSession, get_client_ip
from civictrust.api.middleware.permission_gate import require_permission
from civictrust.engines.verification.workflow import VerificationWorkflow
from civictrust.kernel.errors import InvalidStateError
from civictrust.kernel.models.verification import VerificationState
from civictrust.kernel.permissions.capabilities import Capability
from civictrust.schemas.common import PaginatedResponse
from civictrust.schemas.identity import (
    AlreadyDecidedResponse,
    RejectRequest,
    VerificationEnvelope,
    VerificationResponse,
)

router = APIRouter()


@router.get("", response_model=PaginatedResponse[VerificationResponse])
async def list_verifications(
    db: DbSession,
    _: None = require_permission(Capability.ADMIN_IDENTITY_REVIEW),
    state: VerificationState = Query(VerificationState.PENDING),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
):
    """List verifications in a state, oldest first."""
    items, total = await VerificationWorkflow(db).list_queue(
        state=state,
        limit=page_size,
        offset=(page - 1) * page_size,
    )
    return PaginatedResponse[VerificationResponse].create(
        items=[VerificationResponse.model_validate(v) for v in items],
        total=total,
        page=page,
        page_size=page_size,
    )


def _already_decided(exc: InvalidStateError) -> JSONResponse:
    """409 carrying the existing decision. Built before the session rolls back."""
    body = AlreadyDecidedResponse(
        detail=exc.message,
        code=exc.code,
        verification=VerificationResponse.model_validate(exc.current),
    )
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=body.model_dump(mode="json", by_alias=True),
    )


@router.post(
    "/{verification_id}/approve",
    response_model=VerificationEnvelope,
    responses={409: {"model": AlreadyDecidedResponse}},
)
async def approve_verification(
    verification_id: uuid.UUID,
    request: Request,
    user: CurrentUser,
    db: DbSession,
    _: None = require_permission(Capability.ADMIN_IDENTITY_REVIEW),
):
    """Approve a pending verification. 409 with the existing record if already decided."""
    try:
        record = await VerificationWorkflow(db).approve(
            verification_id,
            user.id,
            ip_address=get_client_ip(request),
        )
    except InvalidStateError as exc:
        return _already_decided(exc)
    return VerificationEnvelope(verification=VerificationResponse.model_validate(record))


@router.post(
    "/{verification_id}/reject",
    response_model=VerificationEnvelope,
    responses={409: {"model": AlreadyDecidedResponse}},
)
async def reject_verification(
    verification_id: uuid.UUID,
    data: RejectRequest,
    request: Request,
    user: CurrentUser,
    db: DbSession,
    _: None = require_permission(Capability.ADMIN_IDENTITY_REVIEW),
):
    """Reject a pending verification with a reason. 409 with the existing record if already decided."""
    try:
        record = await VerificationWorkflow(db).reject(
            verification_id,
            user.id,
            data.reason,
            ip_address=get_client_ip(request),
        )
    except InvalidStateError as exc:
        return _already_decided(exc)
    return VerificationEnvelope(verification=VerificationResponse.model_validate(record))
