"""
Identity verification workflow.

pending -> approved and pending -> rejected are the only transitions; both
targets are terminal. Adjudication is a single conditional UPDATE guarded on
state='pending', so of two concurrent decisions exactly one changes the row
and the other sees InvalidStateError with the record as it now stands.

Approval grants the verified-citizen bundle inside the same transaction.
The notification is written only after that transaction commits.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Set, Tuple

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import and_, desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from civictrust.kernel.errors import InvalidStateError, NotFoundError, ValidationError
from civictrust.kernel.events.event_store import EventStore
from civictrust.kernel.models.base import utcnow
from civictrust.kernel.models.event_log import EventType
from civictrust.kernel.models.user import User
from civictrust.kernel.models.verification import (
    IdentityVerification,
    VerificationLevel,
    VerificationState,
)
from civictrust.kernel.notifications.dispatcher import NotificationDispatcher
from civictrust.kernel.permissions.capabilities import VERIFIED_CITIZEN_BUNDLE
from civictrust.kernel.permissions.permission_service import PermissionService
from civictrust.kernel.upsert import insert_ignoring_conflicts
from civictrust.logging_config import get_logger

logger = get_logger(__name__)

SOURCE_MODULE = "identity"
NOTIFICATION_TYPE = "identity_verification"


_TRANSITIONS: Set[Tuple[str, str]] = {
    (VerificationState.PENDING.value, VerificationState.APPROVED.value),
    (VerificationState.PENDING.value, VerificationState.REJECTED.value),
}


def can_transition(from_state: str, to_state: str) -> bool:
    """Check whether from_state -> to_state is a legal transition."""
    return (str(from_state), str(to_state)) in _TRANSITIONS


def valid_transitions(from_state: str) -> List[str]:
    """Target states reachable from from_state."""
    return sorted(t for f, t in _TRANSITIONS if f == str(from_state))


@dataclass
class VerificationStatus:
    """What a user's verification currently entitles them to."""
    is_verified: bool
    verification_level: VerificationLevel
    permissions: Dict[str, bool] = field(default_factory=dict)
    verified_at: Optional[datetime] = None


class VerificationWorkflow:
    """Submission intake, adjudication and status for identity verification."""

    def __init__(
        self,
        session: AsyncSession,
        dispatcher: Optional[NotificationDispatcher] = None,
    ):
        self.session = session
        self.event_store = EventStore(session)
        self.permissions = PermissionService(session)
        self.dispatcher = dispatcher or NotificationDispatcher(session)

    async def submit(
        self,
        user_id: uuid.UUID,
        submitted_email: str,
        terms_agreed: bool,
        ip_address: Optional[str] = None,
    ) -> Tuple[IdentityVerification, bool]:
        """
        Submit an identity-proof request.

        An open pending submission, or an approval that already stands, is
        returned as-is. After a rejection a fresh pending record is created.

        Returns:
            (record, created)

        Raises:
            ValidationError: terms_not_agreed or invalid_email
        """
        if not terms_agreed:
            raise ValidationError(
                "Terms must be agreed to submit a verification",
                code="terms_not_agreed",
            )
        try:
            email = validate_email(submitted_email, check_deliverability=False).normalized
        except EmailNotValidError as e:
            raise ValidationError(str(e), code="invalid_email") from None

        pending = await self._get_pending(user_id)
        if pending is not None:
            return pending, False

        latest = await self._get_latest_decided(user_id)
        if latest is not None and latest.state == VerificationState.APPROVED:
            return latest, False

        new_id = uuid.uuid4()
        await self.session.execute(
            insert_ignoring_conflicts(
                self.session,
                IdentityVerification,
                {
                    "id": new_id,
                    "user_id": user_id,
                    "submitted_email": email,
                    "terms_agreed": True,
                    "state": VerificationState.PENDING.value,
                    "created_at": utcnow(),
                },
            )
        )
        record = await self._get_pending(user_id)
        if record.id != new_id:
            # A concurrent submission won the one-pending index
            return record, False

        await self.event_store.log(
            event_type=EventType.VERIFICATION_SUBMITTED,
            entity_type="identity_verification",
            entity_id=record.id,
            user_id=user_id,
            payload={"submitted_email": email},
            ip_address=ip_address,
        )
        await self.session.flush()
        logger.info(
            "Verification submitted",
            extra={"user_id": str(user_id), "verification_id": str(record.id)},
        )
        return record, True

    async def approve(
        self,
        verification_id: uuid.UUID,
        reviewer_id: uuid.UUID,
        ip_address: Optional[str] = None,
    ) -> IdentityVerification:
        """
        Approve a pending verification and grant the verified-citizen bundle.

        Raises:
            NotFoundError: Unknown verification
            InvalidStateError: Already decided; no grants, no notification
        """
        record = await self._decide(
            verification_id,
            VerificationState.APPROVED,
            reviewer_id,
        )

        for capability in VERIFIED_CITIZEN_BUNDLE:
            await self.permissions.grant(record.user_id, capability, granted_by=reviewer_id)

        await self.event_store.log(
            event_type=EventType.VERIFICATION_APPROVED,
            entity_type="identity_verification",
            entity_id=record.id,
            user_id=reviewer_id,
            payload={
                "subject_user_id": record.user_id,
                "granted": [c.value for c in VERIFIED_CITIZEN_BUNDLE],
            },
            ip_address=ip_address,
        )
        await self.session.commit()
        logger.info(
            "Verification approved",
            extra={"verification_id": str(record.id), "reviewer_id": str(reviewer_id)},
        )

        await self._notify(
            record,
            title="Identity verification approved",
            message="Your identity has been verified. Voting, commenting, "
                    "petitions and FOI requests are now available.",
            data={"verification_id": str(record.id), "state": record.state},
        )
        return record

    async def reject(
        self,
        verification_id: uuid.UUID,
        reviewer_id: uuid.UUID,
        reason: str,
        ip_address: Optional[str] = None,
    ) -> IdentityVerification:
        """
        Reject a pending verification with a reason shown to the user.

        Raises:
            ValidationError: Empty reason
            NotFoundError: Unknown verification
            InvalidStateError: Already decided
        """
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A rejection reason is required", code="reason_required")

        record = await self._decide(
            verification_id,
            VerificationState.REJECTED,
            reviewer_id,
            rejection_reason=reason,
        )

        await self.event_store.log(
            event_type=EventType.VERIFICATION_REJECTED,
            entity_type="identity_verification",
            entity_id=record.id,
            user_id=reviewer_id,
            payload={"subject_user_id": record.user_id, "reason": reason},
            ip_address=ip_address,
        )
        await self.session.commit()
        logger.info(
            "Verification rejected",
            extra={"verification_id": str(record.id), "reviewer_id": str(reviewer_id)},
        )

        await self._notify(
            record,
            title="Identity verification rejected",
            message=f"Your identity verification was rejected: {reason}",
            data={
                "verification_id": str(record.id),
                "state": record.state,
                "reason": reason,
            },
        )
        return record

    async def status(self, user_id: uuid.UUID) -> VerificationStatus:
        """
        Current verification status. Never raises for users without submissions.

        Permission flags come from the registry, so a revoke after approval
        shows up here.
        """
        latest = await self._get_latest_decided(user_id)
        is_verified = latest is not None and latest.state == VerificationState.APPROVED

        if is_verified:
            level = VerificationLevel.GOVERNMENT
        else:
            result = await self.session.execute(
                select(User.email_verified_at).where(User.id == user_id)
            )
            email_verified_at = result.scalar_one_or_none()
            level = VerificationLevel.EMAIL if email_verified_at else VerificationLevel.NONE

        held = set(await self.permissions.list_user_permissions(user_id))
        return VerificationStatus(
            is_verified=is_verified,
            verification_level=level,
            permissions={c.value: c.value in held for c in VERIFIED_CITIZEN_BUNDLE},
            verified_at=latest.decided_at if is_verified else None,
        )

    async def get(self, verification_id: uuid.UUID) -> Optional[IdentityVerification]:
        """Get a verification by id."""
        result = await self.session.execute(
            select(IdentityVerification)
            .where(IdentityVerification.id == verification_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_queue(
        self,
        state: VerificationState = VerificationState.PENDING,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[IdentityVerification], int]:
        """Review queue for a state, oldest first. Returns (page, total)."""
        condition = IdentityVerification.state == VerificationState(state).value
        total = (
            await self.session.execute(
                select(func.count(IdentityVerification.id)).where(condition)
            )
        ).scalar_one()
        result = await self.session.execute(
            select(IdentityVerification)
            .where(condition)
            .order_by(IdentityVerification.created_at, IdentityVerification.id)
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total

    async def _notify(
        self,
        record: IdentityVerification,
        title: str,
        message: str,
        data: Dict[str, str],
    ) -> None:
        """Tell the subject about a decision. Runs after the decision committed."""
        notification = await self.dispatcher.dispatch(
            user_id=record.user_id,
            type=NOTIFICATION_TYPE,
            title=title,
            message=message,
            data=data,
            source_module=SOURCE_MODULE,
        )
        if notification is None:
            # The dispatcher's rollback expired the committed record
            await self.session.refresh(record)

    async def _decide(
        self,
        verification_id: uuid.UUID,
        to_state: VerificationState,
        reviewer_id: uuid.UUID,
        rejection_reason: Optional[str] = None,
    ) -> IdentityVerification:
        """Move a pending record to to_state. Must be the transaction's first write."""
        if not can_transition(VerificationState.PENDING.value, to_state.value):
            raise ValueError(f"Invalid transition: pending -> {to_state.value}")

        result = await self.session.execute(
            update(IdentityVerification)
            .where(
                and_(
                    IdentityVerification.id == verification_id,
                    IdentityVerification.state == VerificationState.PENDING.value,
                )
            )
            .values(
                state=to_state.value,
                reviewer_id=reviewer_id,
                decided_at=utcnow(),
                rejection_reason=rejection_reason,
            )
            .execution_options(synchronize_session=False)
        )

        record = await self.get(verification_id)
        if result.rowcount == 1:
            return record

        if record is None:
            raise NotFoundError(
                f"Verification {verification_id} not found",
                context={"verification_id": str(verification_id)},
            )
        raise InvalidStateError(
            f"Verification {verification_id} is already {record.state}",
            current=record,
            context={"verification_id": str(verification_id), "state": str(record.state)},
        )

    async def _get_pending(self, user_id: uuid.UUID) -> Optional[IdentityVerification]:
        result = await self.session.execute(
            select(IdentityVerification).where(
                and_(
                    IdentityVerification.user_id == user_id,
                    IdentityVerification.state == VerificationState.PENDING.value,
                )
            )
        )
        return result.scalar_one_or_none()

    async def _get_latest_decided(self, user_id: uuid.UUID) -> Optional[IdentityVerification]:
        result = await self.session.execute(
            select(IdentityVerification)
            .where(
                and_(
                    IdentityVerification.user_id == user_id,
                    IdentityVerification.state != VerificationState.PENDING.value,
                )
            )
            .order_by(
                desc(IdentityVerification.decided_at),
                desc(IdentityVerification.created_at),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()
