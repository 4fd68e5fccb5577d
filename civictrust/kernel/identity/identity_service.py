"""
Identity service: user lookup and email confirmation codes.
"""

import hashlib
import hmac
import secrets
import uuid
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from civictrust.config import get_settings
from civictrust.kernel.errors import ValidationError
from civictrust.kernel.events.event_store import EventStore
from civictrust.kernel.models.base import utcnow
from civictrust.kernel.models.email_code import EmailVerificationCode
from civictrust.kernel.models.event_log import EventType
from civictrust.kernel.models.user import User
from civictrust.kernel.upsert import insert_ignoring_conflicts
from civictrust.logging_config import get_logger

logger = get_logger(__name__)


def _hash_code(code: str) -> str:
    return hashlib.sha256(code.encode()).hexdigest()


def generate_code() -> str:
    """Six-digit numeric code."""
    return str(100000 + secrets.randbelow(900000))


class IdentityService:
    """
    Service for user identity operations.

    Accounts themselves are created by the authentication subsystem; this
    service reads them and manages the email confirmation step that raises a
    user's verification level to "email".
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.settings = get_settings()
        self.event_store = EventStore(session)

    async def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        """Get a user by ID."""
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get a user by email (case-insensitive)."""
        result = await self.session.execute(
            select(User).where(User.email == email.lower().strip())
        )
        return result.scalar_one_or_none()

    async def issue_email_code(
        self,
        user: User,
        email: str,
        now: Optional[datetime] = None,
    ) -> str:
        """
        Issue a confirmation code for an email address.

        Any earlier code for the same address is replaced, and the attempt
        counter starts over.

        Returns:
            The plain code, for delivery. Only its hash is stored.
        """
        now = now or utcnow()
        email = email.lower().strip()
        code = generate_code()
        expires_at = now + timedelta(minutes=self.settings.email_code_ttl_minutes)

        record = await self._get_code(email)
        if record is None:
            await self.session.execute(
                insert_ignoring_conflicts(
                    self.session,
                    EmailVerificationCode,
                    {
                        "id": uuid.uuid4(),
                        "email": email,
                        "user_id": user.id,
                        "code_hash": _hash_code(code),
                        "attempts": 0,
                        "expires_at": expires_at,
                    },
                )
            )
            record = await self._get_code(email)

        record.user_id = user.id
        record.code_hash = _hash_code(code)
        record.attempts = 0
        record.expires_at = expires_at
        record.consumed_at = None

        await self.event_store.log(
            event_type=EventType.EMAIL_CODE_ISSUED,
            entity_type="user",
            entity_id=user.id,
            user_id=user.id,
            payload={"expires_at": expires_at},
        )
        await self.session.flush()
        return code

    async def confirm_email_code(
        self,
        user: User,
        email: str,
        code: str,
        now: Optional[datetime] = None,
    ) -> User:
        """
        Confirm an email code and mark the user's email as verified.

        A wrong code consumes one attempt; the counter is committed before
        the error propagates so it survives the request rollback.

        Raises:
            ValidationError: code_not_found, code_expired, too_many_attempts
                or invalid_code
        """
        now = now or utcnow()
        email = email.lower().strip()
        record = await self._get_code(email)

        if record is None or record.consumed_at is not None or record.user_id != user.id:
            raise ValidationError(
                "No verification code found for this email",
                code="code_not_found",
            )
        if record.is_expired(now):
            raise ValidationError("Verification code has expired", code="code_expired")
        if record.attempts >= self.settings.email_code_max_attempts:
            raise ValidationError("Too many failed attempts", code="too_many_attempts")

        if not hmac.compare_digest(record.code_hash, _hash_code(code.strip())):
            record.attempts += 1
            await self.session.commit()
            logger.info(
                "Email code mismatch",
                extra={"user_id": str(user.id), "attempts": record.attempts},
            )
            raise ValidationError("Invalid verification code", code="invalid_code")

        record.consumed_at = now
        user.email_verified_at = now

        await self.event_store.log(
            event_type=EventType.EMAIL_CONFIRMED,
            entity_type="user",
            entity_id=user.id,
            user_id=user.id,
            payload={"email": email},
        )
        await self.session.flush()
        return user

    async def purge_expired_codes(self, now: Optional[datetime] = None) -> int:
        """Delete expired codes. Returns the number of rows removed."""
        now = now or utcnow()
        result = await self.session.execute(
            delete(EmailVerificationCode)
            .where(EmailVerificationCode.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def _get_code(self, email: str) -> Optional[EmailVerificationCode]:
        result = await self.session.execute(
            select(EmailVerificationCode).where(EmailVerificationCode.email == email)
        )
        return result.scalar_one_or_none()


async def purge_expired_email_codes(
    session_factory: async_sessionmaker[AsyncSession],
    now: Optional[datetime] = None,
) -> int:
    """Delete expired email codes in a transaction of their own."""
    async with session_factory() as session:
        purged = await IdentityService(session).purge_expired_codes(now=now)
        await session.commit()
    logger.info("Purged expired email codes", extra={"purged": purged})
    return purged
