"""
FastAPI dependencies for authentication and database sessions.
"""

import uuid
from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from civictrust.database import async_session_maker
from civictrust.kernel.errors import ForbiddenError, UnauthorizedError
from civictrust.kernel.identity.identity_service import IdentityService
from civictrust.kernel.identity.jwt import verify_access_token
from civictrust.kernel.models.user import User
from civictrust.logging_config import bind_actor


# Security scheme
security = HTTPBearer(auto_error=False)


async def get_db() -> AsyncSession:
    """Dependency that yields database sessions."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


DbSession = Annotated[AsyncSession, Depends(get_db)]


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    db: DbSession,
) -> User:
    """
    Resolve the bearer token to an active user or raise.

    Only the subject is taken from the token. What the user may do is always
    read from the permission registry.
    """
    if not credentials:
        raise UnauthorizedError("Not authenticated")

    payload = verify_access_token(credentials.credentials)
    if not payload:
        raise UnauthorizedError("Invalid or expired token", code="invalid_token")

    try:
        user_id = uuid.UUID(payload.sub)
    except ValueError:
        raise UnauthorizedError("Invalid or expired token", code="invalid_token") from None

    identity_service = IdentityService(db)
    user = await identity_service.get_user_by_id(user_id)

    if not user:
        raise UnauthorizedError("User not found")

    if not user.is_active:
        raise ForbiddenError("User account is disabled", code="account_disabled")

    bind_actor(user.id)
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


def get_request_id(request: Request) -> Optional[str]:
    """Get request correlation ID (set by RequestIdMiddleware)."""
    return getattr(request.state, "request_id", None)


def get_client_ip(request: Request) -> Optional[str]:
    """Extract client IP from request."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None
