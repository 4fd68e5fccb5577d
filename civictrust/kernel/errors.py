"""
Error taxonomy for the identity, permission and trust core.

Every error carries an HTTP status and a stable machine-readable code. The
application boundary (civictrust.main) turns these into JSON responses of the
form {"detail": ..., "code": ...}; nothing else about the failure leaks to the
client.
"""

from typing import Any, Dict, Optional


class CivicTrustError(Exception):
    """Base class for expected, classified failures."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.context = context or {}


class ValidationError(CivicTrustError):
    """Malformed or missing input (e.g. terms not agreed, bad email)."""

    status_code = 400
    code = "validation_error"


class UnauthorizedError(CivicTrustError):
    """Missing or invalid bearer credential."""

    status_code = 401
    code = "unauthorized"


class ForbiddenError(CivicTrustError):
    """Authenticated, but lacking the required capability."""

    status_code = 403
    code = "forbidden"


class NotFoundError(CivicTrustError):
    """Referenced entity does not exist."""

    status_code = 404
    code = "not_found"


class InvalidStateError(CivicTrustError):
    """Transition attempted on a record that is no longer pending.

    The record as it currently stands is attached so callers can report the
    existing decision without re-reading it.
    """

    status_code = 409
    code = "already_decided"

    def __init__(self, message: str, *, current: Any = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.current = current


class DependencyError(CivicTrustError):
    """A backing service (the database) is unavailable. Not retried here."""

    status_code = 500
    code = "dependency_unavailable"
