"""
API middleware and route guards.
"""

from civictrust.api.middleware.permission_gate import require_permission
from civictrust.api.middleware.request_id import RequestIdMiddleware

__all__ = ["require_permission", "RequestIdMiddleware"]
