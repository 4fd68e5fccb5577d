"""
Pydantic schemas for the permission API.
"""

import uuid
from typing import List, Optional

from pydantic import Field

from civictrust.schemas.common import CamelModel


class PermissionCheckRequest(CamelModel):
    permission_name: str = Field(..., max_length=100)


class PermissionCheckResponse(CamelModel):
    permission_name: str
    has_permission: bool


class MyPermissionsResponse(CamelModel):
    user_id: uuid.UUID
    permissions: List[str]


class PermissionGrantRequest(CamelModel):
    """Grant or revoke one capability for a user."""

    user_id: uuid.UUID
    permission_name: str = Field(..., max_length=100)


class PermissionGrantResponse(CamelModel):
    user_id: uuid.UUID
    permission_name: str
    is_granted: bool
    changed: bool


class PermissionCatalogEntry(CamelModel):
    name: str
    description: Optional[str] = None
    category: str
