"""
Pydantic schemas for notifications.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from civictrust.schemas.common import CamelModel


class NotificationResponse(CamelModel):
    id: uuid.UUID
    type: str
    title: str
    message: str
    data: Optional[Dict[str, Any]] = None
    source_module: Optional[str] = None
    is_read: bool
    created_at: datetime
