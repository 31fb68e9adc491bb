from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

from fullmargin.schemas.common import CamelInput, CamelModel, UTCDateTime


class NotificationOut(CamelModel):
    id: uuid.UUID
    kind: str
    community_id: Optional[uuid.UUID] = None
    request_id: Optional[uuid.UUID] = None
    payload: Dict[str, Any]
    seen: bool
    created_at: UTCDateTime


class NotificationItems(CamelModel):
    items: List[NotificationOut]
    unseen: int


class MarkSeenIn(CamelInput):
    ids: Optional[List[uuid.UUID]] = None


class MarkSeenOut(CamelModel):
    updated: int
