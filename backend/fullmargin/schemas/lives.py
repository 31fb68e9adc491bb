from __future__ import annotations

import uuid
from enum import Enum
from typing import Any, List, Optional

from pydantic import Field

from fullmargin.schemas.common import CamelInput, CamelModel, ISODateTime, UTCDateTime

"""
Schemas Lives (directs de communauté).

Rôle (fonctionnel) :
- Statuts du cycle de vie (LiveStatus) partagés par les services et l’API.
- Payloads des transitions : programmer, modifier, lancer (go-live), démarrer tout de suite.
- Représentations : direct (avec drapeau isOwner), direct public en cours (avec communauté),
  token d’accès à la salle.

Notes :
- durationMin borne la durée prévue (planned_end_at) : 5 minutes à 12 heures.
"""


class LiveStatus(str, Enum):
    SCHEDULED = "scheduled"
    LIVE = "live"
    ENDED = "ended"
    CANCELLED = "cancelled"


DURATION_FIELD = Field(default=None, ge=5, le=720)


class ScheduleIn(CamelInput):
    community_id: uuid.UUID
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=5000)
    starts_at: ISODateTime
    is_public: bool = False
    duration_min: Optional[int] = DURATION_FIELD


class LiveUpdateIn(CamelInput):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    starts_at: Optional[ISODateTime] = None
    is_public: Optional[bool] = None
    duration_min: Optional[int] = DURATION_FIELD


class GoLiveIn(CamelInput):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    is_public: Optional[bool] = None


class StartNowIn(CamelInput):
    community_id: uuid.UUID
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=5000)
    is_public: bool = False
    duration_min: Optional[int] = DURATION_FIELD


class LiveOut(CamelModel):
    id: uuid.UUID
    community_id: uuid.UUID
    title: str
    description: str
    status: LiveStatus
    is_public: bool
    starts_at: Optional[UTCDateTime] = None
    planned_end_at: Optional[UTCDateTime] = None
    ended_at: Optional[UTCDateTime] = None
    room_name: str
    created_at: UTCDateTime
    updated_at: UTCDateTime
    is_owner: bool = False


class LiveEnvelope(CamelModel):
    live: LiveOut


class LiveItems(CamelModel):
    items: List[LiveOut]


class PublicLiveOut(CamelModel):
    id: uuid.UUID
    title: str
    community_id: uuid.UUID
    community_name: str
    community_slug: str
    community_avatar: Optional[str] = None
    starts_at: Optional[UTCDateTime] = None
    planned_end_at: Optional[UTCDateTime] = None


class PublicLiveItems(CamelModel):
    items: List[PublicLiveOut]


class RoomTokenOut(CamelModel):
    token: str
    room: str
    domain: str
    is_owner: bool


def live_event(event_type: str, live_out: LiveOut, **extra: Any) -> dict[str, Any]:
    """Payload WS standard pour un event de direct (type + data camelCase)."""
    data = live_out.model_dump(mode="json", by_alias=True, exclude={"is_owner"})
    data.update(extra)
    return {"type": event_type, "data": {"live": data}}
