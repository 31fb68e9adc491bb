from __future__ import annotations

import uuid
from enum import Enum
from typing import List, Optional

from pydantic import Field

from fullmargin.schemas.common import CamelInput, CamelModel, UTCDateTime

"""
Schemas Communautés, adhésions et demandes d’accès (Pydantic).

Rôle (fonctionnel) :
- Création d’une communauté + représentations (liste “mes communautés”, liste publique avec propriétaire).
- Adhésion : join / leave / statut, liste des membres.
- Demandes d’accès (communautés privées) : création, listes (avec le demandeur côté
  propriétaire), compteurs de badge, refus motivé.
"""


class Visibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class MemberStatus(str, Enum):
    ACTIVE = "active"
    LEFT = "left"


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    LEFT = "left"


class CommunityCreate(CamelInput):
    name: str = Field(..., min_length=2, max_length=120)
    slug: Optional[str] = Field(default=None, max_length=140)
    visibility: Visibility = Visibility.PUBLIC
    category: str = Field(default="", max_length=60)
    description: str = Field(default="", max_length=5000)
    cover_url: str = Field(default="", max_length=500)
    logo_url: str = Field(default="", max_length=500)


class OwnerOut(CamelModel):
    id: uuid.UUID
    full_name: str = ""
    avatar_url: Optional[str] = None


class CommunityOut(CamelModel):
    id: uuid.UUID
    owner_id: uuid.UUID
    name: str
    slug: str
    visibility: str
    category: str
    description: str
    cover_url: str
    logo_url: str
    members_count: int
    created_at: UTCDateTime
    updated_at: UTCDateTime


class PublicCommunityOut(CommunityOut):
    owner: Optional[OwnerOut] = None


class CommunityItems(CamelModel):
    items: List[CommunityOut]


class PublicCommunityItems(CamelModel):
    items: List[PublicCommunityOut]


# --- Adhésions ---

class JoinIn(CamelInput):
    community_id: uuid.UUID
    note: str = Field(default="", max_length=2000)


class LeaveIn(CamelInput):
    community_id: uuid.UUID


class MembershipStatusOut(CamelModel):
    # approved | pending | rejected | left | none
    status: str


class MyMembershipsOut(CamelModel):
    community_ids: List[uuid.UUID]


class MemberOut(CamelModel):
    id: uuid.UUID
    full_name: str
    avatar_url: Optional[str] = None
    joined_at: UTCDateTime


# --- Demandes d’accès ---

class AccessRequestOut(CamelModel):
    id: uuid.UUID
    community_id: uuid.UUID
    user_id: uuid.UUID
    status: str
    note: str
    reason: str
    created_at: UTCDateTime
    updated_at: UTCDateTime


class AccessRequestItems(CamelModel):
    items: List[AccessRequestOut]
    pending_count: int = 0


class RejectIn(CamelInput):
    reason: str = Field(default="", max_length=2000)


class AccessRequestCreateIn(CamelInput):
    community_id: uuid.UUID
    note: str = Field(default="", max_length=2000)


class AccessRequestCreatedOut(CamelModel):
    id: uuid.UUID
    status: str


class RequesterOut(CamelModel):
    id: uuid.UUID
    full_name: str = ""
    avatar_url: Optional[str] = None


class IncomingRequestOut(CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    user: RequesterOut
    status: str
    note: str
    requested_at: UTCDateTime
    updated_at: UTCDateTime


class IncomingRequestItems(CamelModel):
    items: List[IncomingRequestOut]
    pending_count: int


class RequestCountersOut(CamelModel):
    my_pending: int
    owner_pending: int


class RequestMarkSeenIn(CamelInput):
    request_ids: Optional[List[uuid.UUID]] = None
