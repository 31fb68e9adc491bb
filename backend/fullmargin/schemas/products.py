from __future__ import annotations

import uuid
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import Field

from fullmargin.schemas.common import CamelInput, CamelModel, PageMeta, UTCDateTime

"""
Schemas Marketplace (produits).

Rôle (fonctionnel) :
- Statuts de modération (ProductStatus) et modes de tarification.
- Création par un vendeur (toujours en "pending").
- Patch admin partiel : statut + motif, drapeaux, champs texte, tarification.
- Représentations : produit, page de produits (meta de pagination).

Notes :
- La validation “métier” de la tarification (mode/amount/interval) est faite dans le service,
  pour renvoyer un code d’erreur stable (INVALID_PRICING) plutôt qu’un 422 générique.
- Les champs texte ne sont pas bornés ici : le service les tronque (comportement historique du back-office).
"""


class ProductStatus(str, Enum):
    PENDING = "pending"
    PUBLISHED = "published"
    REJECTED = "rejected"
    SUSPENDED = "suspended"


# Statuts “bloquants” : pas de badge ni de mise en avant
BLOCKING_STATUSES = (ProductStatus.REJECTED.value, ProductStatus.SUSPENDED.value)


class PricingIn(CamelModel):
    mode: str
    amount: Optional[float] = None
    interval: Optional[str] = None


class ProductCreate(CamelInput):
    title: str = Field(..., min_length=1)
    short_description: str = ""
    long_description: str = ""
    type: str = Field(default="", max_length=40)
    category_key: str = Field(default="", max_length=60)
    pricing: PricingIn


class AdminProductPatch(CamelInput):
    status: Optional[ProductStatus] = None
    moderation_reason: Optional[str] = None
    verified: Optional[bool] = None
    featured: Optional[bool] = None
    category_key: Optional[str] = Field(default=None, max_length=60)
    title: Optional[str] = None
    short_description: Optional[str] = None
    long_description: Optional[str] = None
    type: Optional[str] = Field(default=None, max_length=40)
    pricing: Optional[PricingIn] = None


class DeleteIn(CamelInput):
    reason: str = ""


class PricingOut(CamelModel):
    mode: str
    amount: Decimal
    interval: Optional[str] = None


class ProductOut(CamelModel):
    id: uuid.UUID
    seller_id: uuid.UUID
    title: str
    short_description: str
    long_description: str
    type: str
    category_key: str
    pricing: PricingOut
    status: ProductStatus
    badge_eligible: bool
    featured: bool
    verified: bool
    moderation_reason: str = ""
    reviewed_at: Optional[UTCDateTime] = None
    deleted_at: Optional[UTCDateTime] = None
    created_at: UTCDateTime
    updated_at: UTCDateTime

    @classmethod
    def from_product(cls, p) -> "ProductOut":
        return cls(
            id=p.id,
            seller_id=p.seller_id,
            title=p.title,
            short_description=p.short_description,
            long_description=p.long_description,
            type=p.type,
            category_key=p.category_key,
            pricing=PricingOut(mode=p.pricing_mode, amount=p.amount, interval=p.interval),
            status=p.status,
            badge_eligible=p.badge_eligible,
            featured=p.featured,
            verified=p.verified,
            moderation_reason=p.moderation_reason,
            reviewed_at=p.reviewed_at,
            deleted_at=p.deleted_at,
            created_at=p.created_at,
            updated_at=p.updated_at,
        )


class ProductPage(CamelModel):
    items: List[ProductOut]
    meta: PageMeta


class ProductItems(CamelModel):
    items: List[ProductOut]


class BadgeOut(CamelModel):
    id: uuid.UUID
    badge_eligible: bool
    message: str


class ProductDeletedOut(CamelModel):
    id: uuid.UUID
    deleted_at: UTCDateTime
