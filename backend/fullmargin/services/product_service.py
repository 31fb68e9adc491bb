from __future__ import annotations

import logging
import math
import uuid
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Tuple

from sqlalchemy import desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from fullmargin.core.clock import utcnow
from fullmargin.core.errors import AppHTTPException, not_found
from fullmargin.models.product import Product
from fullmargin.models.user import User
from fullmargin.schemas.products import (
    BLOCKING_STATUSES,
    AdminProductPatch,
    PricingIn,
    ProductCreate,
    ProductStatus,
)

"""
Product Service (marketplace).

Rôle (fonctionnel) :
- Vendeur : création d’un produit (toujours "pending" : passe en modération), liste de ses produits.
- Public : catalogue des produits publiés et non supprimés (recherche + catégorie + pagination).
- Staff (admin/agent) : liste filtrée, patch de modération, bascule du badge, suppression logique.

Règles de modération :
- Tout changement de statut horodate la revue (reviewed_at / reviewed_by).
- Statut bloquant (rejected / suspended) : badge et mise en avant retirés ; le badge ne peut pas
  être rendu tant que le statut reste bloquant.
- Tarification : one_time (0 <= amount <= AMOUNT_MAX) ou subscription (même borne + interval month/year).
"""

log = logging.getLogger("fullmargin.marketplace")

TITLE_MAX = 120
SHORT_MAX = 180
LONG_MAX = 8000
REASON_MAX = 2000

ADMIN_PAGE_SIZE_MAX = 100
PUBLIC_PAGE_SIZE_MAX = 60

# Plafond de la colonne Numeric(12, 2)
AMOUNT_MAX = Decimal("9999999999.99")


def _invalid_pricing(message: str, field: str) -> AppHTTPException:
    return AppHTTPException(400, "INVALID_PRICING", message, details={"field": field})


def normalize_pricing(pricing: PricingIn) -> Tuple[str, Decimal, Optional[str]]:
    """Valide la tarification ; renvoie (mode, amount, interval)."""
    if pricing.mode not in ("one_time", "subscription"):
        raise _invalid_pricing("Mode de tarification invalide", "mode")

    if pricing.amount is None:
        raise _invalid_pricing("Montant manquant", "amount")
    amount = float(pricing.amount)
    if not math.isfinite(amount) or amount < 0:
        raise _invalid_pricing("Montant invalide", "amount")

    try:
        value = Decimal(str(amount))
        if value > AMOUNT_MAX:
            raise _invalid_pricing("Montant trop élevé", "amount")
        value = value.quantize(Decimal("0.01"))
    except InvalidOperation as exc:
        raise _invalid_pricing("Montant invalide", "amount") from exc

    if pricing.mode == "subscription":
        if pricing.interval not in ("month", "year"):
            raise _invalid_pricing("Intervalle d’abonnement invalide", "interval")
        return "subscription", value, pricing.interval

    return "one_time", value, None


def _search_filter(q: str):
    like = f"%{q.lower()}%"
    return or_(
        func.lower(Product.title).like(like),
        func.lower(Product.short_description).like(like),
        func.lower(Product.long_description).like(like),
    )


async def _paginate(db: AsyncSession, stmt, page: int, page_size: int) -> Tuple[List[Product], int]:
    total = (await db.execute(select(func.count()).select_from(stmt.order_by(None).subquery()))).scalar_one()
    rows = (
        await db.execute(stmt.offset((page - 1) * page_size).limit(page_size))
    ).scalars().all()
    return list(rows), int(total)


async def create_product(db: AsyncSession, seller: User, payload: ProductCreate) -> Product:
    mode, amount, interval = normalize_pricing(payload.pricing)

    product = Product(
        seller_id=seller.id,
        title=payload.title[:TITLE_MAX],
        short_description=payload.short_description[:SHORT_MAX],
        long_description=payload.long_description[:LONG_MAX],
        type=payload.type,
        category_key=payload.category_key.strip().lower(),
        pricing_mode=mode,
        amount=amount,
        interval=interval,
        status=ProductStatus.PENDING.value,
    )
    db.add(product)
    await db.commit()
    await db.refresh(product)

    log.info("product_created", extra={"actor": str(seller.id), "product_id": str(product.id), "new_status": product.status})
    return product


async def list_seller_products(db: AsyncSession, seller_id: uuid.UUID) -> List[Product]:
    rows = (
        await db.execute(
            select(Product)
            .where(Product.seller_id == seller_id, Product.deleted_at.is_(None))
            .order_by(desc(Product.updated_at))
        )
    ).scalars().all()
    return list(rows)


async def list_public_products(
    db: AsyncSession,
    *,
    q: str = "",
    category: str = "",
    page: int = 1,
    page_size: int = 24,
) -> Tuple[List[Product], int]:
    stmt = select(Product).where(
        Product.status == ProductStatus.PUBLISHED.value,
        Product.deleted_at.is_(None),
    )
    if q.strip():
        stmt = stmt.where(_search_filter(q.strip()))
    if category.strip():
        stmt = stmt.where(Product.category_key == category.strip().lower())

    # Mis en avant d’abord, puis plus récents
    stmt = stmt.order_by(desc(Product.featured), desc(Product.updated_at))
    return await _paginate(db, stmt, page, min(page_size, PUBLIC_PAGE_SIZE_MAX))


async def admin_list_products(
    db: AsyncSession,
    *,
    q: str = "",
    status: Optional[str] = None,
    category_key: str = "",
    page: int = 1,
    page_size: int = 25,
) -> Tuple[List[Product], int]:
    stmt = select(Product)
    if q.strip():
        stmt = stmt.where(_search_filter(q.strip()))
    if status:
        stmt = stmt.where(Product.status == status)
    if category_key.strip():
        stmt = stmt.where(Product.category_key == category_key.strip().lower())

    stmt = stmt.order_by(desc(Product.updated_at))
    return await _paginate(db, stmt, page, min(page_size, ADMIN_PAGE_SIZE_MAX))


async def get_product_or_404(db: AsyncSession, product_id: uuid.UUID) -> Product:
    p = (await db.execute(select(Product).where(Product.id == product_id))).scalars().first()
    if p is None:
        raise not_found("Produit introuvable")
    return p


async def admin_patch_product(
    db: AsyncSession,
    staff: User,
    product_id: uuid.UUID,
    payload: AdminProductPatch,
) -> Product:
    p = await get_product_or_404(db, product_id)
    old_status = p.status

    # Tarification validée avant toute modification (patch atomique)
    pricing = normalize_pricing(payload.pricing) if payload.pricing is not None else None

    if payload.status is not None:
        p.status = payload.status.value
        p.reviewed_at = utcnow()
        p.reviewed_by = staff.id
        if p.status in BLOCKING_STATUSES:
            p.badge_eligible = False
            p.featured = False

    if payload.moderation_reason is not None:
        p.moderation_reason = payload.moderation_reason[:REASON_MAX]

    if payload.verified is not None:
        p.verified = payload.verified
    if payload.featured is not None:
        # Pas de mise en avant d’un produit bloqué
        p.featured = payload.featured and p.status not in BLOCKING_STATUSES

    if payload.category_key is not None and payload.category_key.strip():
        p.category_key = payload.category_key.strip().lower()

    if payload.title is not None:
        p.title = payload.title[:TITLE_MAX]
    if payload.short_description is not None:
        p.short_description = payload.short_description[:SHORT_MAX]
    if payload.long_description is not None:
        p.long_description = payload.long_description[:LONG_MAX]
    if payload.type is not None:
        p.type = payload.type

    if pricing is not None:
        p.pricing_mode, p.amount, p.interval = pricing

    p.updated_at = utcnow()
    await db.commit()
    await db.refresh(p)

    log.info(
        "product_moderated",
        extra={
            "actor": str(staff.id),
            "product_id": str(p.id),
            "old_status": old_status,
            "new_status": p.status,
        },
    )
    return p


async def toggle_badge(db: AsyncSession, staff: User, product_id: uuid.UUID) -> Product:
    p = await get_product_or_404(db, product_id)
    if p.status in BLOCKING_STATUSES:
        raise AppHTTPException(
            400,
            "BADGE_FORBIDDEN_FOR_STATUS",
            "Badge interdit pour un produit rejeté ou suspendu",
            details={"status": p.status},
        )

    p.badge_eligible = not p.badge_eligible
    p.updated_at = utcnow()
    await db.commit()
    await db.refresh(p)

    log.info("product_badge_toggled", extra={"actor": str(staff.id), "product_id": str(p.id)})
    return p


async def soft_delete_product(db: AsyncSession, staff: User, product_id: uuid.UUID, reason: str = "") -> Product:
    p = await get_product_or_404(db, product_id)

    reason = (reason or "")[:REASON_MAX]
    if reason:
        p.moderation_reason = reason
        p.reviewed_at = utcnow()
        p.reviewed_by = staff.id

    if p.deleted_at is None:
        p.deleted_at = utcnow()

    await db.commit()
    await db.refresh(p)

    log.info("product_deleted", extra={"actor": str(staff.id), "product_id": str(p.id)})
    return p
