from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fullmargin.api.deps import StaffUser
from fullmargin.db.session import get_db
from fullmargin.models.user import User
from fullmargin.schemas.common import Ok, PageMeta
from fullmargin.schemas.products import (
    AdminProductPatch,
    BadgeOut,
    DeleteIn,
    ProductDeletedOut,
    ProductOut,
    ProductPage,
    ProductStatus,
)
from fullmargin.services import product_service

"""
API Admin Marketplace (modération).

Rôle (fonctionnel) :
- Réservé au staff (admin / agent).
- Liste filtrée + paginée, lecture, patch de modération, badge, suppression logique.
- Chaque action est tracée (logger fullmargin.marketplace, acteur + statuts).
"""

router = APIRouter(prefix="/admin/marketplace/products", tags=["admin"])


@router.get("", response_model=Ok[ProductPage])
async def admin_list_products(
    staff: User = StaffUser,
    db: AsyncSession = Depends(get_db),
    q: str = Query("", max_length=200),
    status: Optional[ProductStatus] = None,
    category_key: str = Query("", max_length=60, alias="categoryKey"),
    page: int = Query(1, ge=1),
    page_size: int = Query(25, ge=1, le=product_service.ADMIN_PAGE_SIZE_MAX, alias="pageSize"),
):
    rows, total = await product_service.admin_list_products(
        db,
        q=q,
        status=status.value if status else None,
        category_key=category_key,
        page=page,
        page_size=page_size,
    )
    return Ok(
        data=ProductPage(
            items=[ProductOut.from_product(p) for p in rows],
            meta=PageMeta(page=page, page_size=page_size, total=total),
        )
    )


@router.get("/{product_id}", response_model=Ok[ProductOut])
async def admin_get_product(
    product_id: uuid.UUID,
    staff: User = StaffUser,
    db: AsyncSession = Depends(get_db),
):
    product = await product_service.get_product_or_404(db, product_id)
    return Ok(data=ProductOut.from_product(product))


@router.patch("/{product_id}", response_model=Ok[ProductOut])
async def admin_patch_product(
    product_id: uuid.UUID,
    payload: AdminProductPatch,
    staff: User = StaffUser,
    db: AsyncSession = Depends(get_db),
):
    product = await product_service.admin_patch_product(db, staff, product_id, payload)
    return Ok(data=ProductOut.from_product(product))


@router.patch("/{product_id}/badge", response_model=Ok[BadgeOut])
async def admin_toggle_badge(
    product_id: uuid.UUID,
    staff: User = StaffUser,
    db: AsyncSession = Depends(get_db),
):
    product = await product_service.toggle_badge(db, staff, product_id)
    message = "Badge attribué" if product.badge_eligible else "Badge retiré"
    return Ok(data=BadgeOut(id=product.id, badge_eligible=product.badge_eligible, message=message))


@router.delete("/{product_id}", response_model=Ok[ProductDeletedOut])
async def admin_delete_product(
    product_id: uuid.UUID,
    payload: Optional[DeleteIn] = None,
    staff: User = StaffUser,
    db: AsyncSession = Depends(get_db),
):
    product = await product_service.soft_delete_product(
        db, staff, product_id, payload.reason if payload else ""
    )
    return Ok(data=ProductDeletedOut(id=product.id, deleted_at=product.deleted_at))
