from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fullmargin.api.deps import CurrentUser
from fullmargin.db.session import get_db
from fullmargin.models.user import User
from fullmargin.schemas.common import Ok, PageMeta
from fullmargin.schemas.products import ProductCreate, ProductItems, ProductOut, ProductPage
from fullmargin.services import product_service

"""
API Marketplace (vendeur + catalogue public).

Rôle (fonctionnel) :
- Vendeur : dépôt d’un produit (mis en modération), liste de ses produits.
- Public : catalogue des produits publiés (recherche, catégorie, pagination).
"""

router = APIRouter(prefix="/marketplace/products", tags=["marketplace"])
public_router = APIRouter(prefix="/marketplace/public/products", tags=["marketplace"])


@router.post("", response_model=Ok[ProductOut], status_code=201)
async def create_product(
    payload: ProductCreate,
    user: User = CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    product = await product_service.create_product(db, user, payload)
    return Ok(data=ProductOut.from_product(product))


@router.get("/mine", response_model=Ok[ProductItems])
async def my_products(user: User = CurrentUser, db: AsyncSession = Depends(get_db)):
    rows = await product_service.list_seller_products(db, user.id)
    return Ok(data=ProductItems(items=[ProductOut.from_product(p) for p in rows]))


@public_router.get("", response_model=Ok[ProductPage])
async def public_products(
    db: AsyncSession = Depends(get_db),
    q: str = Query("", max_length=200),
    category: str = Query("", max_length=60),
    page: int = Query(1, ge=1),
    page_size: int = Query(24, ge=1, le=product_service.PUBLIC_PAGE_SIZE_MAX, alias="pageSize"),
):
    rows, total = await product_service.list_public_products(
        db, q=q, category=category, page=page, page_size=page_size
    )
    return Ok(
        data=ProductPage(
            items=[ProductOut.from_product(p) for p in rows],
            meta=PageMeta(page=page, page_size=page_size, total=total),
        )
    )
