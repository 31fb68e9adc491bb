from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fullmargin.api.deps import CurrentUser
from fullmargin.db.session import get_db
from fullmargin.models.user import User
from fullmargin.schemas.common import Ok
from fullmargin.schemas.communities import (
    CommunityCreate,
    CommunityItems,
    CommunityOut,
    PublicCommunityItems,
    PublicCommunityOut,
)
from fullmargin.services import community_service

"""
API Communautés.

Rôle (fonctionnel) :
- Création d’une communauté (le créateur en est propriétaire).
- Listes : mes communautés, communautés publiques (avec propriétaire).
- Lecture d’une communauté par id ou par slug.
"""

router = APIRouter(prefix="/communaute/communities", tags=["communities"])


@router.post("", response_model=Ok[CommunityOut], status_code=201)
async def create_community(
    payload: CommunityCreate,
    user: User = CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    community = await community_service.create_community(db, user, payload)
    return Ok(data=CommunityOut.model_validate(community))


@router.get("/my", response_model=Ok[CommunityItems])
async def my_communities(user: User = CurrentUser, db: AsyncSession = Depends(get_db)):
    rows = await community_service.list_my_communities(db, user.id)
    return Ok(data=CommunityItems(items=[CommunityOut.model_validate(c) for c in rows]))


@router.get("/public", response_model=Ok[PublicCommunityItems])
async def public_communities(
    category: Optional[str] = Query(None, max_length=60),
    db: AsyncSession = Depends(get_db),
):
    rows = await community_service.list_public_communities(db, category)
    return Ok(data=PublicCommunityItems(items=[PublicCommunityOut.model_validate(c) for c in rows]))


@router.get("/{ref}", response_model=Ok[PublicCommunityOut])
async def get_community(ref: str, db: AsyncSession = Depends(get_db)):
    community = await community_service.get_by_ref(db, ref)
    return Ok(data=PublicCommunityOut.model_validate(community))
