from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fullmargin.api.deps import CurrentUser
from fullmargin.db.session import get_db
from fullmargin.models.user import User
from fullmargin.schemas.common import Ok
from fullmargin.schemas.communities import (
    JoinIn,
    LeaveIn,
    MemberOut,
    MembershipStatusOut,
    MyMembershipsOut,
)
from fullmargin.services import membership_service

"""
API Adhésions.

Rôle (fonctionnel) :
- Rejoindre / quitter une communauté (demande d’accès si la communauté est privée).
- Statut d’adhésion de l’utilisateur courant, ids des communautés rejointes.
- Liste des membres (propriétaire uniquement).
"""

router = APIRouter(prefix="/communaute/memberships", tags=["memberships"])


@router.post("/join", response_model=Ok[MembershipStatusOut])
async def join(payload: JoinIn, user: User = CurrentUser, db: AsyncSession = Depends(get_db)):
    status = await membership_service.join(db, user, payload.community_id, payload.note)
    return Ok(data=MembershipStatusOut(status=status))


@router.post("/leave", response_model=Ok[MembershipStatusOut])
async def leave(payload: LeaveIn, user: User = CurrentUser, db: AsyncSession = Depends(get_db)):
    status = await membership_service.leave(db, user, payload.community_id)
    return Ok(data=MembershipStatusOut(status=status))


@router.get("/status/{community_id}", response_model=Ok[MembershipStatusOut])
async def membership_status(
    community_id: uuid.UUID,
    user: User = CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    status = await membership_service.membership_status(db, user.id, community_id)
    return Ok(data=MembershipStatusOut(status=status))


@router.get("/my", response_model=Ok[MyMembershipsOut])
async def my_memberships(user: User = CurrentUser, db: AsyncSession = Depends(get_db)):
    ids = await membership_service.my_community_ids(db, user.id)
    return Ok(data=MyMembershipsOut(community_ids=ids))


@router.get("/{community_id}/members", response_model=Ok[List[MemberOut]])
async def list_members(
    community_id: uuid.UUID,
    user: User = CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    rows = await membership_service.list_members(db, user, community_id)
    members = [
        MemberOut(
            id=m.user.id,
            full_name=m.user.full_name,
            avatar_url=m.user.avatar_url,
            joined_at=m.created_at,
        )
        for m in rows
    ]
    return Ok(data=members)
