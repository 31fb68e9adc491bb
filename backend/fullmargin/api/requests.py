from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fullmargin.api.deps import CurrentUser
from fullmargin.db.session import get_db
from fullmargin.models.user import User
from fullmargin.schemas.common import Ok
from fullmargin.schemas.communities import (
    AccessRequestCreatedOut,
    AccessRequestCreateIn,
    AccessRequestItems,
    AccessRequestOut,
    IncomingRequestItems,
    IncomingRequestOut,
    MembershipStatusOut,
    RejectIn,
    RequestCountersOut,
    RequesterOut,
    RequestMarkSeenIn,
)
from fullmargin.schemas.notifications import MarkSeenOut
from fullmargin.services import request_service

"""
API Demandes d’accès (communautés privées).

Rôle (fonctionnel) :
- Création d’une demande (409 si déjà membre), demandes de l’utilisateur courant.
- Demandes d’une communauté filtrées par statut, approbation / refus (propriétaire uniquement).
- Compteurs de badge et marquage “vu” des réponses reçues.

Notes :
- Les routes fixes (/my, /counters, /mark-seen, /incoming) sont déclarées avant /{request_id}.
"""

router = APIRouter(prefix="/communaute/requests", tags=["requests"])


@router.post("", response_model=Ok[AccessRequestCreatedOut], status_code=201)
async def create_request(
    payload: AccessRequestCreateIn,
    user: User = CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    req = await request_service.create_request(db, user, payload.community_id, payload.note)
    return Ok(data=AccessRequestCreatedOut(id=req.id, status=req.status))


@router.get("/my", response_model=Ok[AccessRequestItems])
async def my_requests(user: User = CurrentUser, db: AsyncSession = Depends(get_db)):
    rows = await request_service.list_my_requests(db, user.id)
    return Ok(
        data=AccessRequestItems(
            items=[AccessRequestOut.model_validate(r) for r in rows],
            pending_count=request_service.pending_in(rows),
        )
    )


@router.get("/counters", response_model=Ok[RequestCountersOut])
async def request_counters(user: User = CurrentUser, db: AsyncSession = Depends(get_db)):
    my_pending, owner_pending = await request_service.counters(db, user.id)
    return Ok(data=RequestCountersOut(my_pending=my_pending, owner_pending=owner_pending))


@router.post("/mark-seen", response_model=Ok[MarkSeenOut])
async def mark_replies_seen(
    payload: Optional[RequestMarkSeenIn] = None,
    user: User = CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    updated = await request_service.mark_replies_seen(db, user.id, payload.request_ids if payload else None)
    return Ok(data=MarkSeenOut(updated=updated))


@router.get("/incoming/{community_id}", response_model=Ok[IncomingRequestItems])
async def incoming_requests(
    community_id: uuid.UUID,
    status: str = Query("pending", max_length=20),
    user: User = CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    rows, pending = await request_service.list_incoming(db, user, community_id, status)
    items = [
        IncomingRequestOut(
            id=r.id,
            user_id=requester.id,
            user=RequesterOut(
                id=requester.id,
                full_name=requester.full_name or "",
                avatar_url=requester.avatar_url,
            ),
            status=r.status,
            note=r.note,
            requested_at=r.created_at,
            updated_at=r.updated_at,
        )
        for r, requester in rows
    ]
    return Ok(data=IncomingRequestItems(items=items, pending_count=pending))


@router.post("/{request_id}/approve", response_model=Ok[MembershipStatusOut])
async def approve_request(
    request_id: uuid.UUID,
    user: User = CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    status = await request_service.approve(db, user, request_id)
    return Ok(data=MembershipStatusOut(status=status))


@router.post("/{request_id}/reject", response_model=Ok[MembershipStatusOut])
async def reject_request(
    request_id: uuid.UUID,
    payload: Optional[RejectIn] = None,
    user: User = CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    status = await request_service.reject(db, user, request_id, payload.reason if payload else "")
    return Ok(data=MembershipStatusOut(status=status))
