from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from fullmargin.api.deps import CurrentUser, OptionalUser
from fullmargin.core.realtime import community_topic
from fullmargin.db.session import get_db
from fullmargin.models.community_live import CommunityLive
from fullmargin.models.user import User
from fullmargin.schemas.common import Ok
from fullmargin.schemas.lives import (
    GoLiveIn,
    LiveEnvelope,
    LiveItems,
    LiveOut,
    LiveUpdateIn,
    PublicLiveItems,
    PublicLiveOut,
    RoomTokenOut,
    ScheduleIn,
    StartNowIn,
    live_event,
)
from fullmargin.services.live_service import LiveService

"""
API Lives (directs de communauté).

Rôle (fonctionnel) :
- Transitions du cycle de vie (propriétaire) : programmer, modifier, lancer,
  démarrer tout de suite, terminer, annuler.
- Lectures : un direct, directs d’une communauté, directs publics en cours.
- Token d’accès à la salle de visioconférence (direct en cours uniquement).
- Après chaque action, les events committés par le service (y compris les expirations)
  sont diffusés en temps réel sur le topic de la communauté, même si l’action échoue ensuite.

Notes :
- Les routes fixes (/public-live, /by-community, /schedule, /start-now) sont déclarées
  avant /{live_id}.
"""

router = APIRouter(prefix="/communaute/lives", tags=["lives"])
log = logging.getLogger("fullmargin.lives")


def _live_out(live: CommunityLive, owner: bool = False) -> LiveOut:
    out = LiveOut.model_validate(live)
    out.is_owner = owner
    return out


async def _broadcast(request: Request, svc: LiveService) -> None:
    """Diffuse les events du service sans faire échouer l’endpoint si le WS n’est pas disponible."""
    manager = getattr(request.app.state, "ws_manager", None)
    events = [event for event in svc.events if event.committed]
    svc.events.clear()
    if manager is None:
        return

    for event in events:
        try:
            await manager.publish(
                community_topic(event.live.community_id),
                live_event(event.type, _live_out(event.live)),
            )
        except Exception:
            log.warning("live_broadcast_failed", extra={"live_id": str(event.live.id)}, exc_info=True)


@asynccontextmanager
async def _live_service(request: Request, db: AsyncSession) -> AsyncIterator[LiveService]:
    """Service d’une requête ; ses events committés sont diffusés même si l’action échoue (403, 409...)."""
    svc = LiveService(db)
    try:
        yield svc
    finally:
        await _broadcast(request, svc)


# --- Transitions -------------------------------------------------------------

@router.post("/schedule", response_model=Ok[LiveEnvelope], status_code=201)
async def schedule_live(
    payload: ScheduleIn,
    request: Request,
    user: User = CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    async with _live_service(request, db) as svc:
        live = await svc.schedule(user, payload)
    return Ok(data=LiveEnvelope(live=_live_out(live, True)))


@router.post("/start-now", response_model=Ok[LiveEnvelope], status_code=201)
async def start_now(
    payload: StartNowIn,
    request: Request,
    user: User = CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    async with _live_service(request, db) as svc:
        live = await svc.start_now(user, payload)
    return Ok(data=LiveEnvelope(live=_live_out(live, True)))


@router.post("/{live_id}/update", response_model=Ok[LiveEnvelope])
async def update_live(
    live_id: uuid.UUID,
    payload: LiveUpdateIn,
    request: Request,
    user: User = CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    async with _live_service(request, db) as svc:
        live = await svc.update(user, live_id, payload)
    return Ok(data=LiveEnvelope(live=_live_out(live, True)))


@router.post("/{live_id}/go-live", response_model=Ok[LiveEnvelope])
async def go_live(
    live_id: uuid.UUID,
    request: Request,
    payload: Optional[GoLiveIn] = None,
    user: User = CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    async with _live_service(request, db) as svc:
        live = await svc.go_live(user, live_id, payload or GoLiveIn())
    return Ok(data=LiveEnvelope(live=_live_out(live, True)))


@router.post("/{live_id}/end", response_model=Ok[LiveEnvelope])
async def end_live(
    live_id: uuid.UUID,
    request: Request,
    user: User = CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    async with _live_service(request, db) as svc:
        live = await svc.end(user, live_id)
    return Ok(data=LiveEnvelope(live=_live_out(live, True)))


@router.post("/{live_id}/cancel", response_model=Ok[LiveEnvelope])
async def cancel_live(
    live_id: uuid.UUID,
    request: Request,
    user: User = CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    async with _live_service(request, db) as svc:
        live = await svc.cancel(user, live_id)
    return Ok(data=LiveEnvelope(live=_live_out(live, True)))


# --- Lectures ----------------------------------------------------------------

@router.get("/public-live", response_model=Ok[PublicLiveItems])
async def public_live(
    request: Request,
    user: User = CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    async with _live_service(request, db) as svc:
        rows = await svc.list_public_live()

    items = [
        PublicLiveOut(
            id=live.id,
            title=live.title,
            community_id=community.id,
            community_name=community.name,
            community_slug=community.slug,
            community_avatar=community.logo_url or None,
            starts_at=live.starts_at,
            planned_end_at=live.planned_end_at,
        )
        for live, community in rows
    ]
    return Ok(data=PublicLiveItems(items=items))


@router.get("/by-community/{community_id}", response_model=Ok[LiveItems])
async def lives_by_community(
    community_id: uuid.UUID,
    request: Request,
    user: User = CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    async with _live_service(request, db) as svc:
        rows, owner = await svc.list_for_community(user, community_id)
    return Ok(data=LiveItems(items=[_live_out(live, owner) for live in rows]))


@router.get("/{live_id}/room-token", response_model=Ok[RoomTokenOut])
async def room_token(
    live_id: uuid.UUID,
    request: Request,
    name: Optional[str] = Query(None, max_length=80),
    user: User = CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    async with _live_service(request, db) as svc:
        access = await svc.room_access(user, live_id, name)
    return Ok(
        data=RoomTokenOut(
            token=access.token,
            room=access.room,
            domain=access.domain,
            is_owner=access.is_owner,
        )
    )


@router.get("/{live_id}", response_model=Ok[LiveEnvelope])
async def get_live(
    live_id: uuid.UUID,
    request: Request,
    user: Optional[User] = OptionalUser,
    db: AsyncSession = Depends(get_db),
):
    async with _live_service(request, db) as svc:
        live, owner = await svc.get_for_viewer(user.id if user else None, live_id)
    return Ok(data=LiveEnvelope(live=_live_out(live, owner)))
