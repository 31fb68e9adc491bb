from __future__ import annotations

import logging
import secrets
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple

from sqlalchemy import asc, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fullmargin.core.clock import as_utc, utcnow
from fullmargin.core.errors import AppHTTPException, forbidden, invalid_transition, not_found
from fullmargin.core.security import create_room_token
from fullmargin.core.settings import settings
from fullmargin.models.community import Community
from fullmargin.models.community_live import CommunityLive
from fullmargin.models.user import User
from fullmargin.schemas.lives import GoLiveIn, LiveStatus, LiveUpdateIn, ScheduleIn, StartNowIn
from fullmargin.services.community_service import get_community_or_404, is_active_member, is_owner

"""
Live Service (directs de communauté).

Rôle (fonctionnel) :
- Porte le cycle de vie d’un direct :
    schedule   : création en "scheduled"
    update     : modification tant que "scheduled"
    go_live    : scheduled -> live (termine d’abord tout autre direct en cours de la communauté)
    start_now  : création directe en "live" (même règle)
    end        : live -> ended
    cancel     : scheduled -> cancelled
- Expiration passive : avant chaque lecture / transition, tout direct "live" dont
  planned_end_at est dépassé passe "ended" (ended_at = planned_end_at).
- Droits :
    gestion (schedule/update/go-live/start-now/end/cancel) : propriétaire de la communauté ;
    visionnage : propriétaire, direct public, ou membre actif.

Invariant :
- Au plus un direct "live" par communauté. Les autres directs en cours sont terminés et flushés
  AVANT la transition ; l’index unique partiel (community_id WHERE status='live') rejette une
  éventuelle course concurrente -> 409 LIVE_ALREADY_RUNNING.

Sortie :
- Chaque transition est tracée (logger fullmargin.lives) et ajoutée à `events`
  (type d’event + direct) : la couche API les diffuse ensuite en temps réel.
"""

log = logging.getLogger("fullmargin.lives")

# Tolérance sur une date de début “dans le passé” (horloges client décalées)
PAST_START_TOLERANCE = timedelta(minutes=5)

EVENT_SCHEDULED = "LIVE_SCHEDULED"
EVENT_UPDATED = "LIVE_UPDATED"
EVENT_STARTED = "LIVE_STARTED"
EVENT_ENDED = "LIVE_ENDED"
EVENT_CANCELLED = "LIVE_CANCELLED"


@dataclass
class LiveEvent:
    type: str
    live: CommunityLive
    # Seuls les events committés sont diffusés
    committed: bool = False


@dataclass(frozen=True)
class RoomAccess:
    token: str
    room: str
    domain: str
    is_owner: bool


@dataclass
class LiveService:
    """
    Service de cycle de vie des directs.

    `now` est injectable (tests d’expiration) ; une instance = une requête.
    """

    db: AsyncSession
    now: Callable[[], datetime] = utcnow
    default_duration_min: Optional[int] = None
    events: List[LiveEvent] = field(default_factory=list)

    # ------------------------------------------------------------------ helpers

    def _now(self) -> datetime:
        return as_utc(self.now())

    def _duration(self, minutes: Optional[int]) -> timedelta:
        return timedelta(minutes=int(minutes or self.default_duration_min or settings.LIVE_DEFAULT_DURATION_MIN))

    def _room_name(self, community: Community) -> str:
        return f"{settings.LIVE_ROOM_PREFIX}-{community.id.hex[:8]}-{secrets.token_hex(6)}"

    def _log(self, msg: str, live: CommunityLive, actor: Optional[uuid.UUID], old_status: Optional[str]) -> None:
        log.info(
            msg,
            extra={
                "actor": str(actor) if actor else "system",
                "community_id": str(live.community_id),
                "live_id": str(live.id),
                "old_status": old_status,
                "new_status": live.status,
            },
        )

    async def _owned_community(self, user: User, community_id: uuid.UUID) -> Community:
        community = await get_community_or_404(self.db, community_id)
        if not is_owner(community, user.id):
            raise forbidden("Seul le propriétaire de la communauté peut gérer les directs")
        return community

    async def _get_live_or_404(self, live_id: uuid.UUID) -> CommunityLive:
        live = (await self.db.execute(select(CommunityLive).where(CommunityLive.id == live_id))).scalars().first()
        if live is None:
            raise not_found("Direct introuvable")
        return live

    async def _owned_live(self, user: User, live_id: uuid.UUID) -> Tuple[CommunityLive, Community]:
        live = await self._get_live_or_404(live_id)
        community = await self._owned_community(user, live.community_id)
        await self.expire_overdue(community.id)
        return live, community

    async def _commit_transition(self) -> None:
        """
        Commit ; une violation de l’index “un seul live” devient un 409 métier.

        En cas d’échec, seuls les events de la transition sont abandonnés : les expirations
        déjà committées restent à diffuser (directs rechargés après le rollback).
        """
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            self.events = [event for event in self.events if event.committed]
            for event in self.events:
                await self.db.refresh(event.live)
            raise AppHTTPException(
                409,
                "LIVE_ALREADY_RUNNING",
                "Un direct est déjà en cours dans cette communauté",
            ) from exc
        for event in self.events:
            event.committed = True

    def _emit(self, event_type: str, live: CommunityLive) -> None:
        """Event d’une transition déjà committée."""
        self.events.append(LiveEvent(event_type, live, committed=True))

    async def _end_running_siblings(self, community_id: uuid.UUID, keep_id: Optional[uuid.UUID], actor: uuid.UUID) -> None:
        """Termine les autres directs "live" de la communauté puis flush (avant toute mise en live)."""
        stmt = select(CommunityLive).where(
            CommunityLive.community_id == community_id,
            CommunityLive.status == LiveStatus.LIVE.value,
        )
        if keep_id is not None:
            stmt = stmt.where(CommunityLive.id != keep_id)

        running = (await self.db.execute(stmt)).scalars().all()
        if not running:
            return

        now = self._now()
        for other in running:
            other.status = LiveStatus.ENDED.value
            other.ended_at = now
            self.events.append(LiveEvent(EVENT_ENDED, other))
            self._log("live_ended_by_new_live", other, actor, LiveStatus.LIVE.value)

        await self.db.flush()

    # ------------------------------------------------------------------ expiration

    async def expire_overdue(self, community_id: Optional[uuid.UUID] = None) -> List[CommunityLive]:
        """Passe "ended" les directs en cours dont la fin prévue est dépassée."""
        stmt = select(CommunityLive).where(
            CommunityLive.status == LiveStatus.LIVE.value,
            CommunityLive.planned_end_at.is_not(None),
        )
        if community_id is not None:
            stmt = stmt.where(CommunityLive.community_id == community_id)

        now = self._now()
        rows = (await self.db.execute(stmt)).scalars().all()
        expired = [live for live in rows if as_utc(live.planned_end_at) <= now]
        if not expired:
            return []

        for live in expired:
            live.status = LiveStatus.ENDED.value
            live.ended_at = live.planned_end_at
            self._log("live_auto_expired", live, None, LiveStatus.LIVE.value)

        await self.db.commit()
        for live in expired:
            self._emit(EVENT_ENDED, live)
        return expired

    # ------------------------------------------------------------------ transitions

    async def schedule(self, user: User, payload: ScheduleIn) -> CommunityLive:
        community = await self._owned_community(user, payload.community_id)

        starts_at = as_utc(payload.starts_at)
        if starts_at < self._now() - PAST_START_TOLERANCE:
            raise AppHTTPException(422, "VALIDATION_ERROR", "La date de début est dans le passé")

        live = CommunityLive(
            community_id=community.id,
            created_by=user.id,
            title=payload.title,
            description=payload.description,
            status=LiveStatus.SCHEDULED.value,
            is_public=payload.is_public,
            starts_at=starts_at,
            planned_end_at=starts_at + self._duration(payload.duration_min),
            room_name=self._room_name(community),
        )
        self.db.add(live)
        await self._commit_transition()
        await self.db.refresh(live)

        self._emit(EVENT_SCHEDULED, live)
        self._log("live_scheduled", live, user.id, None)
        return live

    async def update(self, user: User, live_id: uuid.UUID, payload: LiveUpdateIn) -> CommunityLive:
        live, _ = await self._owned_live(user, live_id)
        if live.status != LiveStatus.SCHEDULED.value:
            raise invalid_transition(live.status, "update")

        # Durée conservée si non fournie
        previous = None
        if live.starts_at and live.planned_end_at:
            previous = as_utc(live.planned_end_at) - as_utc(live.starts_at)

        if payload.title is not None:
            live.title = payload.title
        if payload.description is not None:
            live.description = payload.description
        if payload.is_public is not None:
            live.is_public = payload.is_public

        if payload.starts_at is not None or payload.duration_min is not None:
            starts_at = as_utc(payload.starts_at) if payload.starts_at is not None else as_utc(live.starts_at)
            if payload.starts_at is not None and starts_at < self._now() - PAST_START_TOLERANCE:
                raise AppHTTPException(422, "VALIDATION_ERROR", "La date de début est dans le passé")
            duration = (
                self._duration(payload.duration_min)
                if payload.duration_min is not None
                else (previous or self._duration(None))
            )
            live.starts_at = starts_at
            live.planned_end_at = starts_at + duration

        live.updated_at = self._now()
        await self._commit_transition()
        await self.db.refresh(live)

        self._emit(EVENT_UPDATED, live)
        self._log("live_updated", live, user.id, live.status)
        return live

    async def go_live(self, user: User, live_id: uuid.UUID, payload: GoLiveIn) -> CommunityLive:
        live, community = await self._owned_live(user, live_id)
        if live.status != LiveStatus.SCHEDULED.value:
            raise invalid_transition(live.status, "go-live")

        duration = None
        if live.starts_at and live.planned_end_at:
            duration = as_utc(live.planned_end_at) - as_utc(live.starts_at)

        await self._end_running_siblings(community.id, live.id, user.id)

        now = self._now()
        if payload.title is not None:
            live.title = payload.title
        if payload.is_public is not None:
            live.is_public = payload.is_public
        live.status = LiveStatus.LIVE.value
        live.starts_at = now
        live.planned_end_at = now + (duration if duration and duration.total_seconds() > 0 else self._duration(None))
        live.ended_at = None
        live.updated_at = now

        await self._commit_transition()
        await self.db.refresh(live)

        self._emit(EVENT_STARTED, live)
        self._log("live_started", live, user.id, LiveStatus.SCHEDULED.value)
        return live

    async def start_now(self, user: User, payload: StartNowIn) -> CommunityLive:
        community = await self._owned_community(user, payload.community_id)
        await self.expire_overdue(community.id)

        await self._end_running_siblings(community.id, None, user.id)

        now = self._now()
        live = CommunityLive(
            community_id=community.id,
            created_by=user.id,
            title=payload.title,
            description=payload.description,
            status=LiveStatus.LIVE.value,
            is_public=payload.is_public,
            starts_at=now,
            planned_end_at=now + self._duration(payload.duration_min),
            room_name=self._room_name(community),
        )
        self.db.add(live)
        await self._commit_transition()
        await self.db.refresh(live)

        self._emit(EVENT_STARTED, live)
        self._log("live_started_now", live, user.id, None)
        return live

    async def end(self, user: User, live_id: uuid.UUID) -> CommunityLive:
        live, _ = await self._owned_live(user, live_id)

        # Idempotent : un direct déjà terminé (ou expiré) est renvoyé tel quel
        if live.status == LiveStatus.ENDED.value:
            return live
        if live.status != LiveStatus.LIVE.value:
            raise invalid_transition(live.status, "end")

        now = self._now()
        live.status = LiveStatus.ENDED.value
        live.ended_at = now
        live.updated_at = now
        await self._commit_transition()
        await self.db.refresh(live)

        self._emit(EVENT_ENDED, live)
        self._log("live_ended", live, user.id, LiveStatus.LIVE.value)
        return live

    async def cancel(self, user: User, live_id: uuid.UUID) -> CommunityLive:
        live, _ = await self._owned_live(user, live_id)

        if live.status == LiveStatus.CANCELLED.value:
            return live
        if live.status != LiveStatus.SCHEDULED.value:
            raise invalid_transition(live.status, "cancel")

        live.status = LiveStatus.CANCELLED.value
        live.updated_at = self._now()
        await self._commit_transition()
        await self.db.refresh(live)

        self._emit(EVENT_CANCELLED, live)
        self._log("live_cancelled", live, user.id, LiveStatus.SCHEDULED.value)
        return live

    # ------------------------------------------------------------------ lectures

    async def can_view(self, live: CommunityLive, community: Community, user_id: Optional[uuid.UUID]) -> bool:
        if is_owner(community, user_id) or live.is_public:
            return True
        return await is_active_member(self.db, community.id, user_id)

    async def get_for_viewer(self, user_id: Optional[uuid.UUID], live_id: uuid.UUID) -> Tuple[CommunityLive, bool]:
        """Renvoie (direct, is_owner) ; 403 si le visiteur n’a pas accès."""
        live = await self._get_live_or_404(live_id)
        community = await get_community_or_404(self.db, live.community_id)
        await self.expire_overdue(community.id)

        if not await self.can_view(live, community, user_id):
            raise forbidden("Direct réservé aux membres de la communauté")
        return live, is_owner(community, user_id)

    async def list_for_community(self, user: User, community_id: uuid.UUID) -> Tuple[List[CommunityLive], bool]:
        community = await get_community_or_404(self.db, community_id)
        owner = is_owner(community, user.id)
        if not owner and not await is_active_member(self.db, community.id, user.id):
            raise forbidden("Directs réservés aux membres de la communauté")

        await self.expire_overdue(community.id)

        rows = (
            await self.db.execute(
                select(CommunityLive)
                .where(CommunityLive.community_id == community.id)
                .order_by(asc(CommunityLive.created_at))
            )
        ).scalars().all()
        return list(rows), owner

    async def list_public_live(self) -> List[Tuple[CommunityLive, Community]]:
        await self.expire_overdue()

        rows = (
            await self.db.execute(
                select(CommunityLive, Community)
                .join(Community, Community.id == CommunityLive.community_id)
                .where(
                    CommunityLive.status == LiveStatus.LIVE.value,
                    CommunityLive.is_public.is_(True),
                    Community.deleted_at.is_(None),
                )
                .order_by(asc(CommunityLive.starts_at))
            )
        ).unique().all()
        return [(live, community) for live, community in rows]

    async def count_running(self) -> int:
        await self.expire_overdue()
        return (
            await self.db.execute(
                select(func.count())
                .select_from(CommunityLive)
                .where(CommunityLive.status == LiveStatus.LIVE.value)
            )
        ).scalar_one()

    async def room_access(self, user: User, live_id: uuid.UUID, display_name: Optional[str] = None) -> RoomAccess:
        live, owner = await self.get_for_viewer(user.id, live_id)
        if live.status != LiveStatus.LIVE.value:
            raise AppHTTPException(
                409,
                "LIVE_NOT_RUNNING",
                "Ce direct n’est pas en cours",
                details={"status": live.status},
            )

        name = (display_name or "").strip()[:80] or user.full_name or "Invité"
        token = create_room_token(
            room=live.room_name,
            user_id=str(user.id),
            display_name=name,
            moderator=owner,
        )
        return RoomAccess(token=token, room=live.room_name, domain=settings.LIVE_ROOM_DOMAIN, is_owner=owner)
