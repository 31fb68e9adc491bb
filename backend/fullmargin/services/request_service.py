from __future__ import annotations

import logging
import uuid
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fullmargin.core.errors import AppHTTPException, forbidden, not_found
from fullmargin.models.community import Community
from fullmargin.models.community_access_request import CommunityAccessRequest
from fullmargin.models.user import User
from fullmargin.schemas.communities import RequestStatus
from fullmargin.services.community_service import get_community_or_404, is_active_member, is_owner
from fullmargin.services.membership_service import activate_membership, open_access_request
from fullmargin.services.notification_service import count_unseen, create_notification, mark_seen

"""
Access Request Service.

Rôle (fonctionnel) :
- Demande d’accès explicite (409 ALREADY_MEMBER pour un membre actif ou le propriétaire).
- Demandes côté demandeur (“mes demandes”) et côté propriétaire (demandes entrantes,
  filtrées par statut, "pending" par défaut, avec le profil du demandeur).
- Compteurs de badge : réponses non vues (demandeur) et demandes en attente (propriétaire,
  toutes ses communautés) ; les réponses peuvent être marquées vues.
- approve / reject réservés au propriétaire de la communauté, idempotents :
  une demande déjà approuvée (ou refusée) n’est pas retraitée ni re-notifiée.
"""

log = logging.getLogger("fullmargin.requests")

REASON_MAX = 500

# Notifications de réponse reçues par le demandeur
REPLY_KINDS = ("community_request_approved", "community_request_rejected")

INCOMING_FILTERS = (
    RequestStatus.PENDING.value,
    RequestStatus.APPROVED.value,
    RequestStatus.REJECTED.value,
)


async def _get_request_or_404(db: AsyncSession, request_id: uuid.UUID) -> CommunityAccessRequest:
    r = (
        await db.execute(select(CommunityAccessRequest).where(CommunityAccessRequest.id == request_id))
    ).scalars().first()
    if r is None:
        raise not_found("Demande introuvable")
    return r


async def list_my_requests(db: AsyncSession, user_id: uuid.UUID) -> List[CommunityAccessRequest]:
    rows = (
        await db.execute(
            select(CommunityAccessRequest)
            .where(CommunityAccessRequest.user_id == user_id)
            .order_by(desc(CommunityAccessRequest.updated_at))
        )
    ).scalars().all()
    return list(rows)


async def create_request(
    db: AsyncSession,
    user: User,
    community_id: uuid.UUID,
    note: str = "",
) -> CommunityAccessRequest:
    community = await get_community_or_404(db, community_id)
    if is_owner(community, user.id) or await is_active_member(db, community.id, user.id):
        raise AppHTTPException(409, "ALREADY_MEMBER", "Déjà membre de cette communauté")

    req = await open_access_request(db, user, community, note)
    await db.commit()

    log.info(
        "request_created",
        extra={
            "actor": str(user.id),
            "community_id": str(community.id),
            "request_id_ref": str(req.id),
            "new_status": req.status,
        },
    )
    return req


def pending_in(rows: Sequence[CommunityAccessRequest]) -> int:
    return sum(1 for r in rows if r.status == RequestStatus.PENDING.value)


async def _pending_count(db: AsyncSession, *criteria) -> int:
    return int(
        (
            await db.execute(
                select(func.count())
                .select_from(CommunityAccessRequest)
                .join(Community, Community.id == CommunityAccessRequest.community_id)
                .where(
                    CommunityAccessRequest.status == RequestStatus.PENDING.value,
                    Community.deleted_at.is_(None),
                    *criteria,
                )
            )
        ).scalar_one()
    )


async def list_incoming(
    db: AsyncSession,
    user: User,
    community_id: uuid.UUID,
    status: Optional[str] = RequestStatus.PENDING.value,
) -> Tuple[List[Tuple[CommunityAccessRequest, User]], int]:
    """
    Renvoie ([(demande, demandeur)], nombre de demandes en attente).

    `status` hors de pending/approved/rejected : pas de filtre.
    """
    community = await get_community_or_404(db, community_id)
    if not is_owner(community, user.id):
        raise forbidden("Accès réservé au propriétaire de la communauté")

    stmt = (
        select(CommunityAccessRequest, User)
        .join(User, User.id == CommunityAccessRequest.user_id)
        .where(CommunityAccessRequest.community_id == community.id)
        .order_by(desc(CommunityAccessRequest.created_at))
    )
    if status in INCOMING_FILTERS:
        stmt = stmt.where(CommunityAccessRequest.status == status)

    rows = (await db.execute(stmt)).all()
    pending = await _pending_count(db, CommunityAccessRequest.community_id == community.id)
    return [(r, requester) for r, requester in rows], pending


async def counters(db: AsyncSession, user_id: uuid.UUID) -> Tuple[int, int]:
    """(réponses non vues du demandeur, demandes en attente sur les communautés possédées)."""
    my_pending = await count_unseen(db, user_id, kinds=REPLY_KINDS)
    owner_pending = await _pending_count(db, Community.owner_id == user_id)
    return my_pending, owner_pending


async def mark_replies_seen(
    db: AsyncSession,
    user_id: uuid.UUID,
    request_ids: Optional[Sequence[uuid.UUID]] = None,
) -> int:
    return await mark_seen(db, user_id, kinds=REPLY_KINDS, request_ids=request_ids)


async def approve(db: AsyncSession, user: User, request_id: uuid.UUID) -> str:
    r = await _get_request_or_404(db, request_id)
    community = await get_community_or_404(db, r.community_id)
    if not is_owner(community, user.id):
        raise forbidden("Interdit")

    if r.status != RequestStatus.APPROVED.value:
        old_status = r.status
        r.status = RequestStatus.APPROVED.value
        r.reason = ""
        await activate_membership(db, community.id, r.user_id)

        create_notification(
            db,
            user_id=r.user_id,
            kind="community_request_approved",
            community_id=community.id,
            request_id=r.id,
            payload={"communityName": community.name, "communitySlug": community.slug},
        )
        await db.commit()

        log.info(
            "request_approved",
            extra={
                "actor": str(user.id),
                "community_id": str(community.id),
                "request_id_ref": str(r.id),
                "old_status": old_status,
                "new_status": r.status,
            },
        )

    return RequestStatus.APPROVED.value


async def reject(db: AsyncSession, user: User, request_id: uuid.UUID, reason: str = "") -> str:
    r = await _get_request_or_404(db, request_id)
    community = await get_community_or_404(db, r.community_id)
    if not is_owner(community, user.id):
        raise forbidden("Interdit")

    if r.status != RequestStatus.REJECTED.value:
        old_status = r.status
        r.status = RequestStatus.REJECTED.value
        r.reason = (reason or "")[:REASON_MAX]

        create_notification(
            db,
            user_id=r.user_id,
            kind="community_request_rejected",
            community_id=community.id,
            request_id=r.id,
            payload={
                "communityName": community.name,
                "communitySlug": community.slug,
                "reason": reason or "",
            },
        )
        await db.commit()

        log.info(
            "request_rejected",
            extra={
                "actor": str(user.id),
                "community_id": str(community.id),
                "request_id_ref": str(r.id),
                "old_status": old_status,
                "new_status": r.status,
            },
        )

    return RequestStatus.REJECTED.value
