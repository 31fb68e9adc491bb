from __future__ import annotations

import logging
import uuid
from typing import List

from sqlalchemy import asc, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fullmargin.core.clock import utcnow
from fullmargin.core.errors import forbidden
from fullmargin.models.community import Community
from fullmargin.models.community_access_request import CommunityAccessRequest
from fullmargin.models.community_member import CommunityMember
from fullmargin.models.user import User
from fullmargin.schemas.communities import MemberStatus, RequestStatus, Visibility
from fullmargin.services.community_service import get_community_or_404, get_membership, is_owner
from fullmargin.services.notification_service import create_notification

"""
Membership Service.

Rôle (fonctionnel) :
- join : communauté publique (ou propriétaire) -> membre actif direct ;
         communauté privée -> demande d’accès "pending" (upsert).
- leave : membre actif -> "left" ; la demande approuvée passe aussi "left".
- status : approved (membre actif) | statut de la demande | none.
- Liste des membres (réservée au propriétaire).

Invariants :
- members_count n’augmente qu’à une vraie entrée (création ou retour d’un membre parti)
  et ne diminue qu’à une vraie sortie : join/leave répétés sont idempotents.
- Le propriétaire est notifié des entrées, sorties et nouvelles demandes (jamais de ses propres actions).
"""

log = logging.getLogger("fullmargin.memberships")

NOTE_MAX = 500


async def _bump_members_count(db: AsyncSession, community_id: uuid.UUID, delta: int) -> None:
    await db.execute(
        update(Community)
        .where(Community.id == community_id)
        .values(members_count=Community.members_count + delta)
        .execution_options(synchronize_session=False)
    )


async def activate_membership(db: AsyncSession, community_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    """
    Crée ou réactive l’adhésion. Renvoie True si c’est une nouvelle entrée
    (members_count incrémenté), False si le membre était déjà actif.
    """
    existing = await get_membership(db, community_id, user_id)
    if existing is not None:
        if existing.status == MemberStatus.ACTIVE.value:
            return False
        existing.status = MemberStatus.ACTIVE.value
        existing.left_at = None
    else:
        db.add(CommunityMember(community_id=community_id, user_id=user_id, status=MemberStatus.ACTIVE.value))

    await _bump_members_count(db, community_id, +1)
    return True


async def _get_request(db: AsyncSession, community_id: uuid.UUID, user_id: uuid.UUID) -> CommunityAccessRequest | None:
    return (
        await db.execute(
            select(CommunityAccessRequest).where(
                CommunityAccessRequest.community_id == community_id,
                CommunityAccessRequest.user_id == user_id,
            )
        )
    ).scalars().first()


async def open_access_request(
    db: AsyncSession,
    user: User,
    community: Community,
    note: str = "",
) -> CommunityAccessRequest:
    """
    Ouvre (ou rouvre) la demande d’accès du couple communauté/utilisateur en "pending"
    et notifie le propriétaire. Pas de commit.
    """
    req = await _get_request(db, community.id, user.id)
    if req is None:
        req = CommunityAccessRequest(community_id=community.id, user_id=user.id)
        db.add(req)
    req.status = RequestStatus.PENDING.value
    req.note = (note or "")[:NOTE_MAX]
    req.reason = ""
    await db.flush()

    create_notification(
        db,
        user_id=community.owner_id,
        kind="community_request_received",
        community_id=community.id,
        request_id=req.id,
        payload={
            "fromUserId": str(user.id),
            "requesterName": user.full_name or "Un utilisateur",
            "communityName": community.name,
            "communitySlug": community.slug,
        },
    )
    return req


async def join(db: AsyncSession, user: User, community_id: uuid.UUID, note: str = "") -> str:
    """Renvoie le statut résultant : "approved" ou "pending"."""
    community = await get_community_or_404(db, community_id)
    owner = is_owner(community, user.id)

    if community.visibility == Visibility.PUBLIC.value or owner:
        joined = await activate_membership(db, community.id, user.id)

        # Une éventuelle demande passe “approved”
        req = await _get_request(db, community.id, user.id)
        if req is not None:
            req.status = RequestStatus.APPROVED.value
            req.reason = ""

        if joined and not owner:
            create_notification(
                db,
                user_id=community.owner_id,
                kind="community_member_joined",
                community_id=community.id,
                payload={
                    "joinedUserId": str(user.id),
                    "joinedUserName": user.full_name or "",
                    "communityName": community.name,
                },
            )

        await db.commit()
        log.info(
            "membership_joined",
            extra={"actor": str(user.id), "community_id": str(community.id), "new_status": "approved"},
        )
        return RequestStatus.APPROVED.value

    # Communauté privée : demande d’accès
    await open_access_request(db, user, community, note)
    await db.commit()
    log.info(
        "membership_requested",
        extra={"actor": str(user.id), "community_id": str(community.id), "new_status": "pending"},
    )
    return RequestStatus.PENDING.value


async def leave(db: AsyncSession, user: User, community_id: uuid.UUID) -> str:
    community = await get_community_or_404(db, community_id)

    m = await get_membership(db, community.id, user.id)
    left = False
    if m is not None and m.status != MemberStatus.LEFT.value:
        m.status = MemberStatus.LEFT.value
        m.left_at = utcnow()
        await _bump_members_count(db, community.id, -1)
        left = True

    req = await _get_request(db, community.id, user.id)
    if req is not None and req.status == RequestStatus.APPROVED.value:
        req.status = RequestStatus.LEFT.value
        req.reason = "user left community"

    if left and not is_owner(community, user.id):
        create_notification(
            db,
            user_id=community.owner_id,
            kind="community_member_left",
            community_id=community.id,
            payload={
                "leftUserId": str(user.id),
                "leftUserName": user.full_name or "",
                "communityName": community.name,
            },
        )

    await db.commit()
    if left:
        log.info("membership_left", extra={"actor": str(user.id), "community_id": str(community.id), "new_status": "left"})
    return "none"


async def membership_status(db: AsyncSession, user_id: uuid.UUID, community_id: uuid.UUID) -> str:
    m = await get_membership(db, community_id, user_id)
    if m is not None and m.status == MemberStatus.ACTIVE.value:
        return RequestStatus.APPROVED.value

    req = await _get_request(db, community_id, user_id)
    return req.status if req is not None else "none"


async def my_community_ids(db: AsyncSession, user_id: uuid.UUID) -> List[uuid.UUID]:
    rows = (
        await db.execute(
            select(CommunityMember.community_id)
            .join(Community, Community.id == CommunityMember.community_id)
            .where(
                CommunityMember.user_id == user_id,
                CommunityMember.status == MemberStatus.ACTIVE.value,
                Community.deleted_at.is_(None),
            )
        )
    ).scalars().all()
    return list(rows)


async def list_members(db: AsyncSession, user: User, community_id: uuid.UUID) -> List[CommunityMember]:
    """Membres actifs, plus anciens d’abord (réservé au propriétaire)."""
    community = await get_community_or_404(db, community_id)
    if not is_owner(community, user.id):
        raise forbidden("Accès réservé au propriétaire de la communauté")

    rows = (
        await db.execute(
            select(CommunityMember)
            .where(
                CommunityMember.community_id == community.id,
                CommunityMember.status == MemberStatus.ACTIVE.value,
            )
            .order_by(asc(CommunityMember.created_at))
        )
    ).scalars().all()
    return list(rows)
