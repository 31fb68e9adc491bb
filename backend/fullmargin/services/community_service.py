from __future__ import annotations

import logging
import re
import unicodedata
import uuid
from typing import List, Optional

from sqlalchemy import desc, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fullmargin.core.errors import AppHTTPException, not_found
from fullmargin.models.community import Community
from fullmargin.models.community_member import CommunityMember
from fullmargin.models.user import User
from fullmargin.schemas.communities import CommunityCreate, MemberStatus

"""
Community Service.

Rôle (fonctionnel) :
- Création d’une communauté (slug unique dérivé du nom si absent).
- Lecture : par id ou slug, “mes communautés”, liste publique (avec propriétaire).
- Règles d’accès partagées par les autres services (adhésions, demandes, directs) :
  - is_owner : le propriétaire a tous les droits de gestion,
  - is_active_member : adhésion "active" (un membre parti n’a plus accès).

Notes :
- Une communauté supprimée (deleted_at) est traitée comme introuvable (404).
"""

log = logging.getLogger("fullmargin.communities")

PUBLIC_LIST_LIMIT = 200

_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    """Slug URL-safe : accents retirés, minuscules, tirets."""
    ascii_value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    candidate = _SLUG_PATTERN.sub("-", ascii_value.lower()).strip("-")
    return re.sub(r"-{2,}", "-", candidate)


def _as_uuid(value: object) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def is_owner(community: Community, user_id: Optional[uuid.UUID]) -> bool:
    return user_id is not None and community.owner_id == user_id


async def get_community_or_404(db: AsyncSession, community_id: object) -> Community:
    cid = _as_uuid(community_id)
    community = None
    if cid is not None:
        community = (
            await db.execute(select(Community).where(Community.id == cid, Community.deleted_at.is_(None)))
        ).scalars().first()
    if community is None:
        raise not_found("Communauté introuvable")
    return community


async def get_by_ref(db: AsyncSession, ref: str) -> Community:
    """Résout une communauté par UUID ou par slug."""
    cid = _as_uuid(ref)
    stmt = select(Community).where(Community.deleted_at.is_(None))
    stmt = stmt.where(Community.id == cid) if cid is not None else stmt.where(Community.slug == ref.strip().lower())
    community = (await db.execute(stmt)).scalars().first()
    if community is None:
        raise not_found("Communauté introuvable")
    return community


async def get_membership(
    db: AsyncSession,
    community_id: uuid.UUID,
    user_id: uuid.UUID,
) -> Optional[CommunityMember]:
    return (
        await db.execute(
            select(CommunityMember).where(
                CommunityMember.community_id == community_id,
                CommunityMember.user_id == user_id,
            )
        )
    ).scalars().first()


async def is_active_member(
    db: AsyncSession,
    community_id: uuid.UUID,
    user_id: Optional[uuid.UUID],
) -> bool:
    if user_id is None:
        return False
    m = await get_membership(db, community_id, user_id)
    return m is not None and m.status == MemberStatus.ACTIVE.value


def _slug_conflict(slug: str) -> AppHTTPException:
    return AppHTTPException(409, "SLUG_TAKEN", "Ce slug est déjà utilisé", details={"slug": slug})


async def _slug_taken(db: AsyncSession, slug: str) -> bool:
    return (await db.execute(select(Community.id).where(Community.slug == slug))).first() is not None


async def create_community(db: AsyncSession, owner: User, payload: CommunityCreate) -> Community:
    slug = slugify(payload.slug or payload.name)
    if not slug:
        raise AppHTTPException(422, "VALIDATION_ERROR", "Slug invalide")

    if await _slug_taken(db, slug):
        raise _slug_conflict(slug)

    community = Community(
        owner_id=owner.id,
        name=payload.name,
        slug=slug,
        visibility=payload.visibility.value,
        category=payload.category.strip().lower(),
        description=payload.description,
        cover_url=payload.cover_url,
        logo_url=payload.logo_url,
        members_count=0,
    )
    db.add(community)
    try:
        await db.commit()
    except IntegrityError:
        # Création concurrente avec le même slug
        await db.rollback()
        raise _slug_conflict(slug)
    await db.refresh(community)

    log.info("community_created", extra={"actor": str(owner.id), "community_id": str(community.id)})
    return community


async def list_my_communities(db: AsyncSession, owner_id: uuid.UUID) -> List[Community]:
    rows = (
        await db.execute(
            select(Community)
            .where(Community.owner_id == owner_id, Community.deleted_at.is_(None))
            .order_by(desc(Community.created_at))
        )
    ).scalars().all()
    return list(rows)


async def list_public_communities(db: AsyncSession, category: str | None = None) -> List[Community]:
    stmt = select(Community).where(Community.deleted_at.is_(None))
    cat = (category or "").strip().lower()
    if cat:
        stmt = stmt.where(Community.category == cat)
    stmt = stmt.order_by(desc(Community.created_at)).limit(PUBLIC_LIST_LIMIT)
    return list((await db.execute(stmt)).scalars().unique().all())
