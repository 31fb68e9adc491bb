from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fullmargin.models.notification import Notification

"""
Notification Service.

Rôle (fonctionnel) :
- Crée les notifications in-app (adhésions, demandes d’accès, directs…).
- Liste / compte / marque comme vues les notifications d’un utilisateur.

Notes :
- create_notification() ajoute la ligne à la session SANS commit : elle est validée
  dans la même transaction que l’action métier qui la déclenche.
"""

log = logging.getLogger("fullmargin.notifications")

MAX_LIST = 100


def create_notification(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    kind: str,
    community_id: Optional[uuid.UUID] = None,
    request_id: Optional[uuid.UUID] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> Notification:
    notif = Notification(
        user_id=user_id,
        kind=kind,
        community_id=community_id,
        request_id=request_id,
        payload=dict(payload or {}),
        seen=False,
    )
    db.add(notif)
    log.info("notification_created", extra={"user_id": str(user_id), "community_id": str(community_id) if community_id else None})
    return notif


async def list_notifications(
    db: AsyncSession,
    user_id: uuid.UUID,
    *,
    unseen_only: bool = False,
) -> Tuple[List[Notification], int]:
    """Renvoie (notifications récentes, nombre de non vues)."""
    stmt = select(Notification).where(Notification.user_id == user_id)
    if unseen_only:
        stmt = stmt.where(Notification.seen.is_(False))
    stmt = stmt.order_by(desc(Notification.created_at)).limit(MAX_LIST)
    rows = (await db.execute(stmt)).scalars().all()

    return list(rows), await count_unseen(db, user_id)


async def count_unseen(db: AsyncSession, user_id: uuid.UUID, kinds: Optional[Sequence[str]] = None) -> int:
    stmt = (
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == user_id, Notification.seen.is_(False))
    )
    if kinds:
        stmt = stmt.where(Notification.kind.in_(list(kinds)))
    return int((await db.execute(stmt)).scalar_one())


async def mark_seen(
    db: AsyncSession,
    user_id: uuid.UUID,
    ids: Optional[Sequence[uuid.UUID]] = None,
    *,
    kinds: Optional[Sequence[str]] = None,
    request_ids: Optional[Sequence[uuid.UUID]] = None,
) -> int:
    """
    Marque comme vues les notifications de l’utilisateur : toutes, ou restreintes
    par `ids`, par type (`kinds`) et/ou par demande d’accès liée (`request_ids`).
    """
    stmt = (
        update(Notification)
        .where(Notification.user_id == user_id, Notification.seen.is_(False))
        .values(seen=True)
    )
    if ids:
        stmt = stmt.where(Notification.id.in_(list(ids)))
    if kinds:
        stmt = stmt.where(Notification.kind.in_(list(kinds)))
    if request_ids:
        stmt = stmt.where(Notification.request_id.in_(list(request_ids)))

    res = await db.execute(stmt)
    await db.commit()
    return int(res.rowcount or 0)
