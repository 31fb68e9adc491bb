from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fullmargin.api.deps import CurrentUser
from fullmargin.db.session import get_db
from fullmargin.models.user import User
from fullmargin.schemas.common import Ok
from fullmargin.schemas.notifications import MarkSeenIn, MarkSeenOut, NotificationItems, NotificationOut
from fullmargin.services import notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=Ok[NotificationItems])
async def list_notifications(
    user: User = CurrentUser,
    db: AsyncSession = Depends(get_db),
    unseen: bool = Query(False),
):
    rows, unseen_count = await notification_service.list_notifications(db, user.id, unseen_only=unseen)
    return Ok(
        data=NotificationItems(
            items=[NotificationOut.model_validate(n) for n in rows],
            unseen=unseen_count,
        )
    )


@router.post("/mark-seen", response_model=Ok[MarkSeenOut])
async def mark_seen(
    payload: Optional[MarkSeenIn] = None,
    user: User = CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    updated = await notification_service.mark_seen(db, user.id, payload.ids if payload else None)
    return Ok(data=MarkSeenOut(updated=updated))
