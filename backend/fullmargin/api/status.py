from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from fullmargin.core.clock import now_iso
from fullmargin.db.session import get_db
from fullmargin.services.live_service import LiveService

"""
API System Status.

Rôle (fonctionnel) :
- Expose un endpoint de statut “healthcheck” pour la plateforme.
- Vérifie la disponibilité de la base (requête simple).
- Expose le nombre de directs en cours (après expiration des directs dépassés).
"""

router = APIRouter(prefix="/system", tags=["system"])
log = logging.getLogger("fullmargin.system")


@router.get("/status")
async def system_status(db: AsyncSession = Depends(get_db)):
    # 1) DB check (requête minimale)
    db_ok = True
    try:
        await db.execute(text("SELECT 1"))
    except Exception:
        log.warning("db_check_failed", exc_info=True)
        db_ok = False

    # 2) Directs en cours
    lives_running = None
    if db_ok:
        try:
            lives_running = await LiveService(db).count_running()
        except Exception:
            log.warning("lives_count_failed", exc_info=True)
            lives_running = None

    # Réponse (format constant) pour monitoring / UI
    return {
        "ok": db_ok,
        "db": {"ok": db_ok},
        "lives": {"running": lives_running},
        "ts": now_iso(),
    }
