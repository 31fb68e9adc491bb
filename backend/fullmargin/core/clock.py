from __future__ import annotations

from datetime import datetime, timezone

"""
Core Clock.

Rôle (fonctionnel) :
- Point unique pour “maintenant” (UTC, timezone-aware).
- Normalise les dates relues en base : certains drivers (SQLite) renvoient des datetimes naïfs,
  on les considère comme UTC pour pouvoir les comparer sans erreur.
"""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def now_iso() -> str:
    """Timestamp ISO-8601 en UTC (erreurs, events WS)."""
    return utcnow().isoformat()


def as_utc(dt: datetime | None) -> datetime | None:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
