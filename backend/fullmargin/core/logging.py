from __future__ import annotations

import json
import logging
import sys
from typing import Any

from .clock import now_iso
from .request_id import get_request_id

"""
Core Logging.

Rôle (fonctionnel) :
- Logging JSON uniforme pour toute l’application (API + uvicorn), 1 event = 1 ligne.
- Chaque log porte le request_id courant (corrélation API / events métier).
- Les “extras” métier (communauté, direct, produit, transition de statut…) sont
  recopiés tels quels dans le JSON pour pouvoir filtrer dans l’agrégateur.
"""

# Champs `extra={...}` exportés dans le JSON
STRUCTURED_FIELDS = (
    "method",
    "path",
    "status_code",
    "duration_ms",
    "client_ip",
    "actor",
    "user_id",
    "community_id",
    "live_id",
    "product_id",
    "request_id_ref",
    "old_status",
    "new_status",
    "count",
)


class RequestIdFilter(logging.Filter):
    """Ajoute request_id au LogRecord (valeur '-' si absent)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": now_iso(),
            "level": record.levelname,
            "logger": record.name,
            "request_id": getattr(record, "request_id", "-"),
            "msg": record.getMessage(),
        }

        for key in STRUCTURED_FIELDS:
            if hasattr(record, key):
                payload[key] = getattr(record, key)

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO") -> None:
    """
    Initialise le logging global (root) en JSON et aligne uvicorn sur la même configuration.

    - Nettoie les handlers existants pour éviter les doublons (notamment avec --reload).
    - StreamHandler stdout + JsonFormatter + RequestIdFilter.
    """
    lvl = level.upper()

    root = logging.getLogger()
    root.setLevel(lvl)

    if root.handlers:
        root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    handler.addFilter(RequestIdFilter())
    root.addHandler(handler)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logger = logging.getLogger(name)
        logger.handlers = root.handlers
        logger.setLevel(lvl)
