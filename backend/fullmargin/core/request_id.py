from __future__ import annotations

import uuid
from contextvars import ContextVar

"""
Core Request ID.

Identifiant de corrélation (X-Request-Id) stocké dans un ContextVar :
repris du header entrant s’il existe, sinon généré. Lu par le logging,
les handlers d’erreurs et les events temps réel.
"""

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)

# Borne la taille d’un id fourni par le client (stocké tel quel dans les logs)
MAX_REQUEST_ID_LEN = 64


def set_request_id(rid: str | None) -> None:
    _request_id.set(rid)


def get_request_id() -> str | None:
    return _request_id.get()


def ensure_request_id(incoming: str | None = None) -> str:
    """Réutilise l’id entrant (nettoyé, tronqué) ou génère un UUID."""
    rid = (incoming or "").strip()[:MAX_REQUEST_ID_LEN] or str(uuid.uuid4())
    set_request_id(rid)
    return rid
