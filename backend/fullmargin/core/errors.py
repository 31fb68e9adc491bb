from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import HTTPException

from fullmargin.core.clock import now_iso

"""
Core Errors.

Rôle (fonctionnel) :
- Standardise le format des erreurs renvoyées par l’API (payload homogène).
- Fournit une exception applicative (AppHTTPException) levée par les services et les routes.
- Regroupe les erreurs métier récurrentes (introuvable, interdit, transition invalide…)
  pour que les codes restent stables côté front.

Convention de réponse (exemple) :
{
  "error": {
    "code": "INVALID_TRANSITION",
    "message": "Le direct n’est pas programmé",
    "status": 409,
    "request_id": "...",
    "timestamp": "...",
    "details": {"status": "live", "action": "cancel"}
  }
}
"""


def error_payload(
    *,
    code: str,
    message: str,
    status: int,
    request_id: str,
    details: Optional[Any] = None,
) -> Dict[str, Any]:
    """Construit un payload d’erreur homogène pour l’API."""
    payload: Dict[str, Any] = {
        "error": {
            "code": code,
            "message": message,
            "status": status,
            "request_id": request_id,
            "timestamp": now_iso(),
        }
    }
    if details is not None:
        payload["error"]["details"] = details
    return payload


class AppHTTPException(HTTPException):
    """
    Exception applicative standardisée.

    Exemple :
        raise AppHTTPException(404, "NOT_FOUND", "Communauté introuvable")
    """

    def __init__(self, status_code: int, code: str, message: str, details: Any = None):
        super().__init__(status_code=status_code, detail={"code": code, "message": message, "details": details})

    @property
    def code(self) -> str:
        return str(self.detail.get("code", "HTTP_ERROR"))


def not_found(message: str) -> AppHTTPException:
    return AppHTTPException(404, "NOT_FOUND", message)


def forbidden(message: str = "Accès interdit") -> AppHTTPException:
    return AppHTTPException(403, "FORBIDDEN", message)


def unauthorized(message: str = "Non autorisé") -> AppHTTPException:
    return AppHTTPException(401, "UNAUTHORIZED", message)


def invalid_transition(current: str, action: str) -> AppHTTPException:
    """Transition de statut refusée (ex : annuler un direct déjà en cours)."""
    return AppHTTPException(
        409,
        "INVALID_TRANSITION",
        f"Action « {action} » impossible depuis le statut « {current} »",
        details={"status": current, "action": action},
    )
