from __future__ import annotations

import base64
import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

import jwt
from fastapi import Request

from fullmargin.core.clock import utcnow
from fullmargin.core.errors import AppHTTPException, unauthorized
from fullmargin.core.settings import settings

"""
Core Security.

Rôle (fonctionnel) :
- Hash / vérification des mots de passe (scrypt salé, comparaison à temps constant).
- Émission / vérification des sessions (JWT HS256 : sub, email, roles, iat, exp).
- Extraction du token : `Authorization: Bearer <token>` (ou `?token=` pour les médias).
- Token d’accès aux salles de direct (visioconférence externe) : JWT court, signé côté serveur.

Comportement du secret :
- JWT_SECRET configuré : utilisé tel quel.
- JWT_SECRET vide et ENV != prod : secret de dev fixe (sessions non portables, pratique en local).
- JWT_SECRET vide et ENV = prod : erreur 500 (configuration serveur invalide).
"""

_DEV_SECRET = "fullmargin-dev-secret-change-me"

_SALT_BYTES = 16
_KEY_LEN = 32
_SCRYPT_N = 2**14
_SCRYPT_R = 8
_SCRYPT_P = 1

STAFF_ROLES = ("admin", "agent")


@dataclass(frozen=True)
class TokenPayload:
    """Contenu décodé d’un token de session."""
    user_id: str
    email: str
    roles: List[str]
    issued_at: datetime
    expires_at: datetime


def _b64(value: bytes) -> str:
    return base64.urlsafe_b64encode(value).decode("ascii").rstrip("=")


def _unb64(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


def hash_password(password: str) -> str:
    """Hash scrypt au format `scrypt$n$r$p$salt$key`."""
    if not password:
        raise ValueError("Password must not be empty")

    salt = secrets.token_bytes(_SALT_BYTES)
    key = hashlib.scrypt(
        password.encode("utf-8"),
        salt=salt,
        n=_SCRYPT_N,
        r=_SCRYPT_R,
        p=_SCRYPT_P,
        dklen=_KEY_LEN,
    )
    return f"scrypt${_SCRYPT_N}${_SCRYPT_R}${_SCRYPT_P}${_b64(salt)}${_b64(key)}"


def verify_password(password: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    try:
        scheme, n_str, r_str, p_str, salt_b64, key_b64 = hashed.split("$", 5)
        if scheme != "scrypt":
            return False
        salt = _unb64(salt_b64)
        expected = _unb64(key_b64)
        candidate = hashlib.scrypt(
            password.encode("utf-8"),
            salt=salt,
            n=int(n_str),
            r=int(r_str),
            p=int(p_str),
            dklen=len(expected),
        )
    except (ValueError, TypeError):
        return False

    return secrets.compare_digest(candidate, expected)


def _jwt_secret() -> str:
    secret = settings.JWT_SECRET or ""
    if secret:
        return secret
    # En prod, un secret manquant est une mauvaise config serveur
    if str(settings.ENV).lower() == "prod":
        raise AppHTTPException(500, "SERVER_MISCONFIG", "JWT_SECRET manquant côté serveur")
    return _DEV_SECRET


def create_access_token(*, user_id: str, email: str, roles: Sequence[str]) -> Tuple[str, datetime]:
    """Signe une session ; renvoie (token, expires_at)."""
    now = utcnow()
    expires_at = now + timedelta(minutes=int(settings.JWT_EXPIRES_MIN))
    payload = {
        "sub": user_id,
        "email": email,
        "roles": list(roles),
        "iat": int(now.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    token = jwt.encode(payload, _jwt_secret(), algorithm=settings.JWT_ALGORITHM)
    return token, expires_at


def decode_access_token(token: str) -> TokenPayload:
    """Vérifie signature + expiration ; lève 401 sinon."""
    try:
        data = jwt.decode(token, _jwt_secret(), algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise unauthorized("Session expirée")
    except jwt.PyJWTError:
        raise unauthorized("Token invalide")

    sub = data.get("sub")
    if not sub:
        raise unauthorized("Token invalide")

    return TokenPayload(
        user_id=str(sub),
        email=str(data.get("email") or ""),
        roles=[str(r) for r in (data.get("roles") or [])],
        issued_at=datetime.fromtimestamp(int(data.get("iat", 0)), tz=utcnow().tzinfo),
        expires_at=datetime.fromtimestamp(int(data["exp"]), tz=utcnow().tzinfo),
    )


def extract_token(request: Request) -> Optional[str]:
    """Token depuis Authorization Bearer, sinon query `?token=` (balises <img>/<iframe>)."""
    auth = request.headers.get("authorization")
    if auth:
        parts = auth.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            return parts[1].strip() or None

    q = request.query_params.get("token")
    if q:
        return q.strip() or None

    return None


def is_staff(roles: Sequence[str] | None) -> bool:
    return any(r in STAFF_ROLES for r in (roles or ()))


def create_room_token(
    *,
    room: str,
    user_id: str,
    display_name: str,
    moderator: bool,
) -> str:
    """
    Token d’accès à une salle de direct.

    Format compatible avec un serveur de visio en auth=token :
    aud/iss/sub/room + context.user (nom, id, modérateur).
    """
    now = utcnow()
    secret = settings.LIVE_ROOM_TOKEN_SECRET or _jwt_secret()
    payload: Dict[str, Any] = {
        "aud": "fullmargin",
        "iss": "fullmargin",
        "sub": settings.LIVE_ROOM_DOMAIN,
        "room": room,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=int(settings.LIVE_ROOM_TOKEN_TTL_MIN))).timestamp()),
        "context": {
            "user": {
                "id": user_id,
                "name": display_name,
                "moderator": moderator,
            }
        },
    }
    return jwt.encode(payload, secret, algorithm="HS256")
