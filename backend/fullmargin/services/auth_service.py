from __future__ import annotations

import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fullmargin.core.errors import AppHTTPException
from fullmargin.core.security import create_access_token, hash_password, verify_password
from fullmargin.core.settings import settings
from fullmargin.models.user import User
from fullmargin.schemas.auth import LoginIn, RegisterIn, SessionOut, UserOut, normalize_email

"""
Auth Service.

Rôle (fonctionnel) :
- Inscription : email unique, mot de passe d’une longueur minimale, rôle "user" par défaut.
- Connexion : vérification du hash scrypt, émission d’une session JWT.
- Lecture d’un utilisateur par id (pour les dépendances d’authentification).

Notes :
- Même message d’erreur pour "email inconnu" et "mauvais mot de passe" (pas d’énumération de comptes).
"""

log = logging.getLogger("fullmargin.auth")


def build_session(user: User) -> SessionOut:
    token, expires_at = create_access_token(
        user_id=str(user.id),
        email=user.email,
        roles=list(user.roles or []),
    )
    return SessionOut(token=token, expires_at=expires_at, user=UserOut.model_validate(user))


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    return (
        await db.execute(select(User).where(User.email == normalize_email(email)))
    ).scalars().first()


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> Optional[User]:
    return (await db.execute(select(User).where(User.id == user_id))).scalars().first()


async def register(db: AsyncSession, payload: RegisterIn) -> SessionOut:
    min_len = int(settings.PASSWORD_MIN_LENGTH)
    if len(payload.password) < min_len:
        raise AppHTTPException(
            422,
            "WEAK_PASSWORD",
            f"Mot de passe trop court ({min_len} caractères minimum)",
            details={"min_length": min_len},
        )

    if await get_user_by_email(db, payload.email) is not None:
        raise AppHTTPException(409, "EMAIL_TAKEN", "Cet email est déjà utilisé")

    user = User(
        email=payload.email,
        full_name=payload.full_name,
        password_hash=hash_password(payload.password),
        roles=["user"],
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Inscription concurrente sur le même email
        await db.rollback()
        raise AppHTTPException(409, "EMAIL_TAKEN", "Cet email est déjà utilisé")
    await db.refresh(user)

    log.info("user_registered", extra={"user_id": str(user.id)})
    return build_session(user)


async def login(db: AsyncSession, payload: LoginIn) -> SessionOut:
    user = await get_user_by_email(db, payload.email)
    if user is None or not verify_password(payload.password, user.password_hash):
        log.info("login_failed")
        raise AppHTTPException(401, "INVALID_CREDENTIALS", "Email ou mot de passe incorrect")

    log.info("login_ok", extra={"user_id": str(user.id)})
    return build_session(user)
