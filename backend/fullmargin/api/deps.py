from __future__ import annotations

import uuid
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from fullmargin.core.errors import forbidden, unauthorized
from fullmargin.core.security import decode_access_token, extract_token, is_staff
from fullmargin.db.session import get_db
from fullmargin.models.user import User
from fullmargin.services.auth_service import get_user

"""
Dépendances API.

Rôle (fonctionnel) :
- Centralise les dépendances d’authentification réutilisables sur les routes :
  - get_current_user : session obligatoire (401 sinon),
  - get_optional_user : session facultative (lecture publique enrichie si connecté),
  - require_staff : réservé aux rôles admin/agent (403 sinon).
"""


async def _user_from_token(token: str, db: AsyncSession) -> User:
    payload = decode_access_token(token)
    try:
        user_id = uuid.UUID(payload.user_id)
    except ValueError:
        raise unauthorized("Token invalide")

    user = await get_user(db, user_id)
    if user is None:
        # Compte supprimé depuis l’émission de la session
        raise unauthorized("Utilisateur introuvable")
    return user


async def get_current_user(request: Request, db: AsyncSession = Depends(get_db)) -> User:
    token = extract_token(request)
    if not token:
        raise unauthorized("Authentification requise")

    user = await _user_from_token(token, db)
    request.state.user_id = str(user.id)
    return user


async def get_optional_user(request: Request, db: AsyncSession = Depends(get_db)) -> Optional[User]:
    token = extract_token(request)
    if not token:
        return None
    return await _user_from_token(token, db)


async def require_staff(user: User = Depends(get_current_user)) -> User:
    if not is_staff(user.roles):
        raise forbidden("Réservé à l’équipe de modération")
    return user


CurrentUser = Depends(get_current_user)
OptionalUser = Depends(get_optional_user)
StaffUser = Depends(require_staff)
