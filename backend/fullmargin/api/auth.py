from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fullmargin.api.deps import CurrentUser
from fullmargin.db.session import get_db
from fullmargin.models.user import User
from fullmargin.schemas.auth import LoginIn, RegisterIn, SessionEnvelope, UserOut
from fullmargin.schemas.common import Ok
from fullmargin.services import auth_service

"""
API Auth.

Rôle (fonctionnel) :
- Inscription et connexion (session JWT renvoyée au front).
- Lecture du compte courant.
- Ces routes sont soumises au rate-limit (brute-force).
"""

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=Ok[SessionEnvelope], status_code=201)
async def register(payload: RegisterIn, db: AsyncSession = Depends(get_db)):
    session = await auth_service.register(db, payload)
    return Ok(data=SessionEnvelope(session=session))


@router.post("/login", response_model=Ok[SessionEnvelope])
async def login(payload: LoginIn, db: AsyncSession = Depends(get_db)):
    session = await auth_service.login(db, payload)
    return Ok(data=SessionEnvelope(session=session))


@router.get("/me", response_model=Ok[UserOut])
async def me(user: User = CurrentUser):
    return Ok(data=UserOut.model_validate(user))
