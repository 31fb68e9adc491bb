from __future__ import annotations

import uuid
from typing import List, Optional

from pydantic import Field, field_validator

from fullmargin.schemas.common import CamelInput, CamelModel, UTCDateTime

"""
Schemas Auth (Pydantic).

Contrat HTTP de l’inscription / connexion et représentation publique d’un utilisateur
(jamais de hash de mot de passe en sortie).
"""


def normalize_email(value: str) -> str:
    return value.strip().lower()


class RegisterIn(CamelInput):
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=1, max_length=200)
    full_name: str = Field(..., min_length=1, max_length=120)

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        v = normalize_email(v)
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError("email invalide")
        return v


class LoginIn(CamelInput):
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=1, max_length=200)

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return normalize_email(v)


class UserOut(CamelModel):
    id: uuid.UUID
    email: str
    full_name: str
    avatar_url: Optional[str] = None
    roles: List[str]


class SessionOut(CamelModel):
    token: str
    expires_at: UTCDateTime
    user: UserOut


class SessionEnvelope(CamelModel):
    session: SessionOut
