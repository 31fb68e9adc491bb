from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from fullmargin.core.clock import utcnow
from fullmargin.db.base import Base, JSONType

"""
Model User.

Rôle (fonctionnel) :
- Compte utilisateur de la plateforme (acheteur, vendeur, propriétaire de communauté, staff).
- Email unique normalisé (lower/strip) : sert d’identifiant de connexion.
- Rôles stockés en liste JSON (["user"], ["user", "admin"], ["agent"]…) : "admin"/"agent" = staff.
"""


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Identifiant de connexion (normalisé)
    email: Mapped[str] = mapped_column(String(254), nullable=False, unique=True, index=True)
    full_name: Mapped[str] = mapped_column(String(120), nullable=False, default="")

    # Hash scrypt (voir core/security.py) ; None pour les comptes sans mot de passe local
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)

    roles: Mapped[list] = mapped_column(JSONType, nullable=False, default=lambda: ["user"])
    avatar_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
