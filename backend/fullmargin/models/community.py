from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fullmargin.core.clock import utcnow
from fullmargin.db.base import Base

"""
Model Community.

Rôle (fonctionnel) :
- Groupe créé et possédé par un utilisateur (owner_id).
- Visibilité :
  - public  : adhésion directe (join)
  - private : adhésion sur demande (CommunityAccessRequest, validée par le propriétaire)
- members_count : compteur dénormalisé, maintenu par les services d’adhésion.
- Suppression logique (deleted_at) : une communauté supprimée est invisible partout.
"""


class Community(Base):
    __tablename__ = "communities"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(120), nullable=False)
    slug: Mapped[str] = mapped_column(String(140), nullable=False, unique=True, index=True)

    # "public" | "private"
    visibility: Mapped[str] = mapped_column(String(10), nullable=False, default="public")

    category: Mapped[str] = mapped_column(String(60), nullable=False, default="", index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    cover_url: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    logo_url: Mapped[str] = mapped_column(String(500), nullable=False, default="")

    members_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    owner = relationship("User", lazy="joined")

    __table_args__ = (
        Index("ix_communities_deleted_created", "deleted_at", "created_at"),
    )
