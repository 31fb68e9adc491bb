from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fullmargin.core.clock import utcnow
from fullmargin.db.base import Base

"""
Model CommunityLive.

Rôle (fonctionnel) :
- Session vidéo d’une communauté, programmée ou en cours (la salle de visio est externe,
  identifiée par room_name).
- Cycle de vie (status) :
    scheduled -> live -> ended
    scheduled -> cancelled
  + expiration passive : un direct "live" dont planned_end_at est dépassé passe "ended".

Contraintes :
- Au plus un direct "live" par communauté : index unique partiel (community_id) WHERE status = 'live'.
  Les services terminent les autres directs avant la transition ; l’index rejette les courses concurrentes.
- room_name unique (une salle = un direct).

Index :
- (community_id, status) : listes par communauté et recherche du direct en cours.
- (status, is_public) : liste des directs publics en cours.
"""


class CommunityLive(Base):
    __tablename__ = "community_lives"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    community_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("communities.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Propriétaire au moment de la création (audit)
    created_by: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # "scheduled" | "live" | "ended" | "cancelled"
    status: Mapped[str] = mapped_column(String(12), nullable=False, default="scheduled")

    # Visible hors membres (liste publique + accès sans adhésion)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Horaires : début (prévu puis effectif), fin prévue (expiration), fin effective
    starts_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    planned_end_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    room_name: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    community = relationship("Community", lazy="joined")

    __table_args__ = (
        Index("ix_community_lives_community_status", "community_id", "status"),
        Index("ix_community_lives_status_public", "status", "is_public"),
        Index(
            "uq_community_lives_one_live",
            "community_id",
            unique=True,
            postgresql_where=text("status = 'live'"),
            sqlite_where=text("status = 'live'"),
        ),
    )
