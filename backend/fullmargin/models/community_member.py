from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fullmargin.core.clock import utcnow
from fullmargin.db.base import Base

"""
Model CommunityMember.

Rôle (fonctionnel) :
- Adhésion d’un utilisateur à une communauté.
- Une seule ligne par couple (communauté, utilisateur) : quitter passe le statut à "left"
  (left_at renseigné), revenir réactive la même ligne.
"""


class CommunityMember(Base):
    __tablename__ = "community_members"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    community_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("communities.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # "active" | "left"
    status: Mapped[str] = mapped_column(String(10), nullable=False, default="active", index=True)
    left_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    user = relationship("User", lazy="joined")

    __table_args__ = (
        UniqueConstraint("community_id", "user_id", name="uq_community_members_community_user"),
    )
