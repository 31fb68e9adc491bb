from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from fullmargin.core.clock import utcnow
from fullmargin.db.base import Base

"""
Model CommunityAccessRequest.

Rôle (fonctionnel) :
- Demande d’accès à une communauté privée (une par couple communauté/utilisateur, réutilisée).
- Statuts : pending -> approved | rejected ; approved -> left quand le membre quitte.
- note : message du demandeur ; reason : motif du refus (ou du départ).
"""


class CommunityAccessRequest(Base):
    __tablename__ = "community_access_requests"

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

    status: Mapped[str] = mapped_column(String(10), nullable=False, default="pending", index=True)
    note: Mapped[str] = mapped_column(Text, nullable=False, default="")
    reason: Mapped[str] = mapped_column(Text, nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("community_id", "user_id", name="uq_community_access_requests_community_user"),
    )
