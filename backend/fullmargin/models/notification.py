from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from fullmargin.core.clock import utcnow
from fullmargin.db.base import Base, JSONType

"""
Model Notification.

Rôle (fonctionnel) :
- Notification in-app adressée à un utilisateur (cloche du front).
- kind : type stable (community_member_joined, community_request_received, community_request_approved…).
- payload : données d’affichage (nom de la communauté, du demandeur, motif…).
"""


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    kind: Mapped[str] = mapped_column(String(60), nullable=False)

    # Références optionnelles (liens front)
    community_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("communities.id", ondelete="CASCADE"),
        nullable=True,
    )
    request_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("community_access_requests.id", ondelete="SET NULL"),
        nullable=True,
    )

    payload: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    seen: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_notifications_user_seen_created", "user_id", "seen", "created_at"),
    )
