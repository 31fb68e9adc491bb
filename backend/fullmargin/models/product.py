from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from fullmargin.core.clock import utcnow
from fullmargin.db.base import Base

"""
Model Product (marketplace).

Rôle (fonctionnel) :
- Produit numérique vendu par un utilisateur (indicateur, ebook, formation, template…).
- Modération (status) : pending -> published | rejected | suspended.
  Un produit rejeté/suspendu perd badge et mise en avant.
- Tarification : one_time (amount) ou subscription (amount + interval month/year).
- Suppression logique (deleted_at) avec motif de modération éventuel.
"""


class Product(Base):
    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    seller_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    title: Mapped[str] = mapped_column(String(120), nullable=False)
    short_description: Mapped[str] = mapped_column(String(180), nullable=False, default="")
    long_description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    type: Mapped[str] = mapped_column(String(40), nullable=False, default="")
    category_key: Mapped[str] = mapped_column(String(60), nullable=False, default="", index=True)

    # Tarification
    pricing_mode: Mapped[str] = mapped_column(String(20), nullable=False, default="one_time")
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    interval: Mapped[str | None] = mapped_column(String(10), nullable=True)

    # Modération + drapeaux
    status: Mapped[str] = mapped_column(String(12), nullable=False, default="pending", index=True)
    badge_eligible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    moderation_reason: Mapped[str] = mapped_column(Text, nullable=False, default="")
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, index=True)

    __table_args__ = (
        Index("ix_products_status_deleted", "status", "deleted_at"),
    )
