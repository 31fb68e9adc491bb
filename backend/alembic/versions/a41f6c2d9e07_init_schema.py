"""Schéma initial FullMargin.

Rôle (fonctionnel) :
- Crée les tables : utilisateurs, communautés, adhésions, demandes d’accès,
  directs, produits de la marketplace, notifications.
- Pose l’index unique partiel qui garantit au plus un direct "live" par communauté.

Revision ID: a41f6c2d9e07
Revises:
Create Date: 2026-10-19 10:12:44.281905
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# Identifiants Alembic
revision: str = "a41f6c2d9e07"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _ts(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    """Application des changements de schéma."""
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(length=254), nullable=False),
        sa.Column("full_name", sa.String(length=120), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=True),
        sa.Column("roles", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("avatar_url", sa.String(length=500), nullable=True),
        _ts("created_at"),
        _ts("updated_at"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_users")),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    op.create_table(
        "communities",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("slug", sa.String(length=140), nullable=False),
        sa.Column("visibility", sa.String(length=10), nullable=False),
        sa.Column("category", sa.String(length=60), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("cover_url", sa.String(length=500), nullable=False),
        sa.Column("logo_url", sa.String(length=500), nullable=False),
        sa.Column("members_count", sa.Integer(), nullable=False),
        _ts("deleted_at", nullable=True),
        _ts("created_at"),
        _ts("updated_at"),
        sa.ForeignKeyConstraint(
            ["owner_id"], ["users.id"], name=op.f("fk_communities_owner_id_users"), ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_communities")),
    )
    op.create_index(op.f("ix_communities_owner_id"), "communities", ["owner_id"], unique=False)
    op.create_index(op.f("ix_communities_slug"), "communities", ["slug"], unique=True)
    op.create_index(op.f("ix_communities_category"), "communities", ["category"], unique=False)
    op.create_index(op.f("ix_communities_created_at"), "communities", ["created_at"], unique=False)
    op.create_index("ix_communities_deleted_created", "communities", ["deleted_at", "created_at"], unique=False)

    op.create_table(
        "community_members",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("community_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("status", sa.String(length=10), nullable=False),
        _ts("left_at", nullable=True),
        _ts("created_at"),
        sa.ForeignKeyConstraint(
            ["community_id"],
            ["communities.id"],
            name=op.f("fk_community_members_community_id_communities"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name=op.f("fk_community_members_user_id_users"), ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_community_members")),
        sa.UniqueConstraint("community_id", "user_id", name="uq_community_members_community_user"),
    )
    op.create_index(op.f("ix_community_members_community_id"), "community_members", ["community_id"], unique=False)
    op.create_index(op.f("ix_community_members_user_id"), "community_members", ["user_id"], unique=False)
    op.create_index(op.f("ix_community_members_status"), "community_members", ["status"], unique=False)

    op.create_table(
        "community_access_requests",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("community_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("status", sa.String(length=10), nullable=False),
        sa.Column("note", sa.Text(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        _ts("created_at"),
        _ts("updated_at"),
        sa.ForeignKeyConstraint(
            ["community_id"],
            ["communities.id"],
            name=op.f("fk_community_access_requests_community_id_communities"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name=op.f("fk_community_access_requests_user_id_users"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_community_access_requests")),
        sa.UniqueConstraint("community_id", "user_id", name="uq_community_access_requests_community_user"),
    )
    op.create_index(
        op.f("ix_community_access_requests_community_id"), "community_access_requests", ["community_id"], unique=False
    )
    op.create_index(op.f("ix_community_access_requests_user_id"), "community_access_requests", ["user_id"], unique=False)
    op.create_index(op.f("ix_community_access_requests_status"), "community_access_requests", ["status"], unique=False)

    op.create_table(
        "community_lives",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("community_id", sa.Uuid(), nullable=False),
        sa.Column("created_by", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=12), nullable=False),
        sa.Column("is_public", sa.Boolean(), nullable=False),
        _ts("starts_at", nullable=True),
        _ts("planned_end_at", nullable=True),
        _ts("ended_at", nullable=True),
        sa.Column("room_name", sa.String(length=120), nullable=False),
        _ts("created_at"),
        _ts("updated_at"),
        sa.ForeignKeyConstraint(
            ["community_id"],
            ["communities.id"],
            name=op.f("fk_community_lives_community_id_communities"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["created_by"], ["users.id"], name=op.f("fk_community_lives_created_by_users"), ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_community_lives")),
        sa.UniqueConstraint("room_name", name=op.f("uq_community_lives_room_name")),
    )
    op.create_index(op.f("ix_community_lives_community_id"), "community_lives", ["community_id"], unique=False)
    op.create_index("ix_community_lives_community_status", "community_lives", ["community_id", "status"], unique=False)
    op.create_index("ix_community_lives_status_public", "community_lives", ["status", "is_public"], unique=False)
    # Au plus un direct "live" par communauté
    op.create_index(
        "uq_community_lives_one_live",
        "community_lives",
        ["community_id"],
        unique=True,
        postgresql_where=sa.text("status = 'live'"),
    )

    op.create_table(
        "products",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("seller_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=120), nullable=False),
        sa.Column("short_description", sa.String(length=180), nullable=False),
        sa.Column("long_description", sa.Text(), nullable=False),
        sa.Column("type", sa.String(length=40), nullable=False),
        sa.Column("category_key", sa.String(length=60), nullable=False),
        sa.Column("pricing_mode", sa.String(length=20), nullable=False),
        sa.Column("amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("interval", sa.String(length=10), nullable=True),
        sa.Column("status", sa.String(length=12), nullable=False),
        sa.Column("badge_eligible", sa.Boolean(), nullable=False),
        sa.Column("featured", sa.Boolean(), nullable=False),
        sa.Column("verified", sa.Boolean(), nullable=False),
        sa.Column("moderation_reason", sa.Text(), nullable=False),
        _ts("reviewed_at", nullable=True),
        sa.Column("reviewed_by", sa.Uuid(), nullable=True),
        _ts("deleted_at", nullable=True),
        _ts("created_at"),
        _ts("updated_at"),
        sa.ForeignKeyConstraint(
            ["seller_id"], ["users.id"], name=op.f("fk_products_seller_id_users"), ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["reviewed_by"], ["users.id"], name=op.f("fk_products_reviewed_by_users"), ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_products")),
    )
    op.create_index(op.f("ix_products_seller_id"), "products", ["seller_id"], unique=False)
    op.create_index(op.f("ix_products_category_key"), "products", ["category_key"], unique=False)
    op.create_index(op.f("ix_products_status"), "products", ["status"], unique=False)
    op.create_index(op.f("ix_products_updated_at"), "products", ["updated_at"], unique=False)
    op.create_index("ix_products_status_deleted", "products", ["status", "deleted_at"], unique=False)

    op.create_table(
        "notifications",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("kind", sa.String(length=60), nullable=False),
        sa.Column("community_id", sa.Uuid(), nullable=True),
        sa.Column("request_id", sa.Uuid(), nullable=True),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("seen", sa.Boolean(), nullable=False),
        _ts("created_at"),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name=op.f("fk_notifications_user_id_users"), ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["community_id"],
            ["communities.id"],
            name=op.f("fk_notifications_community_id_communities"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["request_id"],
            ["community_access_requests.id"],
            name=op.f("fk_notifications_request_id_community_access_requests"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_notifications")),
    )
    op.create_index(
        "ix_notifications_user_seen_created", "notifications", ["user_id", "seen", "created_at"], unique=False
    )


def downgrade() -> None:
    """Retour arrière des changements de schéma."""
    op.drop_index("ix_notifications_user_seen_created", table_name="notifications")
    op.drop_table("notifications")

    op.drop_index("ix_products_status_deleted", table_name="products")
    op.drop_index(op.f("ix_products_updated_at"), table_name="products")
    op.drop_index(op.f("ix_products_status"), table_name="products")
    op.drop_index(op.f("ix_products_category_key"), table_name="products")
    op.drop_index(op.f("ix_products_seller_id"), table_name="products")
    op.drop_table("products")

    op.drop_index("uq_community_lives_one_live", table_name="community_lives")
    op.drop_index("ix_community_lives_status_public", table_name="community_lives")
    op.drop_index("ix_community_lives_community_status", table_name="community_lives")
    op.drop_index(op.f("ix_community_lives_community_id"), table_name="community_lives")
    op.drop_table("community_lives")

    op.drop_index(op.f("ix_community_access_requests_status"), table_name="community_access_requests")
    op.drop_index(op.f("ix_community_access_requests_user_id"), table_name="community_access_requests")
    op.drop_index(op.f("ix_community_access_requests_community_id"), table_name="community_access_requests")
    op.drop_table("community_access_requests")

    op.drop_index(op.f("ix_community_members_status"), table_name="community_members")
    op.drop_index(op.f("ix_community_members_user_id"), table_name="community_members")
    op.drop_index(op.f("ix_community_members_community_id"), table_name="community_members")
    op.drop_table("community_members")

    op.drop_index("ix_communities_deleted_created", table_name="communities")
    op.drop_index(op.f("ix_communities_created_at"), table_name="communities")
    op.drop_index(op.f("ix_communities_category"), table_name="communities")
    op.drop_index(op.f("ix_communities_slug"), table_name="communities")
    op.drop_index(op.f("ix_communities_owner_id"), table_name="communities")
    op.drop_table("communities")

    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")
