# backend/scripts/seed_demo.py
from __future__ import annotations

import argparse
import random
import secrets
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from uuid import uuid4

from sqlalchemy import create_engine, delete
from sqlalchemy.orm import sessionmaker

# Permet de lancer le script depuis backend/ sans souci d'import
BACKEND_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BACKEND_DIR))

from fullmargin.core.security import hash_password
from fullmargin.core.settings import settings
from fullmargin.models.community import Community
from fullmargin.models.community_access_request import CommunityAccessRequest
from fullmargin.models.community_live import CommunityLive
from fullmargin.models.community_member import CommunityMember
from fullmargin.models.notification import Notification
from fullmargin.models.product import Product
from fullmargin.models.user import User
from fullmargin.services.community_service import slugify


DEMO_PASSWORD = "demo-password"

USERS = [
    # (email, nom, rôles)
    ("admin@fullmargin.demo", "Admin FullMargin", ["user", "admin"]),
    ("agent@fullmargin.demo", "Agent Modération", ["user", "agent"]),
    ("sarah@fullmargin.demo", "Sarah Benali", ["user"]),
    ("lucas@fullmargin.demo", "Lucas Martin", ["user"]),
    ("ines@fullmargin.demo", "Inès Diallo", ["user"]),
    ("hugo@fullmargin.demo", "Hugo Lefèvre", ["user"]),
]

COMMUNITIES = [
    # (nom, visibilité, catégorie, index du propriétaire)
    ("Scalping Forex Paris", "public", "forex", 2),
    ("Swing Trading Actions", "public", "actions", 3),
    ("Crypto Night Desk", "private", "crypto", 2),
    ("Options & Volatilité", "private", "options", 4),
]

PRODUCT_TITLES = {
    "indicateur": ["Indicateur Momentum Pro", "Volume Profile Lite", "Supertrend Multi-TF"],
    "formation": ["Formation Price Action", "Masterclass Gestion du Risque", "Bootcamp Scalping"],
    "signal": ["Signaux Forex Premium", "Alertes Crypto Hebdo"],
    "template": ["Journal de Trading Excel", "Plan de Trading Notion"],
}

PRODUCT_STATUSES = ["pending", "published", "rejected", "suspended"]


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def room_name(community: Community) -> str:
    return f"{settings.LIVE_ROOM_PREFIX}-{community.id.hex[:8]}-{secrets.token_hex(6)}"


def seed(reset: bool, products: int) -> None:
    engine = create_engine(settings.DATABASE_URL_SYNC, future=True)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

    with SessionLocal() as db:
        if reset:
            # ordre inverse des FK
            db.execute(delete(Notification))
            db.execute(delete(CommunityLive))
            db.execute(delete(CommunityAccessRequest))
            db.execute(delete(CommunityMember))
            db.execute(delete(Product))
            db.execute(delete(Community))
            db.execute(delete(User))
            db.commit()
            print("✅ Reset done (all demo data deleted).")

        # --- Utilisateurs ---
        password_hash = hash_password(DEMO_PASSWORD)
        users = []
        for email, full_name, roles in USERS:
            u = User(id=uuid4(), email=email, full_name=full_name, password_hash=password_hash, roles=roles)
            db.add(u)
            users.append(u)
        db.flush()

        # --- Communautés + adhésions ---
        communities = []
        for name, visibility, category, owner_idx in COMMUNITIES:
            c = Community(
                id=uuid4(),
                owner_id=users[owner_idx].id,
                name=name,
                slug=slugify(name),
                visibility=visibility,
                category=category,
                description=f"Communauté {name} : analyses, directs et entraide.",
                members_count=0,
            )
            db.add(c)
            communities.append(c)
        db.flush()

        members_count = 0
        requests_count = 0
        for c in communities:
            for u in users[2:]:
                if u.id == c.owner_id:
                    continue
                roll = random.random()
                if c.visibility == "public" or roll < 0.4:
                    db.add(CommunityMember(community_id=c.id, user_id=u.id, status="active"))
                    c.members_count += 1
                    members_count += 1
                    if c.visibility == "private":
                        db.add(CommunityAccessRequest(community_id=c.id, user_id=u.id, status="approved"))
                        requests_count += 1
                else:
                    db.add(
                        CommunityAccessRequest(
                            community_id=c.id,
                            user_id=u.id,
                            status="pending",
                            note="Bonjour, je souhaite rejoindre la communauté.",
                        )
                    )
                    requests_count += 1
        db.flush()

        # --- Directs : un de chaque statut par communauté ---
        lives_count = 0
        now = now_utc()
        duration = timedelta(minutes=int(settings.LIVE_DEFAULT_DURATION_MIN))
        for c in communities:
            scheduled_at = now + timedelta(days=random.randint(1, 7), hours=random.randint(0, 10))
            past_start = now - timedelta(days=random.randint(2, 20))
            specs = [
                ("scheduled", scheduled_at, scheduled_at + duration, None),
                ("live", now - timedelta(minutes=15), now - timedelta(minutes=15) + duration, None),
                ("ended", past_start, past_start + duration, past_start + duration),
                ("cancelled", past_start + timedelta(days=1), past_start + timedelta(days=1) + duration, None),
            ]
            for status, starts_at, planned_end_at, ended_at in specs:
                db.add(
                    CommunityLive(
                        community_id=c.id,
                        created_by=c.owner_id,
                        title=f"{c.name} : session {status}",
                        description="Analyse des marchés en direct.",
                        status=status,
                        is_public=c.visibility == "public",
                        starts_at=starts_at,
                        planned_end_at=planned_end_at,
                        ended_at=ended_at,
                        room_name=room_name(c),
                    )
                )
                lives_count += 1

        # --- Produits (tous les statuts de modération) ---
        sellers = users[2:]
        admin = users[0]
        for i in range(products):
            category = random.choice(list(PRODUCT_TITLES))
            title = random.choice(PRODUCT_TITLES[category])
            status = PRODUCT_STATUSES[i % len(PRODUCT_STATUSES)]
            subscription = category == "signal"
            reviewed = status != "pending"

            db.add(
                Product(
                    seller_id=random.choice(sellers).id,
                    title=title,
                    short_description=f"{title} pour traders exigeants.",
                    long_description=f"{title} : contenu détaillé, mises à jour incluses.",
                    type=category,
                    category_key=category,
                    pricing_mode="subscription" if subscription else "one_time",
                    amount=Decimal(str(random.choice([0, 19, 29.9, 49, 99, 149]))).quantize(Decimal("0.01")),
                    interval=random.choice(["month", "year"]) if subscription else None,
                    status=status,
                    badge_eligible=status == "published" and random.random() < 0.4,
                    featured=status == "published" and random.random() < 0.25,
                    verified=status == "published",
                    moderation_reason="Contenu non conforme" if status in ("rejected", "suspended") else "",
                    reviewed_at=now if reviewed else None,
                    reviewed_by=admin.id if reviewed else None,
                )
            )

        db.commit()

        # petit résumé
        print("✅ Seed terminé.")
        print(f"   - Utilisateurs: {len(users)} (mot de passe: {DEMO_PASSWORD})")
        print(f"   - Communautés: {len(communities)}")
        print(f"   - Adhésions actives: {members_count}, demandes: {requests_count}")
        print(f"   - Directs: {lives_count}")
        print(f"   - Produits: {products}")


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--reset", action="store_true", help="Supprime les données demo avant de reseed")
    parser.add_argument("--products", type=int, default=24, help="Nombre de produits à générer")
    parser.add_argument("--seed", type=int, default=42, help="Seed RNG pour reproductibilité")
    args = parser.parse_args()

    random.seed(args.seed)

    seed(reset=args.reset, products=args.products)


if __name__ == "__main__":
    main()
