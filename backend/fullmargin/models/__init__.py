"""
fullmargin.models

Modèles ORM (SQLAlchemy) : entités persistées en base.
L’import de ce package enregistre toutes les tables dans Base.metadata (Alembic, tests).
"""

from fullmargin.models.user import User
from fullmargin.models.community import Community
from fullmargin.models.community_member import CommunityMember
from fullmargin.models.community_access_request import CommunityAccessRequest
from fullmargin.models.community_live import CommunityLive
from fullmargin.models.product import Product
from fullmargin.models.notification import Notification

__all__ = [
    "User",
    "Community",
    "CommunityMember",
    "CommunityAccessRequest",
    "CommunityLive",
    "Product",
    "Notification",
]
