from fastapi import APIRouter

from .health import router as health_router
from .status import router as status_router

from fullmargin.api.auth import router as auth_router
from fullmargin.api.communities import router as communities_router
from fullmargin.api.memberships import router as memberships_router
from fullmargin.api.requests import router as requests_router
from fullmargin.api.lives import router as lives_router
from fullmargin.api.products import router as products_router, public_router as public_products_router
from fullmargin.api.admin_products import router as admin_products_router
from fullmargin.api.notifications import router as notifications_router

"""
Router principal de l’API.

Rôle (fonctionnel) :
- Regroupe les routeurs par domaine (auth, communautés, directs, marketplace, notifications, système).
- Sert de point d’entrée unique pour l’inclusion dans l’application FastAPI.
"""

api_router = APIRouter()

api_router.include_router(health_router, tags=["health"])
api_router.include_router(status_router)
api_router.include_router(auth_router)
api_router.include_router(communities_router)
api_router.include_router(memberships_router)
api_router.include_router(requests_router)
api_router.include_router(lives_router)
api_router.include_router(products_router)
api_router.include_router(public_products_router)
api_router.include_router(admin_products_router)
api_router.include_router(notifications_router)
