from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from fullmargin.api.router import api_router
from fullmargin.api.ws import router as ws_router
from fullmargin.core.errors import AppHTTPException, error_payload
from fullmargin.core.logging import setup_logging
from fullmargin.core.rate_limit import rate_limiter
from fullmargin.core.realtime import ConnectionManager
from fullmargin.core.request_id import ensure_request_id, get_request_id, set_request_id
from fullmargin.core.settings import settings
from fullmargin.db.session import engine

"""
Application FastAPI (entrypoint).

Rôle (fonctionnel) :
- Assemble l’API FullMargin : routers HTTP (auth, communautés, directs, marketplace,
  notifications, système) + route WebSocket des events de directs.
- Observabilité : X-Request-Id propagé, une ligne de log JSON par requête (durée, statut),
  WARNING au-delà de SLOW_REQUEST_MS.
- Rate-limit optionnel sur /auth (429 au format standard).
- Toutes les erreurs sortent au format error_payload (jamais de stacktrace côté client).
- Cycle de vie : à l’arrêt, fermeture des WebSockets puis du pool DB.

Aucune règle métier ici (voir fullmargin.services).
"""

log = logging.getLogger("fullmargin")
http_log = logging.getLogger("fullmargin.http")

DEV_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]


class UTF8JSONResponse(JSONResponse):
    """Réponse JSON avec charset UTF-8 explicite (messages d’erreur en français)."""
    media_type = "application/json; charset=utf-8"


def _origins(value: str) -> list[str]:
    return [o.strip() for o in (value or "").split(",") if o.strip()]


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or get_request_id() or str(uuid.uuid4())


def _error_response(request: Request, status: int, code: str, message: str, details: Any = None) -> UTF8JSONResponse:
    return UTF8JSONResponse(
        status_code=status,
        content=error_payload(
            code=code,
            message=message,
            status=status,
            request_id=_request_id(request),
            details=details,
        ),
    )


def _from_detail(request: Request, exc: StarletteHTTPException, default_code: str, default_message: str):
    """AppHTTPException range {code, message, details} dans detail ; les autres HTTPException une string."""
    if isinstance(exc.detail, dict):
        return _error_response(
            request,
            exc.status_code,
            str(exc.detail.get("code", default_code)),
            str(exc.detail.get("message", default_message)),
            exc.detail.get("details"),
        )
    code = "NOT_FOUND" if exc.status_code == 404 else default_code
    return _error_response(request, exc.status_code, code, str(exc.detail or default_message))


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await app.state.ws_manager.close_all()
    await engine.dispose()


def _install_middlewares(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_origins(settings.CORS_ORIGINS) or DEV_ORIGINS,
        allow_credentials=False,  # API stateless (Bearer), pas de cookies
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-Id"],
    )

    # Déclaré avant l’observabilité : s’exécute à l’intérieur (le 429 porte donc X-Request-Id)
    @app.middleware("http")
    async def auth_rate_limit(request: Request, call_next):
        if request.method == "OPTIONS" or not rate_limiter.applies_to(request.url.path):
            return await call_next(request)
        try:
            rate_limiter.check(request)
        except AppHTTPException as exc:
            response = _from_detail(request, exc, "RATE_LIMITED", "Trop de requêtes")
            retry_after = (exc.detail.get("details") or {}).get("retry_after_s")
            if retry_after:
                response.headers["Retry-After"] = str(retry_after)
            return response
        return await call_next(request)

    @app.middleware("http")
    async def request_observability(request: Request, call_next):
        rid = ensure_request_id(request.headers.get("X-Request-Id"))
        request.state.request_id = rid

        start = time.perf_counter()
        response = None
        try:
            response = await call_next(request)
            response.headers["X-Request-Id"] = rid
            return response
        finally:
            duration_ms = int((time.perf_counter() - start) * 1000)
            level = logging.WARNING if duration_ms >= settings.SLOW_REQUEST_MS else logging.INFO
            http_log.log(
                level,
                "request",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": getattr(response, "status_code", None),
                    "duration_ms": duration_ms,
                    "client_ip": request.client.host if request.client else None,
                    "user_id": getattr(request.state, "user_id", None),
                },
            )
            set_request_id(None)


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppHTTPException)
    async def app_error(request: Request, exc: AppHTTPException):
        return _from_detail(request, exc, "HTTP_ERROR", "Erreur HTTP")

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        """404 / 405 natifs (routes inconnues, méthodes non supportées)."""
        return _from_detail(request, exc, "HTTP_ERROR", "Erreur HTTP")

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        return _error_response(
            request, 422, "VALIDATION_ERROR", "Requête invalide", jsonable_encoder(exc.errors())
        )

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        log.exception("Unhandled error: %s", exc)
        return _error_response(request, 500, "INTERNAL_ERROR", "Erreur interne du serveur")


def create_app() -> FastAPI:
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        debug=settings.DEBUG,
        lifespan=lifespan,
        default_response_class=UTF8JSONResponse,
    )
    # Partagé par les routes HTTP (diffusion) et la route WS (abonnements)
    app.state.ws_manager = ConnectionManager()

    _install_middlewares(app)
    _install_error_handlers(app)

    app.include_router(api_router)
    app.include_router(ws_router)
    return app


app = create_app()
