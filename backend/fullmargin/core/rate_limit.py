from __future__ import annotations

import time
from dataclasses import dataclass
from threading import Lock
from typing import Dict, Tuple

from fastapi import Request

from fullmargin.core.errors import AppHTTPException
from fullmargin.core.settings import settings

"""
Core Rate Limit.

Rôle (fonctionnel) :
- Freine le brute-force sur l’authentification (login / inscription).
- Compteur “in-memory” par IP + route (method + path), fenêtre fixe de 60 secondes.
- Une seule instance de process : en multi-workers chaque worker a ses propres compteurs.

Activation via settings :
- RATE_LIMIT_ENABLED : active/désactive le rate limiting.
- RATE_LIMIT_RPM : limite de requêtes par minute (par IP + route).
"""

# Préfixes de chemins protégés
LIMITED_PREFIXES: Tuple[str, ...] = ("/auth",)

WINDOW_SECONDS = 60.0


@dataclass
class _Bucket:
    window_start: float
    count: int


class InMemoryRateLimiter:
    """Fenêtre fixe par clé (IP, "METHOD /path") ; lève 429 au-delà de la limite."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._buckets: Dict[Tuple[str, str], _Bucket] = {}

    def _client_ip(self, request: Request) -> str:
        # Derrière un reverse proxy : première IP de X-Forwarded-For
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip() or "unknown"
        return request.client.host if request.client else "unknown"

    def applies_to(self, path: str) -> bool:
        return path.startswith(LIMITED_PREFIXES)

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()

    def check(self, request: Request) -> None:
        if not settings.RATE_LIMIT_ENABLED:
            return

        limit = int(settings.RATE_LIMIT_RPM or 0)
        if limit <= 0:
            return

        key = (self._client_ip(request), f"{request.method} {request.url.path}")
        now = time.monotonic()

        with self._lock:
            bucket = self._buckets.get(key)

            if bucket is None or (now - bucket.window_start) >= WINDOW_SECONDS:
                self._buckets[key] = _Bucket(window_start=now, count=1)
                return

            bucket.count += 1

            if bucket.count > limit:
                retry_after = max(1, int(WINDOW_SECONDS - (now - bucket.window_start)))
                raise AppHTTPException(
                    429,
                    "RATE_LIMITED",
                    f"Trop de requêtes (limite: {limit}/min).",
                    details={"limit_rpm": limit, "retry_after_s": retry_after},
                )


rate_limiter = InMemoryRateLimiter()
