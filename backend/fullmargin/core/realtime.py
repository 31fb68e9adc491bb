from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Dict, Set

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

"""
Core Realtime (WebSocket Manager).

Rôle (fonctionnel) :
- Gère les connexions WebSocket actives, regroupées par “topic”
  (ex : "community:<uuid>" pour les events de directs d’une communauté).
- Primitives : connect / disconnect / send_json / publish (un topic) / close_all.

Notes :
- “Best-effort” : un échec d’envoi ne casse jamais le flux applicatif.
- Purge automatique des connexions mortes lors d’un publish.
- Verrou asyncio : protège l’accès concurrent aux pools.
"""

logger = logging.getLogger("fullmargin.realtime")


def community_topic(community_id: Any) -> str:
    return f"community:{community_id}"


class ConnectionManager:
    def __init__(self) -> None:
        self._topics: Dict[str, Set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    def count(self, topic: str | None = None) -> int:
        """Nombre de connexions (d’un topic, ou au total)."""
        if topic is not None:
            return len(self._topics.get(topic, ()))
        return sum(len(conns) for conns in self._topics.values())

    async def connect(self, ws: WebSocket, topic: str) -> None:
        await ws.accept()
        async with self._lock:
            self._topics[topic].add(ws)
        logger.info("WS connected to %s (%s on topic)", topic, self.count(topic))

    async def disconnect(self, ws: WebSocket, topic: str) -> None:
        async with self._lock:
            conns = self._topics.get(topic)
            if conns is not None:
                conns.discard(ws)
                if not conns:
                    self._topics.pop(topic, None)
        logger.info("WS disconnected from %s (%s on topic)", topic, self.count(topic))

    async def send_json(self, ws: WebSocket, payload: Dict[str, Any]) -> None:
        """Envoi vers une seule connexion (best-effort)."""
        try:
            await ws.send_json(jsonable_encoder(payload))
        except Exception:
            logger.debug("WS send failed", exc_info=True)

    async def publish(self, topic: str, payload: Dict[str, Any]) -> int:
        """Diffuse un payload sur un topic, purge les connexions mortes, renvoie le nombre d’envois réussis."""
        async with self._lock:
            conns = list(self._topics.get(topic, ()))

        if not conns:
            return 0

        # UUID / datetime -> JSON
        safe_payload = jsonable_encoder(payload)

        dead: list[WebSocket] = []
        for ws in conns:
            try:
                await ws.send_json(safe_payload)
            except Exception:
                dead.append(ws)

        if dead:
            async with self._lock:
                pool = self._topics.get(topic)
                if pool is not None:
                    for ws in dead:
                        pool.discard(ws)
            logger.info("WS purged %s dead conns on %s", len(dead), topic)

        return len(conns) - len(dead)

    async def close_all(self) -> None:
        async with self._lock:
            conns = [ws for pool in self._topics.values() for ws in pool]
            self._topics.clear()

        for ws in conns:
            try:
                await ws.close()
            except Exception:
                logger.debug("WS close failed", exc_info=True)
