import uuid

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from fullmargin.core.clock import now_iso
from fullmargin.core.realtime import community_topic

"""
API Realtime (WebSocket).

Rôle (fonctionnel) :
- Canal WebSocket par communauté : le front d’une page communauté reçoit les events
  de ses directs (LIVE_SCHEDULED, LIVE_STARTED, LIVE_ENDED…).
- Le WS est best-effort : si le manager WS n’est pas initialisé, la connexion est refusée.

Notes :
- Le client peut envoyer des messages (optionnel). Exemple : "PING" → réponse "PONG".
- Les events “métier” sont publiés par les routes de /communaute/lives.
"""

router = APIRouter(tags=["realtime"])


@router.websocket("/ws/communities/{community_id}")
async def ws_community(ws: WebSocket, community_id: uuid.UUID):
    # Manager initialisé au démarrage (app.state.ws_manager)
    manager = getattr(ws.app.state, "ws_manager", None)
    if manager is None:
        await ws.close(code=1011)
        return

    topic = community_topic(community_id)
    await manager.connect(ws, topic)

    # Ack de connexion (utile côté UI pour confirmer l’abonnement)
    await ws.send_json({"type": "WS_CONNECTED", "topic": topic, "ts": now_iso()})

    try:
        while True:
            msg = await ws.receive_text()
            if msg.strip().upper() == "PING":
                await ws.send_json({"type": "PONG", "ts": now_iso()})
    except WebSocketDisconnect:
        await manager.disconnect(ws, topic)
    except Exception:
        # On nettoie la connexion même en cas d’erreur inattendue
        await manager.disconnect(ws, topic)
