"""Real-time order notifications for connected admin dashboards."""

from typing import Any, Dict, Set

import structlog
from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

logger = structlog.get_logger(__name__)

NEW_ORDER = "new-order"
STATUS_UPDATED = "status-updated"


class NotificationHub:
    """Fan-out of order events to every open admin socket.

    Delivery is best effort: nothing is queued for sockets that are not
    connected when an event is published.
    """

    def __init__(self) -> None:
        self.subscribers: Set[WebSocket] = set()

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.subscribers.add(websocket)
        await websocket.send_json({"event": "connected"})
        logger.info("Admin subscriber connected", subscribers=len(self.subscribers))

    def disconnect(self, websocket: WebSocket) -> None:
        self.subscribers.discard(websocket)
        logger.info("Admin subscriber disconnected", subscribers=len(self.subscribers))

    async def publish(self, event: str, payload: Dict[str, Any]) -> None:
        message = {"event": event, "data": jsonable_encoder(payload)}
        for websocket in list(self.subscribers):
            try:
                await websocket.send_json(message)
            except Exception as exc:
                logger.warning("Dropping admin subscriber", event_name=event, error=str(exc))
                self.subscribers.discard(websocket)

    async def close(self) -> None:
        for websocket in list(self.subscribers):
            try:
                await websocket.close()
            except Exception as exc:
                logger.debug("Admin subscriber already gone", error=str(exc))
        self.subscribers.clear()
