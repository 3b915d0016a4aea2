import asyncio
from typing import Any, List

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

from app.logging_config import get_logger

logger = get_logger("broadcast")

NEW_MESSAGE = "new_message"
MODE_CHANGE = "mode_change"
SUGGESTIONS_UPDATE = "suggestions_update"


class OperatorBroadcaster:
    """
    Fan-out of dashboard events to connected operator sockets.

    Frames are `{"event": ..., "data": ...}`. A socket that fails to receive
    is dropped; publishers never see the error. Broadcasts are serialized so
    two events published in order reach every socket in that order.
    """

    def __init__(self):
        self._connections: List[WebSocket] = []
        self._lock = asyncio.Lock()

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections.append(websocket)
        logger.info(f"Operator connected ({self.connection_count} online)")

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self._connections:
            self._connections.remove(websocket)
            logger.info(f"Operator disconnected ({self.connection_count} online)")

    @staticmethod
    def frame(event: str, data: Any) -> dict:
        return {"event": event, "data": jsonable_encoder(data, by_alias=True)}

    async def send_to(self, websocket: WebSocket, event: str, data: Any) -> bool:
        try:
            await websocket.send_json(self.frame(event, data))
            return True
        except Exception as e:
            logger.warning(f"Dropping operator socket after send failure: {e}")
            self.disconnect(websocket)
            return False

    async def broadcast(self, event: str, data: Any) -> int:
        """Send to every connected operator; returns how many received it."""
        frame = self.frame(event, data)
        delivered = 0
        async with self._lock:
            for websocket in list(self._connections):
                try:
                    await websocket.send_json(frame)
                    delivered += 1
                except Exception as e:
                    logger.warning(f"Dropping operator socket after broadcast failure: {e}")
                    self.disconnect(websocket)
        logger.debug(f"Broadcast {event} to {delivered} operator(s)")
        return delivered

    async def close(self) -> None:
        for websocket in list(self._connections):
            try:
                await websocket.close()
            except Exception as e:
                logger.debug(f"Operator socket close failed: {e}")
        self._connections.clear()
