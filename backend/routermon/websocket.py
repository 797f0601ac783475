"""Status push over WebSocket: clients subscribe to device status changes."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

logger = logging.getLogger(__name__)


def status_change_message(changes: list[dict[str, Any]]) -> dict[str, Any]:
    """Envelope for a batch of device status transitions."""
    return {
        "type": "device_status_change",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "changes": changes,
    }


class ConnectionManager:
    """Tracks subscribed clients and fans messages out to them."""

    def __init__(self) -> None:
        self._clients: set[WebSocket] = set()
        self._lock = asyncio.Lock()

    @property
    def connection_count(self) -> int:
        return len(self._clients)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._clients.add(websocket)
        logger.debug("WebSocket client connected (%d total)", len(self._clients))

    async def disconnect(self, websocket: WebSocket) -> None:
        async with self._lock:
            self._clients.discard(websocket)

    async def send(self, websocket: WebSocket, message: dict[str, Any]) -> bool:
        """Send to one client; a failed send drops it. Returns whether it was delivered."""
        try:
            await websocket.send_json(message)
        except Exception as e:
            logger.debug("Dropping WebSocket client: %s", e)
            await self.disconnect(websocket)
            return False
        return True

    async def broadcast(self, message: dict[str, Any]) -> int:
        """Send to every client. Returns how many received it."""
        async with self._lock:
            clients = list(self._clients)
        if not clients:
            return 0

        delivered = await asyncio.gather(*(self.send(ws, message) for ws in clients))
        return sum(delivered)

    async def close_all(self) -> None:
        """Close every client connection (shutdown)."""
        async with self._lock:
            clients = list(self._clients)
            self._clients.clear()
        for websocket in clients:
            if websocket.client_state == WebSocketState.CONNECTED:
                try:
                    await websocket.close(code=1001)
                except Exception as e:
                    logger.debug("Error closing WebSocket client: %s", e)


async def websocket_endpoint(websocket: WebSocket) -> None:
    """Subscribe a client to status pushes; answers ``ping`` with ``pong``."""
    manager: ConnectionManager = websocket.app.state.ws_manager
    await manager.connect(websocket)
    await manager.send(websocket, {"type": "connected", "message": "Connected to Routermon"})

    try:
        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                continue
            if isinstance(message, dict) and message.get("type") == "ping":
                await manager.send(websocket, {"type": "pong"})
    except WebSocketDisconnect:
        pass
    finally:
        await manager.disconnect(websocket)
