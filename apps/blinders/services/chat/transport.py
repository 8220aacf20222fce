from __future__ import annotations

import uuid
from typing import Any

from fastapi import WebSocket
from starlette.websockets import WebSocketState


class ConnectionClosedError(RuntimeError):
    pass


class WebSocketConnection:
    """Adapts a FastAPI WebSocket to the controller's connection contract."""

    def __init__(self, websocket: WebSocket, connection_id: str | None = None) -> None:
        self._websocket = websocket
        self._connection_id = connection_id or uuid.uuid4().hex

    @property
    def connection_id(self) -> str:
        return self._connection_id

    async def send(self, frame: dict[str, Any]) -> None:
        if self._websocket.application_state != WebSocketState.CONNECTED:
            raise ConnectionClosedError(f"connection {self._connection_id} is not open")
        await self._websocket.send_json(frame)


__all__ = ["ConnectionClosedError", "WebSocketConnection"]
