from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from blinders.api.dependencies import require_admin
from blinders.core.dependencies import get_chat_controller
from blinders.schemas.users import UserSnapshot
from blinders.services.chat.lifecycle import ConnectionLifecycleController
from blinders.services.chat.transport import WebSocketConnection

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])


def _decode_frame(message: dict[str, Any]) -> Any:
    """JSON payload of a text or binary frame; None when it cannot be decoded."""
    raw = message.get("text")
    if raw is None:
        data = message.get("bytes")
        if data is None:
            return None
        try:
            raw = data.decode("utf-8")
        except UnicodeDecodeError:
            return None
    try:
        return json.loads(raw)
    except ValueError:
        return None


@router.websocket("/ws")
async def chat_ws(
    websocket: WebSocket,
    controller: ConnectionLifecycleController = Depends(get_chat_controller),
) -> None:
    await websocket.accept()
    session = await controller.open(WebSocketConnection(websocket))
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            await controller.handle(session, _decode_frame(message))
    except WebSocketDisconnect:
        return
    finally:
        await controller.close(session)


@router.post("/api/chat/users/{user_id}/refresh")
async def refresh_user(
    user_id: str,
    _admin: UserSnapshot = Depends(require_admin),
    controller: ConnectionLifecycleController = Depends(get_chat_controller),
) -> dict[str, bool]:
    """Re-read a user's role/status and apply it to their live connection."""
    refreshed = await controller.refresh_user_by_id(user_id)
    logger.info("Live session refresh for %s: %s", user_id, refreshed)
    return {"refreshed": refreshed}
