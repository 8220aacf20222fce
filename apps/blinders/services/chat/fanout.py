from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from fastapi.concurrency import run_in_threadpool

from blinders.core.settings import settings
from blinders.core.utils import utcnow
from blinders.schemas.events import NewMessageData, NewMessageEvent
from blinders.schemas.messages import MessageCreate, MessageType
from blinders.services.chat.access import authorize
from blinders.services.chat.errors import ChatError, ChatValidationError, PersistenceFailed
from blinders.services.chat.hub import (
    ChatHub,
    ConnectionSession,
    call_collaborator,
    require_user,
    validate_room_id,
)
from blinders.services.chat.ports import MessageStore, RoomStore

logger = logging.getLogger(__name__)


@dataclass
class MessageFanout:
    """Validate, persist, then broadcast a chat message to its room.

    Sends into the same room are serialized by the hub's per-room lock, so
    persistence order and delivery order match within a room. Nothing is
    broadcast unless the message was saved.
    """

    hub: ChatHub
    rooms: RoomStore
    messages: MessageStore
    persist_timeout: float = settings.persist_timeout_seconds
    max_length: int = settings.message_max_length
    clock: Callable[[], datetime] = utcnow

    async def send(
        self,
        session: ConnectionSession,
        room_id: str,
        content: str,
        message_type: MessageType = MessageType.text,
    ) -> NewMessageEvent:
        user = require_user(session)
        room_id = validate_room_id(room_id)
        content = self._validate_content(content)

        room = await call_collaborator(self.rooms.find_by_id, room_id)
        authorize(user, room).raise_for_denial()

        async with self.hub.room_lock(room_id):
            # Timestamps follow persistence order within a room.
            message = MessageCreate(
                room_id=room_id,
                sender_id=user.id,
                content=content,
                message_type=message_type,
                timestamp=self.clock(),
            )
            message_id = await self._persist(message)
            await self._touch_room(room_id)

            event = NewMessageEvent(
                data=NewMessageData(
                    id=message_id,
                    content=message.content,
                    sender=user.summary(),
                    room=room_id,
                    message_type=message.message_type,
                    timestamp=message.timestamp,
                    is_encrypted=False,
                )
            )
            async with self.hub.lock:
                targets = self.hub.room_recipients(room_id, room=room)
            delivered = await self.hub.deliver(targets, event)

        logger.info(
            "Message %s by %s in room %s delivered to %d/%d connections",
            message_id,
            user.username,
            room_id,
            delivered,
            len(targets),
        )
        return event

    def _validate_content(self, content: str) -> str:
        if not isinstance(content, str) or not content.strip():
            raise ChatValidationError("Message content must be non-empty")
        if len(content) > self.max_length:
            raise ChatValidationError(
                f"Message content exceeds {self.max_length} characters",
                details={"maxLength": self.max_length, "length": len(content)},
            )
        return content

    async def _persist(self, message: MessageCreate) -> str:
        try:
            message_id = await asyncio.wait_for(
                run_in_threadpool(self.messages.persist, message),
                timeout=self.persist_timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.error("Persisting message in room %s timed out", message.room_id)
            raise PersistenceFailed("Timed out saving message") from exc
        except ChatError:
            raise
        except Exception as exc:
            logger.error("Persisting message in room %s failed: %s", message.room_id, exc)
            raise PersistenceFailed() from exc
        return str(message_id)

    async def _touch_room(self, room_id: str) -> None:
        try:
            await run_in_threadpool(self.rooms.touch_activity, room_id)
        except Exception as exc:
            logger.warning("Failed to update last activity of room %s: %s", room_id, exc)


__all__ = ["MessageFanout"]
