"""Collaborator contracts consumed by the realtime chat core.

The Mongo-backed stores in `blinders.services` satisfy these; tests plug in
in-memory fakes. All calls are blocking and are dispatched to the thread pool
by the controller.
"""

from __future__ import annotations

from typing import Any, Protocol

from blinders.schemas.messages import MessageCreate
from blinders.schemas.rooms import RoomRecord
from blinders.schemas.users import UserSnapshot


class TokenVerifier(Protocol):
    def verify_token(self, token: str) -> UserSnapshot:
        """Return the token's user or raise InvalidTokenError/TokenExpiredError."""
        ...


class UserStore(Protocol):
    def find_by_id(self, user_id: str) -> UserSnapshot | None: ...

    def touch_last_seen(self, user_id: str) -> None: ...


class RoomStore(Protocol):
    def find_by_id(self, room_id: str) -> RoomRecord | None: ...

    def touch_activity(self, room_id: str) -> None: ...


class MessageStore(Protocol):
    def persist(self, message: MessageCreate) -> str: ...


class Connection(Protocol):
    """A live client transport as seen by the controller."""

    @property
    def connection_id(self) -> str: ...

    async def send(self, frame: dict[str, Any]) -> None: ...


__all__ = ["Connection", "MessageStore", "RoomStore", "TokenVerifier", "UserStore"]
