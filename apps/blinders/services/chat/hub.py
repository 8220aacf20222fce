"""Realtime hub for chat rooms.

In-memory coordinator for a single process deployment. It owns the only
mutable shared state of the realtime layer (session registry, presence) behind
one asyncio lock, and fans frames out to live connections.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, TypeVar

from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from blinders.schemas.events import dump_event
from blinders.schemas.rooms import RoomRecord
from blinders.schemas.users import UserSnapshot
from blinders.services.chat.access import authorize
from blinders.services.chat.errors import (
    AuthenticationFailed,
    ChatError,
    ChatErrorCode,
    ChatValidationError,
    LookupFailed,
)
from blinders.services.chat.ports import Connection
from blinders.services.chat.presence import PresenceTracker
from blinders.services.chat.registry import SessionRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")

_ROOM_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


class ConnectionState(str, Enum):
    unauthenticated = "unauthenticated"
    authenticated = "authenticated"
    closed = "closed"


@dataclass(eq=False)
class ConnectionSession:
    """Per-connection state; mutated only through the lifecycle controller."""

    connection: Connection
    user: UserSnapshot | None = None
    closed: bool = False

    @property
    def connection_id(self) -> str:
        return self.connection.connection_id

    @property
    def state(self) -> ConnectionState:
        if self.closed:
            return ConnectionState.closed
        if self.user is None:
            return ConnectionState.unauthenticated
        return ConnectionState.authenticated


def require_user(session: ConnectionSession) -> UserSnapshot:
    if session.user is None or session.closed:
        raise AuthenticationFailed("Not authenticated", code=ChatErrorCode.unauthenticated)
    return session.user


def validate_room_id(raw: Any) -> str:
    if not isinstance(raw, str) or not _ROOM_ID_RE.match(raw.strip()):
        raise ChatValidationError("Malformed room id", details={"roomId": raw})
    return raw.strip()


async def call_collaborator(fn: Callable[..., T], *args: Any) -> T:
    """Run a blocking collaborator call off the event loop.

    Chat errors raised by the collaborator pass through; anything else is
    reported as a lookup failure.
    """
    try:
        return await run_in_threadpool(fn, *args)
    except ChatError:
        raise
    except Exception as exc:
        logger.warning("Collaborator call %s failed: %s", getattr(fn, "__name__", fn), exc)
        raise LookupFailed() from exc


class ChatHub:
    """Tracks sessions, memberships and presence; broadcasts room events."""

    def __init__(
        self,
        registry: SessionRegistry[ConnectionSession] | None = None,
        presence: PresenceTracker | None = None,
    ) -> None:
        self.lock = asyncio.Lock()
        self.registry: SessionRegistry[ConnectionSession] = registry or SessionRegistry()
        self.presence = presence or PresenceTracker()
        self._sessions: dict[str, ConnectionSession] = {}
        self._room_locks: dict[str, asyncio.Lock] = {}

    # --------------- sessions (call under `lock`) ---------------
    def track(self, session: ConnectionSession) -> None:
        self._sessions[session.connection_id] = session

    def forget(self, session: ConnectionSession) -> None:
        if self._sessions.get(session.connection_id) is session:
            self._sessions.pop(session.connection_id, None)

    def session_count(self) -> int:
        return len(self._sessions)

    def room_lock(self, room_id: str) -> asyncio.Lock:
        lock = self._room_locks.get(room_id)
        if lock is None:
            lock = self._room_locks[room_id] = asyncio.Lock()
        return lock

    def room_recipients(
        self,
        room_id: str,
        *,
        exclude_user: str | None = None,
        room: RoomRecord | None = None,
    ) -> list[ConnectionSession]:
        """Snapshot the bound connections of a room's members.

        With `room` given, members whose current snapshot no longer passes the
        access guard are skipped (they stay joined but stop receiving).
        """
        targets: list[ConnectionSession] = []
        for user_id in self.registry.members_of(room_id):
            if user_id == exclude_user:
                continue
            session = self.registry.connection_for(user_id)
            if session is None or session.closed or session.user is None:
                continue
            if room is not None and not authorize(session.user, room).admitted:
                continue
            targets.append(session)
        return targets

    def bound_sessions(self) -> list[ConnectionSession]:
        sessions = []
        for user_id in self.registry.bound_users():
            session = self.registry.connection_for(user_id)
            if session is not None and not session.closed:
                sessions.append(session)
        return sessions

    # --------------- delivery (call without `lock`) ---------------
    async def deliver(self, targets: Iterable[ConnectionSession], event: BaseModel) -> int:
        """Send one event to every target in parallel; returns successful writes."""
        targets = list(targets)
        if not targets:
            return 0
        frame = dump_event(event)
        results = await asyncio.gather(*(self._send_one(s, frame) for s in targets))
        return sum(1 for ok in results if ok)

    async def reply(self, session: ConnectionSession, event: BaseModel) -> bool:
        return await self._send_one(session, dump_event(event))

    async def _send_one(self, session: ConnectionSession, frame: dict[str, Any]) -> bool:
        try:
            await session.connection.send(frame)
            return True
        except Exception as exc:
            # Cleanup is left to the peer's own disconnect.
            logger.warning(
                "Failed to send %s to connection %s: %s",
                frame.get("event"),
                session.connection_id,
                exc,
            )
            return False


__all__ = [
    "ChatHub",
    "ConnectionSession",
    "ConnectionState",
    "call_collaborator",
    "require_user",
    "validate_room_id",
]
