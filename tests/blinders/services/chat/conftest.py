from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Any

import pytest
from blinders.schemas.messages import MessageCreate
from blinders.schemas.rooms import RoomRecord
from blinders.schemas.users import UserSnapshot
from blinders.services.chat.errors import InvalidTokenError, TokenExpiredError
from blinders.services.chat.hub import ChatHub, ConnectionSession
from blinders.services.chat.lifecycle import ConnectionLifecycleController

_ids = itertools.count(1)


class FakeConnection:
    def __init__(self, connection_id: str, *, fail: bool = False) -> None:
        self.connection_id = connection_id
        self.fail = fail
        self.frames: list[dict[str, Any]] = []

    async def send(self, frame: dict[str, Any]) -> None:
        if self.fail:
            raise RuntimeError("socket is gone")
        self.frames.append(frame)

    def events(self, name: str | None = None) -> list[dict[str, Any]]:
        return [f for f in self.frames if name is None or f["event"] == name]

    def last(self, name: str) -> dict[str, Any]:
        matching = self.events(name)
        assert matching, f"no {name!r} frame in {[f['event'] for f in self.frames]}"
        return matching[-1]["data"]


class FakeUserStore:
    def __init__(self, users: list[UserSnapshot]) -> None:
        self.users = {u.id: u for u in users}
        self.seen: list[str] = []

    def find_by_id(self, user_id: str) -> UserSnapshot | None:
        return self.users.get(user_id)

    def touch_last_seen(self, user_id: str) -> None:
        self.seen.append(user_id)


class FakeRoomStore:
    def __init__(self, rooms: list[RoomRecord]) -> None:
        self.rooms = {r.id: r for r in rooms}
        self.touched: list[str] = []
        self.fail_lookups = False

    def find_by_id(self, room_id: str) -> RoomRecord | None:
        if self.fail_lookups:
            raise ConnectionError("mongo unavailable")
        return self.rooms.get(room_id)

    def touch_activity(self, room_id: str) -> None:
        self.touched.append(room_id)


class FakeMessageStore:
    def __init__(self) -> None:
        self.saved: list[MessageCreate] = []
        self.fail = False

    def persist(self, message: MessageCreate) -> str:
        if self.fail:
            raise RuntimeError("write concern failed")
        self.saved.append(message)
        return f"msg-{len(self.saved)}"


class FakeVerifier:
    """Accepts `token-<user id>`; `expired` and anything unknown are rejected."""

    def __init__(self, users: FakeUserStore) -> None:
        self.users = users

    def verify_token(self, token: str) -> UserSnapshot:
        if token == "expired":
            raise TokenExpiredError()
        user = self.users.find_by_id(token.removeprefix("token-"))
        if not token.startswith("token-") or user is None:
            raise InvalidTokenError()
        return user


USERS = [
    UserSnapshot(id="alice", username="alice", role="shield-circle"),
    UserSnapshot(id="bob", username="bob", role="president"),
    UserSnapshot(id="carol", username="carol", role="study-circle"),
    UserSnapshot(id="dave", username="dave", role="team-core"),
    UserSnapshot(id="eve", username="eve", role="team-core", banned=True),
    UserSnapshot(id="zed", username="zed", role="janitor"),
]

ROOMS = [
    RoomRecord(id="shield-ops", name="Shield Operations", role="shield-circle"),
    RoomRecord(id="study-hall", name="Study Hall", role="study-circle"),
    RoomRecord(id="core-hub", name="Core Team Hub", role="team-core"),
    RoomRecord(id="old-room", name="Archive", role="shield-circle", active=False),
]


@dataclass
class ChatHarness:
    controller: ConnectionLifecycleController
    hub: ChatHub
    users: FakeUserStore
    rooms: FakeRoomStore
    messages: FakeMessageStore
    connections: list[FakeConnection] = field(default_factory=list)

    async def connect(
        self, user_id: str | None = None, *, fail: bool = False
    ) -> tuple[ConnectionSession, FakeConnection]:
        conn = FakeConnection(f"conn-{next(_ids)}", fail=fail)
        self.connections.append(conn)
        session = await self.controller.open(conn)
        if user_id is not None:
            await self.emit(session, "authenticate", {"token": f"token-{user_id}"})
        return session, conn

    async def emit(self, session: ConnectionSession, event: str, data: Any = None) -> None:
        await self.controller.handle(session, {"event": event, "data": data})

    async def join(self, session: ConnectionSession, room_id: str) -> None:
        await self.emit(session, "join-room", {"roomId": room_id})

    async def say(self, session: ConnectionSession, room_id: str, content: str) -> None:
        await self.emit(session, "send-message", {"roomId": room_id, "content": content})


@pytest.fixture
def chat() -> ChatHarness:
    users = FakeUserStore(USERS)
    rooms = FakeRoomStore(ROOMS)
    messages = FakeMessageStore()
    hub = ChatHub()
    controller = ConnectionLifecycleController(
        hub=hub,
        verifier=FakeVerifier(users),
        users=users,
        rooms=rooms,
        messages=messages,
    )
    return ChatHarness(controller=controller, hub=hub, users=users, rooms=rooms, messages=messages)
