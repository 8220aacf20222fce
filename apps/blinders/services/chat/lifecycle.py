"""Connection lifecycle controller for the realtime chat protocol.

Drives each connection through ``unauthenticated -> authenticated -> closed``
and is the only writer of the hub's shared state. Collaborator calls (token
verification, room lookups, persistence) are awaited without holding the hub
lock; state changes are applied under it and the resulting events delivered
after it is released.

Per-request failures never close the connection: they are converted into an
``auth-error`` (for ``authenticate``) or ``error`` event for the caller only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, ValidationError

from blinders.schemas.events import (
    AuthenticatedData,
    AuthenticatedEvent,
    AuthErrorData,
    AuthErrorEvent,
    ErrorData,
    ErrorEvent,
    InboundFrame,
    JoinedRoomData,
    JoinedRoomEvent,
    LeftRoomData,
    LeftRoomEvent,
    NotificationData,
    NotificationEvent,
    SendMessagePayload,
    TypingPayload,
    UserDisconnectedEvent,
    UserJoinedData,
    UserJoinedEvent,
    UserLeftData,
    UserLeftEvent,
    UserTypingData,
    UserTypingEvent,
)
from blinders.schemas.users import UserSnapshot, UserSummary
from blinders.services.chat.access import authorize
from blinders.services.chat.errors import (
    AuthenticationFailed,
    ChatError,
    ChatErrorCode,
    ChatValidationError,
    InvalidTokenError,
)
from blinders.services.chat.fanout import MessageFanout
from blinders.services.chat.hub import (
    ChatHub,
    ConnectionSession,
    call_collaborator,
    require_user,
    validate_room_id,
)
from blinders.services.chat.ports import (
    Connection,
    MessageStore,
    RoomStore,
    TokenVerifier,
    UserStore,
)
from blinders.services.chat.roles import room_icon

logger = logging.getLogger(__name__)

Handler = Callable[[ConnectionSession, Any], Awaitable[None]]

# (targets, event) pairs computed under the hub lock, delivered after it.
_Outbox = list[tuple[list[ConnectionSession], BaseModel]]


def _room_id_from(data: Any) -> str:
    if isinstance(data, dict):
        data = data.get("roomId", data.get("room_id"))
    return validate_room_id(data)


def _token_from(data: Any) -> str:
    if isinstance(data, dict):
        data = data.get("token")
    if not isinstance(data, str) or not data.strip():
        raise InvalidTokenError("Token required")
    return data.strip()


def _validation_details(exc: ValidationError) -> list[dict[str, Any]]:
    return [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in exc.errors()]


@dataclass
class ConnectionLifecycleController:
    hub: ChatHub
    verifier: TokenVerifier
    users: UserStore
    rooms: RoomStore
    messages: MessageStore
    fanout: MessageFanout | None = None
    _handlers: dict[str, Handler] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.fanout is None:
            self.fanout = MessageFanout(hub=self.hub, rooms=self.rooms, messages=self.messages)
        self._handlers = {
            "authenticate": self._on_authenticate,
            "join-room": self._on_join,
            "leave-room": self._on_leave,
            "send-message": self._on_send,
            "typing": self._on_typing,
        }

    # ------------- transport entry points -------------
    async def open(self, connection: Connection) -> ConnectionSession:
        session = ConnectionSession(connection=connection)
        async with self.hub.lock:
            self.hub.track(session)
        logger.info("Connection opened: %s", session.connection_id)
        return session

    async def handle(self, session: ConnectionSession, raw: Any) -> None:
        """Dispatch one inbound frame; every failure becomes an outbound event."""
        if session.closed:
            return
        try:
            frame = InboundFrame.model_validate(raw)
        except ValidationError as exc:
            await self._reply_error(
                session,
                ChatValidationError("Malformed frame", details=_validation_details(exc)),
            )
            return

        handler = self._handlers.get(frame.event)
        if handler is None:
            await self._reply_error(
                session, ChatValidationError(f"Unknown event {frame.event}")
            )
            return

        as_auth = frame.event == "authenticate"
        try:
            await handler(session, frame.data)
        except ChatError as exc:
            await self._reply_error(session, exc, as_auth=as_auth)
        except ValidationError as exc:
            await self._reply_error(
                session,
                ChatValidationError(
                    f"Invalid {frame.event} payload", details=_validation_details(exc)
                ),
                as_auth=as_auth,
            )
        except Exception:
            logger.exception(
                "Unhandled error for %s on connection %s", frame.event, session.connection_id
            )
            await self.hub.reply(
                session,
                ErrorEvent(data=ErrorData(error="Internal server error", code="internal_error")),
            )

    # ------------- operations -------------
    async def authenticate(self, session: ConnectionSession, token: str) -> UserSnapshot:
        try:
            user = await call_collaborator(self.verifier.verify_token, token)
        except AuthenticationFailed as exc:
            logger.info("Authentication failed on %s: %s", session.connection_id, exc.code)
            raise
        if not user.admissible:
            logger.info("Rejected banned/inactive user %s", user.id)
            raise AuthenticationFailed(
                "Authentication failed", code=ChatErrorCode.banned_or_inactive
            )

        outbox: _Outbox = []
        superseded: ConnectionSession | None = None
        async with self.hub.lock:
            if session.closed:
                return user
            if session.user is not None and session.user.id != user.id:
                # Same socket, different account: drop the old identity first.
                outbox.extend(self._teardown_locked(session, UserLeftEvent))
            existing = self.hub.registry.connection_for(user.id)
            if existing is not None and existing is not session:
                outbox.extend(self._teardown_locked(existing, UserLeftEvent))
                superseded = existing
            self.hub.registry.bind(user.id, session)
            session.user = user

        for targets, event in outbox:
            await self.hub.deliver(targets, event)
        if superseded is not None:
            logger.info(
                "User %s moved from connection %s to %s",
                user.username,
                superseded.connection_id,
                session.connection_id,
            )
            await self.hub.reply(
                superseded,
                ErrorEvent(
                    data=ErrorData(
                        error="Session replaced by a newer connection",
                        code=ChatErrorCode.session_replaced.value,
                    )
                ),
            )

        await self.hub.reply(session, AuthenticatedEvent(data=AuthenticatedData(user=user.summary())))
        await self._touch_last_seen(user.id)
        logger.info("User authenticated: %s (%s)", user.username, session.connection_id)
        return user

    async def join(self, session: ConnectionSession, room_id: str) -> list[UserSummary]:
        user = require_user(session)
        room_id = validate_room_id(room_id)
        room = await call_collaborator(self.rooms.find_by_id, room_id)
        authorize(user, room).raise_for_denial()

        async with self.hub.lock:
            user = require_user(session)
            if not self.hub.registry.is_bound(user.id, session):
                raise AuthenticationFailed("Not authenticated", code=ChatErrorCode.unauthenticated)
            newly_joined = self.hub.registry.record_join(user.id, room_id)
            online = self.hub.presence.add(room_id, user.summary())
            targets = (
                self.hub.room_recipients(room_id, exclude_user=user.id) if newly_joined else []
            )

        await self.hub.reply(
            session,
            JoinedRoomEvent(
                data=JoinedRoomData(
                    room_id=room_id,
                    room_name=room.name,
                    room_icon=room_icon(room.role),
                    online_users=online,
                )
            ),
        )
        await self.hub.deliver(
            targets,
            UserJoinedEvent(
                data=UserJoinedData(
                    user_id=user.id, username=user.username, role=user.role, room_id=room_id
                )
            ),
        )
        if newly_joined:
            logger.info("%s joined room %s (%s)", user.username, room.name, room_id)
        return online

    async def leave(self, session: ConnectionSession, room_id: str) -> bool:
        user = require_user(session)
        room_id = validate_room_id(room_id)
        async with self.hub.lock:
            if not self.hub.registry.record_leave(user.id, room_id):
                return False
            self.hub.presence.remove(room_id, user.id)
            targets = self.hub.room_recipients(room_id, exclude_user=user.id)

        await self.hub.reply(session, LeftRoomEvent(data=LeftRoomData(room_id=room_id)))
        await self.hub.deliver(
            targets,
            UserLeftEvent(data=UserLeftData(user_id=user.id, username=user.username, room_id=room_id)),
        )
        logger.info("%s left room %s", user.username, room_id)
        return True

    async def set_typing(self, session: ConnectionSession, room_id: str, is_typing: bool) -> None:
        user = require_user(session)
        room_id = validate_room_id(room_id)
        async with self.hub.lock:
            if not self.hub.registry.is_member(user.id, room_id):
                raise ChatError("Join the room first", code=ChatErrorCode.not_joined)
            self.hub.presence.set_typing(room_id, user.id, is_typing)
            targets = self.hub.room_recipients(room_id, exclude_user=user.id)

        await self.hub.deliver(
            targets,
            UserTypingEvent(
                data=UserTypingData(
                    user_id=user.id,
                    username=user.username,
                    is_typing=is_typing,
                    room_id=room_id,
                )
            ),
        )

    async def close(self, session: ConnectionSession) -> None:
        """Tear down all state for a connection; safe to call more than once."""
        async with self.hub.lock:
            if session.closed:
                return
            username = session.user.username if session.user else None
            outbox = self._teardown_locked(session, UserDisconnectedEvent)
            session.closed = True
            self.hub.forget(session)

        for targets, event in outbox:
            await self.hub.deliver(targets, event)
        logger.info(
            "Connection closed: %s%s",
            session.connection_id,
            f" ({username})" if username else "",
        )

    # ------------- administrative hooks -------------
    async def refresh_user(self, snapshot: UserSnapshot) -> bool:
        """Swap in a fresh snapshot for a bound user.

        Banned or inactive users are unbound and their rooms torn down; the
        connection stays open but unauthenticated. Role changes replace the
        snapshot and its presence entries: joined rooms are kept and the
        send-time access check decides delivery from then on.
        """
        async with self.hub.lock:
            session = self.hub.registry.connection_for(snapshot.id)
            if session is None:
                return False
            demoted = not snapshot.admissible
            if demoted:
                outbox = self._teardown_locked(session, UserLeftEvent)
            else:
                outbox = []
                session.user = snapshot
                for room_id in self.hub.registry.rooms_for(snapshot.id):
                    self.hub.presence.add(room_id, snapshot.summary())

        for targets, event in outbox:
            await self.hub.deliver(targets, event)
        if demoted:
            logger.info("Unbound user %s after status change", snapshot.id)
            await self.hub.reply(
                session,
                AuthErrorEvent(
                    data=AuthErrorData(
                        error="Account is banned or inactive",
                        code=ChatErrorCode.banned_or_inactive.value,
                    )
                ),
            )
        return True

    async def refresh_user_by_id(self, user_id: str) -> bool:
        snapshot = await call_collaborator(self.users.find_by_id, user_id)
        if snapshot is None:
            return False
        return await self.refresh_user(snapshot)

    async def online_users(self, room_id: str) -> list[UserSummary]:
        async with self.hub.lock:
            return self.hub.presence.online(room_id)

    async def notify_user(self, user_id: str, notification: NotificationData) -> bool:
        async with self.hub.lock:
            session = self.hub.registry.connection_for(user_id)
        if session is None:
            return False
        return await self.hub.reply(session, NotificationEvent(data=notification))

    async def broadcast_all(self, event: BaseModel) -> int:
        async with self.hub.lock:
            targets = self.hub.bound_sessions()
        return await self.hub.deliver(targets, event)

    # ------------- internals -------------
    def _teardown_locked(
        self,
        session: ConnectionSession,
        notice: type[UserLeftEvent] | type[UserDisconnectedEvent],
    ) -> _Outbox:
        """Remove a session's user from every room and unbind it. Hub lock held."""
        user = session.user
        if user is None:
            return []
        outbox: _Outbox = []
        if self.hub.registry.is_bound(user.id, session):
            for room_id in sorted(self.hub.registry.rooms_for(user.id)):
                self.hub.registry.record_leave(user.id, room_id)
                self.hub.presence.remove(room_id, user.id)
                targets = self.hub.room_recipients(room_id, exclude_user=user.id)
                data = UserLeftData(user_id=user.id, username=user.username, room_id=room_id)
                outbox.append((targets, notice(data=data)))
            self.hub.registry.unbind(user.id, session)
        session.user = None
        return outbox

    async def _reply_error(
        self, session: ConnectionSession, exc: ChatError, *, as_auth: bool = False
    ) -> None:
        if as_auth:
            event: BaseModel = AuthErrorEvent(
                data=AuthErrorData(error=exc.message, code=exc.code, retryable=exc.retryable)
            )
        else:
            event = ErrorEvent(
                data=ErrorData(error=exc.message, code=exc.code, retryable=exc.retryable)
            )
        await self.hub.reply(session, event)

    async def _touch_last_seen(self, user_id: str) -> None:
        try:
            await run_in_threadpool(self.users.touch_last_seen, user_id)
        except Exception as exc:
            logger.warning("Failed to update last seen for %s: %s", user_id, exc)

    # ------------- inbound handlers -------------
    async def _on_authenticate(self, session: ConnectionSession, data: Any) -> None:
        await self.authenticate(session, _token_from(data))

    async def _on_join(self, session: ConnectionSession, data: Any) -> None:
        await self.join(session, _room_id_from(data))

    async def _on_leave(self, session: ConnectionSession, data: Any) -> None:
        await self.leave(session, _room_id_from(data))

    async def _on_send(self, session: ConnectionSession, data: Any) -> None:
        payload = SendMessagePayload.model_validate(data)
        await self.fanout.send(session, payload.room_id, payload.content, payload.message_type)

    async def _on_typing(self, session: ConnectionSession, data: Any) -> None:
        payload = TypingPayload.model_validate(data)
        await self.set_typing(session, payload.room_id, payload.is_typing)


__all__ = ["ConnectionLifecycleController"]
