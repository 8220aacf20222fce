"""Wire schema for the realtime chat protocol.

Every frame on the socket is a JSON object ``{"event": <name>, "data": <payload>}``.
Outbound frames form a closed tagged union discriminated by ``event``; payload
keys are camelCase on the wire.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from blinders.schemas.messages import MessageType
from blinders.schemas.users import UserSummary


class _Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --------------- inbound ---------------
class InboundFrame(BaseModel):
    event: str = Field(min_length=1)
    data: Any = None


class SendMessagePayload(_Payload):
    room_id: str
    content: str
    message_type: MessageType = MessageType.text


class TypingPayload(_Payload):
    room_id: str
    is_typing: bool


# --------------- outbound payloads ---------------
class AuthenticatedData(_Payload):
    user: UserSummary


class ErrorData(_Payload):
    error: str
    code: str | None = None
    retryable: bool = False


class AuthErrorData(_Payload):
    error: str
    code: str | None = None
    retryable: bool = False


class JoinedRoomData(_Payload):
    room_id: str
    room_name: str
    room_icon: str
    online_users: list[UserSummary] = Field(default_factory=list)


class LeftRoomData(_Payload):
    room_id: str


class UserJoinedData(_Payload):
    user_id: str
    username: str
    role: str
    room_id: str


class UserLeftData(_Payload):
    user_id: str
    username: str
    room_id: str


class NewMessageData(_Payload):
    id: str
    content: str
    sender: UserSummary
    room: str
    message_type: MessageType
    timestamp: datetime
    is_encrypted: bool = False


class UserTypingData(_Payload):
    user_id: str
    username: str
    is_typing: bool
    room_id: str


class NotificationData(_Payload):
    title: str | None = None
    body: str
    kind: str = "info"
    payload: dict[str, Any] = Field(default_factory=dict)


# --------------- outbound events ---------------
class AuthenticatedEvent(BaseModel):
    event: Literal["authenticated"] = "authenticated"
    data: AuthenticatedData


class AuthErrorEvent(BaseModel):
    event: Literal["auth-error"] = "auth-error"
    data: AuthErrorData


class JoinedRoomEvent(BaseModel):
    event: Literal["joined-room"] = "joined-room"
    data: JoinedRoomData


class LeftRoomEvent(BaseModel):
    event: Literal["left-room"] = "left-room"
    data: LeftRoomData


class UserJoinedEvent(BaseModel):
    event: Literal["user-joined"] = "user-joined"
    data: UserJoinedData


class UserLeftEvent(BaseModel):
    event: Literal["user-left"] = "user-left"
    data: UserLeftData


class UserDisconnectedEvent(BaseModel):
    event: Literal["user-disconnected"] = "user-disconnected"
    data: UserLeftData


class NewMessageEvent(BaseModel):
    event: Literal["new-message"] = "new-message"
    data: NewMessageData


class UserTypingEvent(BaseModel):
    event: Literal["user-typing"] = "user-typing"
    data: UserTypingData


class NotificationEvent(BaseModel):
    event: Literal["notification"] = "notification"
    data: NotificationData


class ErrorEvent(BaseModel):
    event: Literal["error"] = "error"
    data: ErrorData


OutboundEvent = Annotated[
    Union[
        AuthenticatedEvent,
        AuthErrorEvent,
        JoinedRoomEvent,
        LeftRoomEvent,
        UserJoinedEvent,
        UserLeftEvent,
        UserDisconnectedEvent,
        NewMessageEvent,
        UserTypingEvent,
        NotificationEvent,
        ErrorEvent,
    ],
    Field(discriminator="event"),
]

outbound_event_adapter: TypeAdapter[OutboundEvent] = TypeAdapter(OutboundEvent)


def dump_event(event: BaseModel) -> dict[str, Any]:
    """Serialize an outbound event to its JSON-ready wire shape."""
    return event.model_dump(mode="json", by_alias=True)


def parse_event(frame: dict[str, Any]) -> OutboundEvent:
    """Parse a wire frame back into its typed event (clients and tests)."""
    return outbound_event_adapter.validate_python(frame)


__all__ = [
    "AuthErrorData",
    "AuthErrorEvent",
    "AuthenticatedData",
    "AuthenticatedEvent",
    "ErrorData",
    "ErrorEvent",
    "InboundFrame",
    "JoinedRoomData",
    "JoinedRoomEvent",
    "LeftRoomData",
    "LeftRoomEvent",
    "NewMessageData",
    "NewMessageEvent",
    "NotificationData",
    "NotificationEvent",
    "OutboundEvent",
    "SendMessagePayload",
    "TypingPayload",
    "UserDisconnectedEvent",
    "UserJoinedData",
    "UserJoinedEvent",
    "UserLeftData",
    "UserLeftEvent",
    "UserTypingData",
    "UserTypingEvent",
    "dump_event",
    "outbound_event_adapter",
    "parse_event",
]
