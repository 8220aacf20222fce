from datetime import datetime, timezone

import pytest
from blinders.schemas.events import (
    ErrorData,
    ErrorEvent,
    InboundFrame,
    NewMessageData,
    NewMessageEvent,
    SendMessagePayload,
    UserDisconnectedEvent,
    dump_event,
    parse_event,
)
from blinders.schemas.messages import MessageType
from blinders.schemas.users import UserSummary
from pydantic import ValidationError


def test_new_message_wire_shape_is_camel_case():
    event = NewMessageEvent(
        data=NewMessageData(
            id="m1",
            content="hello",
            sender=UserSummary(id="u1", username="alice", role="shield-circle"),
            room="lobby",
            message_type=MessageType.text,
            timestamp=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
        )
    )
    frame = dump_event(event)
    assert frame["event"] == "new-message"
    assert set(frame["data"]) == {
        "id",
        "content",
        "sender",
        "room",
        "messageType",
        "timestamp",
        "isEncrypted",
    }
    assert frame["data"]["isEncrypted"] is False
    assert frame["data"]["timestamp"].startswith("2024-05-01T12:00:00")


def test_parse_event_uses_the_event_tag():
    frame = {
        "event": "user-disconnected",
        "data": {"userId": "u1", "username": "alice", "roomId": "lobby"},
    }
    parsed = parse_event(frame)
    assert isinstance(parsed, UserDisconnectedEvent)
    assert parsed.data.room_id == "lobby"

    assert isinstance(parse_event(dump_event(ErrorEvent(data=ErrorData(error="x")))), ErrorEvent)
    with pytest.raises(ValidationError):
        parse_event({"event": "teleport", "data": {}})


def test_inbound_payloads_accept_camel_case():
    payload = SendMessagePayload.model_validate({"roomId": "lobby", "content": "hi"})
    assert payload.room_id == "lobby"
    assert payload.message_type is MessageType.text

    with pytest.raises(ValidationError):
        InboundFrame.model_validate({"event": "", "data": None})
