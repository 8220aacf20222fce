from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from blinders.schemas.users import UserSummary


class MessageType(str, Enum):
    text = "text"
    file = "file"
    image = "image"


class MessageCreate(BaseModel):
    """A validated chat message about to be persisted."""

    room_id: str
    sender_id: str
    content: str
    message_type: MessageType = MessageType.text
    timestamp: datetime


class MessageRecord(BaseModel):
    id: str
    content: str
    sender: UserSummary
    room: str
    message_type: MessageType = MessageType.text
    timestamp: datetime
    is_encrypted: bool = False

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_messages: int
    has_more: bool

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MessagePage(BaseModel):
    messages: list[MessageRecord] = Field(default_factory=list)
    pagination: Pagination
