from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RoomRecord(BaseModel):
    """Canonical Mongo record for `rooms`, keyed by its string id."""

    id: str
    name: str
    role: str
    description: str = ""
    active: bool = True
    created_by: str | None = None
    created_at: datetime | None = None
    last_activity: datetime | None = None

    model_config = ConfigDict(frozen=True)


class RoomOut(BaseModel):
    id: str
    name: str
    role: str
    description: str = ""
    icon: str
    created_at: datetime | None = None
    last_activity: datetime | None = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RoomList(BaseModel):
    rooms: list[RoomOut] = Field(default_factory=list)
