from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class UserSummary(BaseModel):
    """Public projection of a user shown to other room members."""

    id: str
    username: str
    role: str

    model_config = ConfigDict(frozen=True)


class UserSnapshot(BaseModel):
    """Session-relevant view of a user, captured at authentication time."""

    id: str = Field(min_length=1)
    username: str
    role: str
    banned: bool = False
    active: bool = True
    last_seen: datetime | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def admissible(self) -> bool:
        return self.active and not self.banned

    def summary(self) -> UserSummary:
        return UserSummary(id=self.id, username=self.username, role=self.role)
