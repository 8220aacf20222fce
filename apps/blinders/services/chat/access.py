from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from blinders.schemas.rooms import RoomRecord
from blinders.schemas.users import UserSnapshot
from blinders.services.chat.errors import AccessDenied, ChatErrorCode, RoomNotFound
from blinders.services.chat.roles import can_access


class DenyReason(str, Enum):
    room_not_found = ChatErrorCode.room_not_found.value
    room_inactive = ChatErrorCode.room_inactive.value
    insufficient_role = ChatErrorCode.insufficient_role.value


_DENY_MESSAGES = {
    DenyReason.room_not_found: "Room not found",
    DenyReason.room_inactive: "Room is not active",
    DenyReason.insufficient_role: "Access denied to this room",
}


@dataclass(frozen=True)
class AccessDecision:
    admitted: bool
    reason: DenyReason | None = None

    def raise_for_denial(self) -> None:
        if self.admitted or self.reason is None:
            return
        message = _DENY_MESSAGES[self.reason]
        code = ChatErrorCode(self.reason.value)
        if self.reason is DenyReason.room_not_found:
            raise RoomNotFound(message, code=code)
        raise AccessDenied(message, code=code)


ADMIT = AccessDecision(admitted=True)


def authorize(user: UserSnapshot, room: RoomRecord | None) -> AccessDecision:
    """Decide whether `user` may read/write in `room`. Pure; never mutates state."""
    if room is None:
        return AccessDecision(admitted=False, reason=DenyReason.room_not_found)
    if not room.active:
        return AccessDecision(admitted=False, reason=DenyReason.room_inactive)
    if not can_access(user.role, room.role):
        return AccessDecision(admitted=False, reason=DenyReason.insufficient_role)
    return ADMIT


__all__ = ["ADMIT", "AccessDecision", "DenyReason", "authorize"]
