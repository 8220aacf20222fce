"""Ephemeral per-room presence and typing state."""

from __future__ import annotations

from blinders.schemas.users import UserSummary


class PresenceTracker:
    """Live joined users and typing flags per room.

    Pure state replacement: typing debounce is left to clients.
    """

    def __init__(self) -> None:
        self._present: dict[str, dict[str, UserSummary]] = {}
        self._typing: dict[str, set[str]] = {}

    def add(self, room_id: str, user: UserSummary) -> list[UserSummary]:
        bucket = self._present.setdefault(room_id, {})
        bucket[user.id] = user
        return self._snapshot(bucket)

    def remove(self, room_id: str, user_id: str) -> UserSummary | None:
        self.set_typing(room_id, user_id, False)
        bucket = self._present.get(room_id)
        if not bucket:
            return None
        removed = bucket.pop(user_id, None)
        if not bucket:
            self._present.pop(room_id, None)
        return removed

    def remove_everywhere(self, user_id: str) -> dict[str, UserSummary]:
        removed: dict[str, UserSummary] = {}
        for room_id in [r for r, bucket in self._present.items() if user_id in bucket]:
            summary = self.remove(room_id, user_id)
            if summary is not None:
                removed[room_id] = summary
        return removed

    def online(self, room_id: str) -> list[UserSummary]:
        return self._snapshot(self._present.get(room_id, {}))

    def is_present(self, room_id: str, user_id: str) -> bool:
        return user_id in self._present.get(room_id, {})

    def set_typing(self, room_id: str, user_id: str, is_typing: bool) -> None:
        if is_typing:
            self._typing.setdefault(room_id, set()).add(user_id)
            return
        typing = self._typing.get(room_id)
        if typing is None:
            return
        typing.discard(user_id)
        if not typing:
            self._typing.pop(room_id, None)

    def typing_in(self, room_id: str) -> set[str]:
        return set(self._typing.get(room_id, set()))

    @staticmethod
    def _snapshot(bucket: dict[str, UserSummary]) -> list[UserSummary]:
        return sorted(bucket.values(), key=lambda u: u.username.lower())


__all__ = ["PresenceTracker"]
