"""In-memory session registry.

Bidirectional index of authenticated users to their live connection and the
rooms they have joined. Owns no I/O; callers (the lifecycle controller) hold
the coordinating lock while mutating it.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Generic, TypeVar

C = TypeVar("C")


class SessionRegistry(Generic[C]):
    """Tracks `user_id -> connection` and `user_id -> {room_id}`."""

    def __init__(self) -> None:
        self._connection_of: dict[str, C] = {}
        self._rooms_of: dict[str, set[str]] = {}
        self._members_of: dict[str, set[str]] = defaultdict(set)

    # ------------- bindings -------------
    def bind(self, user_id: str, connection: C) -> C | None:
        """Bind `user_id` to `connection`, returning a superseded connection if any."""
        previous = self._connection_of.get(user_id)
        self._connection_of[user_id] = connection
        if previous is connection:
            return None
        return previous

    def unbind(self, user_id: str, connection: C | None = None) -> bool:
        """Drop the user's binding and room set.

        When `connection` is given, only unbind if it is still the bound one, so a
        superseded connection closing late never tears down its successor.
        Unknown users are a no-op.
        """
        current = self._connection_of.get(user_id)
        if current is None:
            return False
        if connection is not None and current is not connection:
            return False
        del self._connection_of[user_id]
        for room_id in self._rooms_of.pop(user_id, set()):
            self._discard_member(room_id, user_id)
        return True

    def connection_for(self, user_id: str) -> C | None:
        return self._connection_of.get(user_id)

    def is_bound(self, user_id: str, connection: C) -> bool:
        return self._connection_of.get(user_id) is connection

    def bound_users(self) -> list[str]:
        return list(self._connection_of)

    # ------------- rooms -------------
    def record_join(self, user_id: str, room_id: str) -> bool:
        """Add the membership; returns False when it already existed."""
        rooms = self._rooms_of.setdefault(user_id, set())
        if room_id in rooms:
            return False
        rooms.add(room_id)
        self._members_of[room_id].add(user_id)
        return True

    def record_leave(self, user_id: str, room_id: str) -> bool:
        rooms = self._rooms_of.get(user_id)
        if not rooms or room_id not in rooms:
            return False
        rooms.discard(room_id)
        if not rooms:
            self._rooms_of.pop(user_id, None)
        self._discard_member(room_id, user_id)
        return True

    def clear_rooms(self, user_id: str) -> set[str]:
        rooms = self._rooms_of.pop(user_id, set())
        for room_id in rooms:
            self._discard_member(room_id, user_id)
        return rooms

    def rooms_for(self, user_id: str) -> set[str]:
        return set(self._rooms_of.get(user_id, set()))

    def members_of(self, room_id: str) -> set[str]:
        return set(self._members_of.get(room_id, set()))

    def is_member(self, user_id: str, room_id: str) -> bool:
        return room_id in self._rooms_of.get(user_id, set())

    def _discard_member(self, room_id: str, user_id: str) -> None:
        members = self._members_of.get(room_id)
        if members is None:
            return
        members.discard(user_id)
        if not members:
            self._members_of.pop(room_id, None)


__all__ = ["SessionRegistry"]
