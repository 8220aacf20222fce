"""Fixed role hierarchy used to gate rooms.

Levels are a strict total order; anything outside the five known roles is
level 0 and therefore never admitted anywhere.
"""

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    shield_circle = "shield-circle"
    study_circle = "study-circle"
    team_core = "team-core"
    vice_president = "vice-president"
    president = "president"


ROLE_LEVELS: dict[str, int] = {
    Role.shield_circle.value: 1,
    Role.study_circle.value: 2,
    Role.team_core.value: 3,
    Role.vice_president.value: 4,
    Role.president.value: 5,
}

ROOM_ICONS: dict[str, str] = {
    Role.president.value: "👑",
    Role.vice_president.value: "⚔️",
    Role.team_core.value: "🔑",
    Role.study_circle.value: "📚",
    Role.shield_circle.value: "🛡️",
}
DEFAULT_ROOM_ICON = "💬"

ADMIN_ROLES = frozenset({Role.president.value, Role.vice_president.value})


def _key(role: Role | str | None) -> str:
    if isinstance(role, Role):
        return role.value
    return role or ""


def level(role: Role | str | None) -> int:
    return ROLE_LEVELS.get(_key(role), 0)


def can_access(user_role: Role | str | None, required_role: Role | str | None) -> bool:
    """True when `user_role` sits at or above `required_role`.

    Unknown roles on either side map to level 0 and are denied.
    """
    user_level = level(user_role)
    required_level = level(required_role)
    if user_level == 0 or required_level == 0:
        return False
    return user_level >= required_level


def room_icon(role: Role | str | None) -> str:
    return ROOM_ICONS.get(_key(role), DEFAULT_ROOM_ICON)


def is_admin(role: Role | str | None) -> bool:
    return _key(role) in ADMIN_ROLES


__all__ = [
    "ADMIN_ROLES",
    "DEFAULT_ROOM_ICON",
    "ROLE_LEVELS",
    "Role",
    "can_access",
    "is_admin",
    "level",
    "room_icon",
]
