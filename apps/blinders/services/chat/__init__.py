"""Realtime chat core: role gating, session registry, presence and fan-out."""

from blinders.services.chat.access import AccessDecision, DenyReason, authorize
from blinders.services.chat.errors import ChatError, ChatErrorCode
from blinders.services.chat.fanout import MessageFanout
from blinders.services.chat.hub import ChatHub, ConnectionSession, ConnectionState
from blinders.services.chat.lifecycle import ConnectionLifecycleController
from blinders.services.chat.presence import PresenceTracker
from blinders.services.chat.registry import SessionRegistry
from blinders.services.chat.roles import Role, can_access, level, room_icon

__all__ = [
    "AccessDecision",
    "ChatError",
    "ChatErrorCode",
    "ChatHub",
    "ConnectionLifecycleController",
    "ConnectionSession",
    "ConnectionState",
    "DenyReason",
    "MessageFanout",
    "PresenceTracker",
    "Role",
    "SessionRegistry",
    "authorize",
    "can_access",
    "level",
    "room_icon",
]
