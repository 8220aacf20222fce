"""Pydantic schemas shared across the app."""

from .messages import MessageCreate, MessagePage, MessageRecord, MessageType, Pagination
from .rooms import RoomList, RoomOut, RoomRecord
from .users import UserSnapshot, UserSummary

__all__ = [
    "MessageCreate",
    "MessagePage",
    "MessageRecord",
    "MessageType",
    "Pagination",
    "RoomList",
    "RoomOut",
    "RoomRecord",
    "UserSnapshot",
    "UserSummary",
]
