"""Mongo-backed message persistence and room history."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping

from pymongo import ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.database import Database

from blinders.core.settings import settings
from blinders.core.utils import as_utc, doc_field, doc_id
from blinders.schemas.messages import (
    MessageCreate,
    MessagePage,
    MessageRecord,
    MessageType,
    Pagination,
)
from blinders.schemas.users import UserSummary


def _message_type(value: Any) -> MessageType:
    try:
        return MessageType(value)
    except ValueError:
        return MessageType.text


@dataclass
class MessageStore:
    database: Database
    collection_name: str = settings.messages_collection
    users_collection_name: str = settings.users_collection

    def __post_init__(self) -> None:
        self._messages: Collection = self.database.get_collection(self.collection_name)
        self._users: Collection = self.database.get_collection(self.users_collection_name)

    def ensure_indexes(self) -> None:
        self._messages.create_index([("room", ASCENDING), ("timestamp", DESCENDING)])
        self._messages.create_index([("sender", ASCENDING), ("timestamp", DESCENDING)])

    def persist(self, message: MessageCreate) -> str:
        doc = {
            "content": message.content,
            "sender": doc_id(message.sender_id),
            "room": doc_id(message.room_id),
            "messageType": message.message_type.value,
            "timestamp": message.timestamp,
            "isEncrypted": False,
            "isDeleted": False,
        }
        res = self._messages.insert_one(doc)
        return str(res.inserted_id)

    def list_for_room(self, room_id: str, *, page: int = 1, limit: int | None = None) -> MessagePage:
        """One page of a room's history, oldest first within the page."""
        page = max(1, page)
        limit = max(1, limit or settings.history_page_size)
        flt = {"room": doc_id(room_id), "isDeleted": {"$ne": True}}

        total = self._messages.count_documents(flt)
        docs = list(
            self._messages.find(flt)
            .sort("timestamp", DESCENDING)
            .skip((page - 1) * limit)
            .limit(limit)
        )
        docs.reverse()

        senders = self._senders({doc.get("sender") for doc in docs})
        messages = [self._to_record(doc, senders) for doc in docs]
        return MessagePage(
            messages=messages,
            pagination=Pagination(
                current_page=page,
                total_pages=math.ceil(total / limit) if total else 0,
                total_messages=total,
                has_more=page * limit < total,
            ),
        )

    def _senders(self, ids: set[Any]) -> dict[str, UserSummary]:
        ids.discard(None)
        if not ids:
            return {}
        out: dict[str, UserSummary] = {}
        for doc in self._users.find({"_id": {"$in": list(ids)}}, projection={"username": 1, "role": 1}):
            out[str(doc["_id"])] = UserSummary(
                id=str(doc["_id"]),
                username=str(doc.get("username") or ""),
                role=str(doc.get("role") or ""),
            )
        return out

    @staticmethod
    def _to_record(doc: Mapping[str, Any], senders: Mapping[str, UserSummary]) -> MessageRecord:
        sender_id = str(doc.get("sender"))
        sender = senders.get(sender_id) or UserSummary(id=sender_id, username="unknown", role="")
        return MessageRecord(
            id=str(doc["_id"]),
            content=str(doc.get("content") or ""),
            sender=sender,
            room=str(doc.get("room")),
            message_type=_message_type(doc_field(doc, "messageType", "message_type")),
            timestamp=as_utc(doc.get("timestamp")),
            is_encrypted=False,
        )


__all__ = ["MessageStore"]
