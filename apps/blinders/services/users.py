"""Mongo-backed read access to user accounts for the realtime layer.

Account management (signup approval, password hashing, 2FA) lives outside this
service; the chat core only needs id lookups and a last-seen stamp.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from pymongo.collection import Collection
from pymongo.database import Database

from blinders.core.settings import settings
from blinders.core.utils import as_utc, doc_field, doc_id, utcnow
from blinders.schemas.users import UserSnapshot

_SECRET_FIELDS = {"password": 0, "originalPassword": 0, "twoFactorSecret": 0, "secretCode": 0}


def user_from_doc(doc: Mapping[str, Any]) -> UserSnapshot:
    return UserSnapshot(
        id=str(doc["_id"]),
        username=str(doc.get("username") or ""),
        role=str(doc.get("role") or ""),
        banned=bool(doc_field(doc, "isBanned", "is_banned", default=False)),
        active=bool(doc_field(doc, "isActive", "is_active", default=True)),
        last_seen=as_utc(doc_field(doc, "lastSeen", "last_seen")),
    )


@dataclass
class UserStore:
    database: Database
    collection_name: str = settings.users_collection

    def __post_init__(self) -> None:
        self._users: Collection = self.database.get_collection(self.collection_name)

    def ensure_indexes(self) -> None:
        self._users.create_index("username", unique=True)

    def find_by_id(self, user_id: str) -> UserSnapshot | None:
        doc = self._users.find_one(
            {"_id": doc_id(user_id)},
            projection=_SECRET_FIELDS,
        )
        if not doc:
            return None
        return user_from_doc(doc)

    def touch_last_seen(self, user_id: str) -> None:
        self._users.update_one({"_id": doc_id(user_id)}, {"$set": {"lastSeen": utcnow()}})


__all__ = ["UserStore", "user_from_doc"]
