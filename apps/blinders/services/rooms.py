from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from pymongo import ASCENDING
from pymongo.collection import Collection
from pymongo.database import Database

from blinders.core.settings import settings
from blinders.core.utils import as_utc, doc_field, doc_id, utcnow
from blinders.schemas.rooms import RoomRecord
from blinders.services.chat.roles import Role, level

logger = logging.getLogger(__name__)

DEFAULT_ROOMS: tuple[dict[str, str], ...] = (
    {
        "name": "President Chamber",
        "role": Role.president.value,
        "description": "Private room for the President",
    },
    {
        "name": "Leadership Council",
        "role": Role.vice_president.value,
        "description": "President and Vice President discussions",
    },
    {
        "name": "Core Team Hub",
        "role": Role.team_core.value,
        "description": "Trusted inner circle communications",
    },
    {
        "name": "Study Hall",
        "role": Role.study_circle.value,
        "description": "Research and knowledge sharing",
    },
    {
        "name": "Shield Operations",
        "role": Role.shield_circle.value,
        "description": "Protection and moderation discussions",
    },
)


def room_from_doc(doc: Mapping[str, Any]) -> RoomRecord:
    created_by = doc_field(doc, "createdBy", "created_by")
    return RoomRecord(
        id=str(doc["_id"]),
        name=str(doc.get("name") or ""),
        role=str(doc.get("role") or ""),
        description=str(doc.get("description") or ""),
        active=bool(doc_field(doc, "isActive", "is_active", default=True)),
        created_by=str(created_by) if created_by is not None else None,
        created_at=as_utc(doc_field(doc, "createdAt", "created_at")),
        last_activity=as_utc(doc_field(doc, "lastActivity", "last_activity")),
    )


@dataclass
class RoomStore:
    """Mongo-backed room lookups plus default-room seeding."""

    database: Database
    collection_name: str = settings.rooms_collection

    def __post_init__(self) -> None:
        self._rooms: Collection = self.database.get_collection(self.collection_name)

    def ensure_indexes(self) -> None:
        self._rooms.create_index([("name", ASCENDING), ("role", ASCENDING)], unique=True)
        self._rooms.create_index("isActive")

    def find_by_id(self, room_id: str) -> RoomRecord | None:
        doc = self._rooms.find_one({"_id": doc_id(room_id)})
        if not doc:
            return None
        return room_from_doc(doc)

    def touch_activity(self, room_id: str) -> None:
        self._rooms.update_one({"_id": doc_id(room_id)}, {"$set": {"lastActivity": utcnow()}})

    def list_active(self) -> list[RoomRecord]:
        rooms = [room_from_doc(doc) for doc in self._rooms.find({"isActive": True})]
        rooms.sort(key=lambda r: (-level(r.role), r.name.lower()))
        return rooms

    def ensure_default_rooms(self, created_by: str | None = None) -> list[str]:
        """Create any missing default room; returns the names that were created."""
        created: list[str] = []
        for room in DEFAULT_ROOMS:
            now = utcnow()
            res = self._rooms.update_one(
                {"name": room["name"], "role": room["role"]},
                {
                    "$setOnInsert": {
                        "description": room["description"],
                        "isActive": True,
                        "createdBy": doc_id(created_by) if created_by else None,
                        "createdAt": now,
                        "lastActivity": now,
                    }
                },
                upsert=True,
            )
            if res.upserted_id is not None:
                created.append(room["name"])
                logger.info("Default room created: %s", room["name"])
        return created


__all__ = ["DEFAULT_ROOMS", "RoomStore", "room_from_doc"]
