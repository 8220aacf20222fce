from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

from bson import ObjectId


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""

    return datetime.now(timezone.utc)


def maybe_object_id(value: Any) -> ObjectId | None:
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def doc_id(value: Any) -> Any:
    """Normalize an id for a Mongo `_id` filter.

    Hex strings become ObjectIds; anything else (e.g. seeded slug ids) is used as-is.
    """
    oid = maybe_object_id(value)
    return oid if oid is not None else value


def as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def doc_field(doc: Mapping[str, Any], *names: str, default: Any = None) -> Any:
    """Return the first of `names` present in a Mongo document.

    Accounts, rooms and messages are written by the main web app with camelCase
    keys; snake_case spellings are accepted as a fallback.
    """
    for name in names:
        if name in doc and doc[name] is not None:
            return doc[name]
    return default
