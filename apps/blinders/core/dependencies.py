"""Central dependency providers (FastAPI routes + WebSocket endpoint).

These helpers keep heavy clients (Mongo) and the realtime coordinator
process-scoped and reusable, avoiding per-request construction and enabling
test-time cache clearing/overrides.
"""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING

from pymongo.database import Database

if TYPE_CHECKING:
    from blinders.connectors.mongo_connector import MongoConnector
    from blinders.services.auth import TokenService
    from blinders.services.chat.hub import ChatHub
    from blinders.services.chat.lifecycle import ConnectionLifecycleController
    from blinders.services.messages import MessageStore
    from blinders.services.rooms import RoomStore
    from blinders.services.users import UserStore


@lru_cache(maxsize=1)
def get_mongo_connector() -> MongoConnector:
    from blinders.connectors.mongo_connector import MongoConnector

    return MongoConnector()


@lru_cache(maxsize=1)
def get_mongo_database() -> Database:
    return get_mongo_connector().database


@lru_cache(maxsize=1)
def get_user_store() -> UserStore:
    from blinders.services.users import UserStore

    return UserStore(database=get_mongo_database())


@lru_cache(maxsize=1)
def get_room_store() -> RoomStore:
    from blinders.services.rooms import RoomStore

    return RoomStore(database=get_mongo_database())


@lru_cache(maxsize=1)
def get_message_store() -> MessageStore:
    from blinders.services.messages import MessageStore

    return MessageStore(database=get_mongo_database())


@lru_cache(maxsize=1)
def get_token_service() -> TokenService:
    from blinders.services.auth import TokenService

    return TokenService(users=get_user_store())


@lru_cache(maxsize=1)
def get_chat_hub() -> ChatHub:
    from blinders.services.chat.hub import ChatHub

    return ChatHub()


@lru_cache(maxsize=1)
def get_chat_controller() -> ConnectionLifecycleController:
    from blinders.services.chat.lifecycle import ConnectionLifecycleController

    return ConnectionLifecycleController(
        hub=get_chat_hub(),
        verifier=get_token_service(),
        users=get_user_store(),
        rooms=get_room_store(),
        messages=get_message_store(),
    )
