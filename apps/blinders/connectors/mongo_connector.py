"""Thin pymongo wrapper shared by the Mongo-backed stores."""

from __future__ import annotations

from typing import Any, ContextManager

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from blinders.core.settings import settings


class MongoConnector(ContextManager["MongoConnector"]):
    """Owns one `MongoClient` and hands out the configured database."""

    def __init__(
        self,
        uri: str | None = None,
        *,
        database: str | None = None,
        client: MongoClient | None = None,
    ) -> None:
        self._client: MongoClient = client or MongoClient(
            uri or settings.mongo_uri,
            appname=settings.mongo_app_name,
            serverSelectionTimeoutMS=settings.mongo_timeout_ms,
            tz_aware=True,
        )
        self._database_name = database or settings.mongo_database

    @property
    def client(self) -> MongoClient:
        return self._client

    @property
    def database(self) -> Database:
        return self._client.get_database(self._database_name)

    def get_collection(self, name: str) -> Collection:
        return self.database.get_collection(name.strip())

    def ping(self) -> bool:
        self._client.admin.command("ping")
        return True

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "MongoConnector":
        return self

    def __exit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        self.close()
