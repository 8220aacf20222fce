from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Unified application settings for the Blinders chat backend.

    Loads from env with support for repo ".env" files. Avoids manual load_dotenv().
    """

    _app_env = (os.getenv("APP_ENV") or "").strip().lower()
    _env_files = (
        []
        if _app_env in {"test", "ci"}
        else [
            str((Path(__file__).resolve().parents[1] / ".env")),  # apps/blinders/.env
            str((Path(__file__).resolve().parents[3] / ".env")),  # repo root .env
        ]
    )

    # Load env vars from apps/blinders/.env first, then repo root .env
    model_config = SettingsConfigDict(
        env_file=_env_files,
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # --- App / Core ---
    app_env: str = Field(default="dev", alias="APP_ENV")
    app_name: str = Field(default="blinders", alias="APP_NAME")
    # Logging
    log_level: str | None = Field(default=None, alias="BLINDERS_LOG_LEVEL")
    log_level_fallback: str | None = Field(default=None, alias="LOG_LEVEL")

    cors_allow_origins: list[str] = Field(default=["*"], alias="CORS_ALLOW_ORIGINS")

    # --- Auth ---
    jwt_secret: SecretStr = Field(default=SecretStr("dev"), alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 7, alias="ACCESS_TOKEN_EXPIRE_MINUTES", ge=1
    )

    # --- Mongo ---
    mongo_uri: str = Field(default="mongodb://localhost:27017", alias="MONGO_URI")
    mongo_database: str = Field(default="blinders", alias="MONGO_DATABASE")
    mongo_app_name: str = Field(default="blinders", alias="MONGO_APP_NAME")
    mongo_timeout_ms: int = Field(default=5000, alias="MONGO_TIMEOUT_MS", ge=100)

    users_collection: str = Field(default="users", alias="USERS_COLLECTION")
    rooms_collection: str = Field(default="rooms", alias="ROOMS_COLLECTION")
    messages_collection: str = Field(default="messages", alias="MESSAGES_COLLECTION")
    seed_default_rooms: bool = Field(default=True, alias="SEED_DEFAULT_ROOMS")

    # --- Realtime chat ---
    message_max_length: int = Field(default=5000, alias="MESSAGE_MAX_LENGTH", ge=1)
    persist_timeout_seconds: float = Field(
        default=10.0, alias="PERSIST_TIMEOUT_SECONDS", gt=0
    )
    history_page_size: int = Field(default=50, alias="HISTORY_PAGE_SIZE", ge=1, le=500)


@lru_cache()
def get_settings() -> Settings:
    return Settings()


# Convenience singleton for modules expecting a module-level "settings"
settings = get_settings()
