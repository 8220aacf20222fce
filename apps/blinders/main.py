import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Environment is loaded by Pydantic Settings (see blinders.core.settings).
from blinders.api import register_routes
from blinders.core.dependencies import get_message_store, get_room_store, get_user_store
from blinders.core.exceptions import register_exception_handlers
from blinders.core.logging import setup_logging
from blinders.core.settings import settings

# Initialize logging early so all modules inherit the handlers/level
setup_logging(settings.log_level or settings.log_level_fallback)

app = FastAPI(title="Blinders Chat API")
register_exception_handlers(app)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_routes(app)

logger = logging.getLogger(__name__)
logger.info("Blinders API initialized")


@app.on_event("startup")
def _prepare_storage_on_startup() -> None:
    """Ensure Mongo indexes and default rooms once at boot.

    Best-effort: logs a warning on failure but does not block app startup.
    """
    stores = {
        "Users": get_user_store,
        "Rooms": get_room_store,
        "Messages": get_message_store,
    }
    for name, provider in stores.items():
        try:
            provider().ensure_indexes()
            logger.info("%s indexes ensured", name)
        except Exception as exc:  # pragma: no cover - external dependency
            logger.warning("Failed to ensure %s indexes: %s", name, exc)

    if not settings.seed_default_rooms:
        return
    try:
        created = get_room_store().ensure_default_rooms()
        logger.info("Default rooms ensured (%d created)", len(created))
    except Exception as exc:  # pragma: no cover - external dependency
        logger.warning("Failed to seed default rooms: %s", exc)
