"""API router registration helpers.

Routers are imported lazily inside `register_routes` rather than at module
import time to keep imports side-effect free during test collection.
"""

from fastapi import FastAPI


def register_routes(app: FastAPI) -> None:
    """Attach all API routers (lazy imports)."""
    from blinders.api.chat import router as chat_router
    from blinders.api.messages import router as messages_router
    from blinders.api.rooms import router as rooms_router
    from blinders.api.system import router as system_router

    routers = [
        system_router,
        rooms_router,
        messages_router,
        chat_router,
    ]
    for router in routers:
        app.include_router(router)
