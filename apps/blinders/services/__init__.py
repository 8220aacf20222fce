"""Service layer package.

Keep imports lazy so importing a submodule does not pull in pymongo-backed
stores. Common symbols are still reachable from `blinders.services` through
`__getattr__` proxies.
"""

from __future__ import annotations

from typing import Any

__all__ = ["MessageStore", "RoomStore", "TokenService", "UserStore"]


def __getattr__(name: str) -> Any:  # PEP 562 lazy attribute access
    if name == "MessageStore":
        from .messages import MessageStore

        return MessageStore
    if name == "RoomStore":
        from .rooms import RoomStore

        return RoomStore
    if name == "TokenService":
        from .auth import TokenService

        return TokenService
    if name == "UserStore":
        from .users import UserStore

        return UserStore
    raise AttributeError(name)
