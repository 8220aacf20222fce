"""JWT issuing and verification for chat clients.

Tokens carry a `userId` claim; verification resolves it against the user store
so the realtime layer always sees the account's current flags.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any

import jwt

from blinders.core.settings import settings
from blinders.core.utils import utcnow
from blinders.schemas.users import UserSnapshot
from blinders.services.chat.errors import InvalidTokenError, TokenExpiredError
from blinders.services.chat.ports import UserStore


@dataclass
class TokenService:
    users: UserStore
    secret: str = settings.jwt_secret.get_secret_value()
    algorithm: str = settings.jwt_algorithm
    expire_minutes: int = settings.access_token_expire_minutes

    def issue_token(self, user_id: str, *, expires_in: timedelta | None = None) -> str:
        now = utcnow()
        payload = {
            "userId": str(user_id),
            "iat": now,
            "exp": now + (expires_in if expires_in is not None else timedelta(minutes=self.expire_minutes)),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode(self, token: str) -> dict[str, Any]:
        try:
            return jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpiredError() from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidTokenError() from exc

    def verify_token(self, token: str) -> UserSnapshot:
        claims = self.decode(token)
        user_id = claims.get("userId")
        if not isinstance(user_id, str) or not user_id:
            raise InvalidTokenError()
        user = self.users.find_by_id(user_id)
        if user is None:
            raise InvalidTokenError("Authentication failed")
        return user


__all__ = ["TokenService"]
