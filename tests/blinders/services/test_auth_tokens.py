from __future__ import annotations

from datetime import timedelta

import jwt
import pytest
from blinders.schemas.users import UserSnapshot
from blinders.services.auth import TokenService
from blinders.services.chat.errors import InvalidTokenError, TokenExpiredError

SECRET = "token-tests-secret-with-at-least-32-bytes"


class _Users:
    def __init__(self) -> None:
        self.users = {"u1": UserSnapshot(id="u1", username="alice", role="shield-circle")}

    def find_by_id(self, user_id: str) -> UserSnapshot | None:
        return self.users.get(user_id)

    def touch_last_seen(self, user_id: str) -> None:
        pass


def _service() -> TokenService:
    return TokenService(users=_Users(), secret=SECRET)


def test_issue_then_verify_returns_user():
    service = _service()
    token = service.issue_token("u1")
    assert service.decode(token)["userId"] == "u1"
    assert service.verify_token(token).username == "alice"


def test_expired_token():
    service = _service()
    token = service.issue_token("u1", expires_in=timedelta(seconds=-5))
    with pytest.raises(TokenExpiredError) as exc:
        service.verify_token(token)
    assert exc.value.code == "token_expired"


def test_tampered_or_foreign_tokens_are_invalid():
    service = _service()
    foreign = jwt.encode({"userId": "u1"}, "another-secret-with-at-least-32-bytes!", algorithm="HS256")
    for token in ("not-a-jwt", foreign):
        with pytest.raises(InvalidTokenError):
            service.verify_token(token)


def test_missing_claim_or_unknown_user_is_invalid():
    service = _service()
    no_claim = jwt.encode({"sub": "u1"}, SECRET, algorithm="HS256")
    with pytest.raises(InvalidTokenError):
        service.verify_token(no_claim)
    with pytest.raises(InvalidTokenError) as exc:
        service.verify_token(service.issue_token("ghost"))
    assert exc.value.status_code == 401
