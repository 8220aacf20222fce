"""Shared API dependencies."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header

from blinders.core.dependencies import get_token_service
from blinders.core.exceptions import ForbiddenError, UnauthorizedError
from blinders.schemas.users import UserSnapshot
from blinders.services.auth import TokenService
from blinders.services.chat.roles import is_admin


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise UnauthorizedError("Access token required", code="token_required")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise UnauthorizedError("Access token required", code="token_required")
    return token.strip()


def get_current_user(
    authorization: Optional[str] = Header(default=None),
    tokens: TokenService = Depends(get_token_service),
) -> UserSnapshot:
    """Resolve the bearer token to an active, non-banned user."""
    user = tokens.verify_token(_bearer_token(authorization))
    if user.banned:
        raise ForbiddenError("User is banned", code="user_banned")
    if not user.active:
        raise ForbiddenError("User account is inactive", code="user_inactive")
    return user


def require_admin(user: UserSnapshot = Depends(get_current_user)) -> UserSnapshot:
    if not is_admin(user.role):
        raise ForbiddenError("Admin access required", code="admin_required")
    return user


__all__ = ["get_current_user", "require_admin"]
