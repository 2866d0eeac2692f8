"""Shared authorization helpers for API v1 route modules."""

from __future__ import annotations

import hmac

from restroflow.core.config import Config, get_config
from restroflow.core.exceptions import AuthenticationError, AuthorizationError


def _extract_bearer_token(authorization: str | None) -> str:
    if authorization is None or not authorization.strip():
        raise AuthenticationError("Authorization header is required.")
    parts = authorization.strip().split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthenticationError("Authorization header must use Bearer token.")
    return parts[1].strip()


def authorize_admin(authorization: str | None, settings: Config | None = None) -> None:
    settings = settings or get_config()
    token = _extract_bearer_token(authorization)
    if not hmac.compare_digest(token.encode("utf-8"), settings.ADMIN_API_TOKEN.encode("utf-8")):
        raise AuthorizationError("Admin token rejected.")


def map_auth_error(exc: Exception) -> tuple[int, str]:
    if isinstance(exc, AuthenticationError):
        return 401, str(exc)
    if isinstance(exc, AuthorizationError):
        return 403, str(exc)
    return 401, "Unauthorized."
