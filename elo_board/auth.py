"""Bearer-token access gate with a standard and an admin tier."""
from __future__ import annotations

import secrets

from fastapi import Depends, Request

from .config import Settings
from .errors import Forbidden, Unauthorized
from .service import LeaderboardService

MISSING_HEADER = "Missing or invalid authorization header"
INVALID_KEY = "Invalid access key"
INVALID_MASTER_KEY = "Invalid master access key"


def _matches(token: str, expected: str | None) -> bool:
    # An unset key never authorizes anything
    return bool(expected) and secrets.compare_digest(token.encode(), expected.encode())


def bearer_token(authorization: str | None) -> str | None:
    """Return the token of a ``Bearer <token>`` header, else ``None``."""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization[len("Bearer "):].strip() or None


def check_access(
    authorization: str | None,
    settings: Settings,
    admin: bool = False,
) -> None:
    """Raise :class:`Unauthorized` or :class:`Forbidden` unless the header passes.

    The admin key is accepted wherever the standard key is.
    """
    token = bearer_token(authorization)
    if token is None:
        raise Unauthorized(MISSING_HEADER)
    if _matches(token, settings.master_access_key):
        return
    if admin:
        raise Forbidden(INVALID_MASTER_KEY)
    if not _matches(token, settings.access_key):
        raise Forbidden(INVALID_KEY)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_service(request: Request) -> LeaderboardService:
    return request.app.state.service


def _gate(admin: bool):
    def dependency(
        request: Request,
        settings: Settings = Depends(get_settings),
        service: LeaderboardService = Depends(get_service),
    ) -> LeaderboardService:
        try:
            check_access(request.headers.get("authorization"), settings, admin=admin)
        except Unauthorized as exc:
            service.record_error(request.url.path, f"Unauthorized - {exc.message}")
            raise
        except Forbidden as exc:
            service.record_error(request.url.path, f"Forbidden - {exc.message}")
            raise
        return service

    return dependency


require_standard = _gate(admin=False)
require_admin = _gate(admin=True)
