"""Request-scoped helpers shared by the routes."""

from typing import Optional

from fastapi import Request

from ..core.config import Settings
from ..core.exceptions import AuthError


def get_settings(request: Request) -> Settings:
    """Return the Settings the application was created with."""
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        raise RuntimeError("Settings not initialized. Was the app built with create_app?")
    return settings


def extract_bearer_token(header: Optional[str]) -> str:
    """Pull the token out of an ``Authorization: Bearer <token>`` header.

    Only presence is checked; the token itself is passed on to the upstream.

    Raises:
        AuthError: If the header or the token is missing.
    """
    if not header:
        raise AuthError()
    parts = header.split(" ")
    token = parts[1] if len(parts) > 1 else ""
    if not token:
        raise AuthError()
    return token
