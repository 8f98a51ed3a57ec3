from __future__ import annotations
import logging
from typing import Any, Dict, Optional

import jwt  # PyJWT
from fastapi import HTTPException, Request

from iknoweverything.config import get_settings
from iknoweverything.core.errors import NotAuthenticated

logger = logging.getLogger(__name__)


class AuthUser(Dict[str, Any]):
    """Claims of a verified access token issued by the auth platform."""

    @property
    def id(self) -> str:
        return str(self["sub"])

    @property
    def email(self) -> Optional[str]:
        return self.get("email")


def _bearer_token(request: Request) -> Optional[str]:
    auth = request.headers.get("authorization")
    if not auth or not auth.lower().startswith("bearer "):
        return None
    token = auth.split(" ", 1)[1].strip()
    return token or None


def authenticate(request: Request) -> AuthUser:
    """
    Verify the `Authorization: Bearer <jwt>` header.
    - HS256 signature checked against the configured JWT secret.
    - Audience and expiry are enforced.
    - The `sub` claim is the user id and must be present.
    Raises NotAuthenticated on any failure.
    """
    token = _bearer_token(request)
    if token is None:
        raise NotAuthenticated("No authorization header")

    settings = get_settings()
    if not settings.jwt_secret:
        logger.error("JWT secret is not configured; rejecting request")
        raise NotAuthenticated("User not authenticated: token verification unavailable")

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=["HS256"],
            audience=settings.jwt_audience,
            options={"require": ["exp", "sub"]},
        )
    except jwt.PyJWTError as e:
        logger.warning("JWT verification failed: %s", e)
        raise NotAuthenticated(f"User not authenticated: {e}") from e

    if not payload.get("sub"):
        raise NotAuthenticated("User not authenticated: Invalid JWT token")
    return AuthUser(payload)


def current_user(request: Request) -> AuthUser:
    """FastAPI dependency form of `authenticate`."""
    try:
        return authenticate(request)
    except NotAuthenticated as e:
        raise HTTPException(
            status_code=401, detail=e.message, headers={"WWW-Authenticate": "Bearer"}
        ) from e
