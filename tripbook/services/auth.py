"""
Session authentication against the fixed credential list in settings.USERS.

The logged-in username lives in the signed session cookie
(Starlette SessionMiddleware) under the "user" key.
"""
from __future__ import annotations

import logging
import secrets
from typing import Optional

from fastapi import Request

from tripbook.core.config import settings
from tripbook.core.errors import (
    InvalidCredentialsError,
    MissingCredentialsError,
    NotAuthenticatedError,
)

logger = logging.getLogger(__name__)

SESSION_KEY = "user"


def check_credentials(username: Optional[str], password: Optional[str]) -> str:
    """Return the username when the pair matches a configured user."""
    if not username or not password:
        raise MissingCredentialsError()

    expected = settings.users.get(username)
    # compared for unknown users too
    ok = secrets.compare_digest(
        (expected or "").encode("utf-8"), password.encode("utf-8")
    )
    if expected is None or not ok:
        logger.info("Rejected login for %r", username)
        raise InvalidCredentialsError()
    return username


def login(request: Request, username: Optional[str], password: Optional[str]) -> str:
    user = check_credentials(username, password)
    request.session[SESSION_KEY] = user
    logger.info("User %s logged in", user)
    return user


def logout(request: Request) -> None:
    user = request.session.pop(SESSION_KEY, None)
    request.session.clear()
    if user:
        logger.info("User %s logged out", user)


def current_user(request: Request) -> Optional[str]:
    user = request.session.get(SESSION_KEY)
    return user if isinstance(user, str) and user else None


def require_user(request: Request) -> str:
    """FastAPI dependency: the session user, or 401."""
    user = current_user(request)
    if user is None:
        raise NotAuthenticatedError()
    return user
