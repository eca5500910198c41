"""Password hashing, session tokens and request authentication.

Tokens are HS256 JWTs carrying ``userId``, ``email`` and ``role``. A token is
only accepted while the user it names still exists and is active.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from functools import wraps
from typing import Any

import bcrypt
import jwt
from aiohttp import web

from ..constants import DEFAULT_BCRYPT_ROUNDS, DEFAULT_JWT_EXPIRY_DAYS, JWT_ALGORITHM
from ..exceptions import AuthenticationError
from .db import User, UserRole
from .keys import CONFIG_KEY, USER_STORE_KEY

_LOGGER = logging.getLogger(__name__)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


async def hash_password(password: str, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    """Hash a password with bcrypt in a worker thread."""

    def _hash() -> str:
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds)).decode("ascii")

    return await asyncio.to_thread(_hash)


async def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a bcrypt hash in a worker thread."""

    def _check() -> bool:
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("ascii"))
        except ValueError:
            # Malformed stored hash
            return False

    return await asyncio.to_thread(_check)


def issue_token(
    user: User,
    secret: str,
    *,
    expiry_days: int = DEFAULT_JWT_EXPIRY_DAYS,
    now: datetime | None = None,
) -> str:
    """Sign a session token for ``user``."""
    issued = now or datetime.now(UTC)
    claims = {
        "userId": user.id,
        "email": user.email,
        "role": user.role.value,
        "iat": issued,
        "exp": issued + timedelta(days=expiry_days),
    }
    return jwt.encode(claims, secret, algorithm=JWT_ALGORITHM)


def decode_token(token: str, secret: str) -> dict[str, Any]:
    """Verify a session token and return its claims.

    Raises:
        AuthenticationError: If the token is malformed, tampered with or expired
    """
    try:
        claims: dict[str, Any] = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError as err:
        _LOGGER.debug("Rejected token: %s", err)
        raise AuthenticationError("Invalid or expired token") from err
    if "userId" not in claims:
        raise AuthenticationError("Invalid or expired token")
    return claims


def bearer_token(request: web.Request) -> str | None:
    """Extract the token from an ``Authorization: Bearer ...`` header."""
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def authenticate(request: web.Request) -> User:
    """Resolve the active user behind a request's bearer token.

    Raises:
        AuthenticationError: 401 if the token is missing or invalid, or the
            user no longer exists or is disabled
    """
    token = bearer_token(request)
    if token is None:
        raise AuthenticationError("Access token required")

    config = request.app[CONFIG_KEY]
    claims = decode_token(token, config.jwt_secret)
    user = request.app[USER_STORE_KEY].get_by_id(claims["userId"])
    if user is None or not user.is_active:
        raise AuthenticationError("Invalid or expired token")
    return user


def require_user(handler: Handler) -> Handler:
    """Decorate a handler so it runs only for authenticated users.

    The user is stored on ``request["user"]``.
    """

    @wraps(handler)
    async def wrapper(request: web.Request) -> web.StreamResponse:
        request["user"] = await authenticate(request)
        return await handler(request)

    return wrapper


def require_admin(handler: Handler) -> Handler:
    """Decorate a handler so it runs only for authenticated admins (403 otherwise)."""

    @wraps(handler)
    async def wrapper(request: web.Request) -> web.StreamResponse:
        user = await authenticate(request)
        if user.role is not UserRole.ADMIN:
            raise AuthenticationError("Admin access required", status=403)
        request["user"] = user
        return await handler(request)

    return wrapper


__all__ = [
    "authenticate",
    "bearer_token",
    "decode_token",
    "hash_password",
    "issue_token",
    "require_admin",
    "require_user",
    "verify_password",
]
