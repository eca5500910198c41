"""Account routes under ``/api/auth``."""

from __future__ import annotations

import logging
import re
from typing import Any

from aiohttp import web

from ...constants import MIN_PASSWORD_LENGTH
from ...exceptions import AuthenticationError
from ..auth import hash_password, issue_token, require_admin, require_user, verify_password
from ..db import User
from ..keys import AUTH_LIMITER_KEY, CONFIG_KEY, USER_STORE_KEY

_LOGGER = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _error(message: str, status: int, **headers: str) -> web.Response:
    return web.json_response({"error": message}, status=status, headers=headers or None)


async def _read_json(request: web.Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except ValueError as err:
        raise web.HTTPBadRequest(reason="Request body must be JSON") from err
    if not isinstance(body, dict):
        raise web.HTTPBadRequest(reason="Request body must be a JSON object")
    return body


def _rate_limited(request: web.Request) -> web.Response | None:
    limiter = request.app[AUTH_LIMITER_KEY]
    client = request.remote or "unknown"
    if limiter.hit(client):
        return None
    _LOGGER.warning("Rate limit exceeded for %s on %s", client, request.path)
    return _error(
        "Too many authentication attempts, please try again later",
        429,
        **{"Retry-After": str(limiter.retry_after(client))},
    )


def _session_response(
    request: web.Request, user: User, message: str, status: int = 200
) -> web.Response:
    config = request.app[CONFIG_KEY]
    token = issue_token(user, config.jwt_secret, expiry_days=config.jwt_expiry_days)
    return web.json_response(
        {"message": message, "user": user.to_dict(), "token": token}, status=status
    )


async def register(request: web.Request) -> web.Response:
    """Create an account and return it with a session token."""
    limited = _rate_limited(request)
    if limited is not None:
        return limited

    body = await _read_json(request)
    email = str(body.get("email") or "").strip()
    password = body.get("password") or ""

    if not email or not password:
        return _error("Email and password are required", 400)
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        return _error(f"Password must be at least {MIN_PASSWORD_LENGTH} characters", 400)
    if not _EMAIL_RE.match(email):
        return _error("Invalid email format", 400)

    store = request.app[USER_STORE_KEY]
    if store.get_by_email(email) is not None:
        return _error("User with this email already exists", 400)

    password_hash = await hash_password(password, request.app[CONFIG_KEY].bcrypt_rounds)
    user = store.create_user(
        email,
        password_hash,
        first_name=body.get("firstName"),
        last_name=body.get("lastName"),
    )
    return _session_response(request, user, "User registered successfully", status=201)


async def login(request: web.Request) -> web.Response:
    """Check credentials and return a session token."""
    limited = _rate_limited(request)
    if limited is not None:
        return limited

    body = await _read_json(request)
    email = str(body.get("email") or "").strip()
    password = body.get("password") or ""
    if not email or not password:
        return _error("Email and password are required", 400)

    user = request.app[USER_STORE_KEY].get_by_email(email)
    if user is None:
        return _error("Invalid email or password", 401)
    if not user.is_active:
        return _error("Account is disabled", 401)
    if not await verify_password(str(password), user.password):
        _LOGGER.info("Failed login for %s", user.email)
        return _error("Invalid email or password", 401)

    return _session_response(request, user, "Login successful")


@require_user
async def me(request: web.Request) -> web.Response:
    return web.json_response({"user": request["user"].to_dict()})


@require_user
async def update_profile(request: web.Request) -> web.Response:
    body = await _read_json(request)
    user = request.app[USER_STORE_KEY].update_profile(
        request["user"].id, body.get("firstName"), body.get("lastName")
    )
    if user is None:
        return _error("User not found", 404)
    return web.json_response({"message": "Profile updated successfully", "user": user.to_dict()})


@require_user
async def change_password(request: web.Request) -> web.Response:
    body = await _read_json(request)
    current = body.get("currentPassword") or ""
    new = body.get("newPassword") or ""

    if not current or not new:
        return _error("Current password and new password are required", 400)
    if not isinstance(new, str) or len(new) < MIN_PASSWORD_LENGTH:
        return _error(f"New password must be at least {MIN_PASSWORD_LENGTH} characters", 400)

    user = request["user"]
    if not await verify_password(str(current), user.password):
        return _error("Current password is incorrect", 400)

    password_hash = await hash_password(new, request.app[CONFIG_KEY].bcrypt_rounds)
    request.app[USER_STORE_KEY].set_password(user.id, password_hash)
    _LOGGER.info("Password changed for %s", user.email)
    return web.json_response({"message": "Password changed successfully"})


@require_user
async def logout(request: web.Request) -> web.Response:
    # Tokens are stateless; the client discards its copy
    return web.json_response({"message": "Logged out successfully"})


@require_admin
async def set_user_status(request: web.Request) -> web.Response:
    """Enable or disable an account (admins only)."""
    try:
        user_id = int(request.match_info["user_id"])
    except ValueError as err:
        raise web.HTTPBadRequest(reason="Invalid user id") from err

    body = await _read_json(request)
    active = body.get("isActive")
    if not isinstance(active, bool):
        return _error("isActive must be a boolean", 400)
    if user_id == request["user"].id and not active:
        raise AuthenticationError("Admins cannot disable their own account", status=400)

    user = request.app[USER_STORE_KEY].set_active(user_id, active)
    if user is None:
        return _error("User not found", 404)
    _LOGGER.info(
        "User %s %s by %s",
        user.email,
        "enabled" if active else "disabled",
        request["user"].email,
    )
    return web.json_response({"user": {**user.to_dict(), "isActive": user.is_active}})


def setup_auth_routes(app: web.Application, prefix: str = "/api/auth") -> None:
    """Register the account routes."""
    app.router.add_post(f"{prefix}/register", register)
    app.router.add_post(f"{prefix}/login", login)
    app.router.add_get(f"{prefix}/me", me)
    app.router.add_put(f"{prefix}/profile", update_profile)
    app.router.add_post(f"{prefix}/change-password", change_password)
    app.router.add_post(f"{prefix}/logout", logout)
    app.router.add_patch(f"{prefix}/users/{{user_id}}", set_user_status)


__all__ = ["setup_auth_routes"]
