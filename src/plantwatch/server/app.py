"""aiohttp application factory for the local dashboard server."""

from __future__ import annotations

import logging

from aiohttp import web

from ..client import PlantClient
from ..config import PlantwatchConfig
from ..exceptions import AuthenticationError
from .auth import Handler
from .db import UserStore
from .keys import AUTH_LIMITER_KEY, CONFIG_KEY, PLANT_CLIENT_KEY, USER_STORE_KEY
from .ratelimit import RateLimiter
from .routes import setup_auth_routes, setup_plant_routes

_LOGGER = logging.getLogger(__name__)

_ALLOWED_METHODS = "GET, POST, PUT, PATCH, DELETE, OPTIONS"
_ALLOWED_HEADERS = "Authorization, Content-Type"


def cors_middleware(origins: tuple[str, ...]):
    """Allow credentialed requests from ``origins`` and answer preflights."""
    allowed = frozenset(origins)

    @web.middleware
    async def middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
        origin = request.headers.get("Origin")
        is_preflight = (
            request.method == "OPTIONS" and "Access-Control-Request-Method" in request.headers
        )

        if is_preflight:
            if origin not in allowed:
                return web.json_response({"error": "Origin not allowed"}, status=403)
            response: web.StreamResponse = web.Response(status=204)
            response.headers["Access-Control-Allow-Methods"] = _ALLOWED_METHODS
            response.headers["Access-Control-Allow-Headers"] = _ALLOWED_HEADERS
        else:
            response = await handler(request)

        if origin in allowed:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers.add("Vary", "Origin")
        return response

    return middleware


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Render errors as ``{"error": message}`` JSON."""
    try:
        return await handler(request)
    except AuthenticationError as err:
        return web.json_response({"error": str(err)}, status=err.status)
    except web.HTTPException as err:
        if err.status < 400:
            raise
        return web.json_response({"error": err.reason}, status=err.status)
    except Exception:
        _LOGGER.exception("Unhandled error on %s %s", request.method, request.path)
        return web.json_response({"error": "Internal server error"}, status=500)


async def ping(request: web.Request) -> web.Response:
    return web.json_response({"message": "pong"})


def create_app(
    config: PlantwatchConfig,
    *,
    plant_client: PlantClient | None = None,
    user_store: UserStore | None = None,
) -> web.Application:
    """Build the server application.

    Args:
        config: Server configuration (``require_server`` is checked)
        plant_client: Telemetry client to use; created from ``config`` and
            closed with the app when omitted
        user_store: User store to use; created from ``config.database_url``
            when omitted

    Raises:
        ConfigurationError: If the configuration cannot run a server
    """
    config.require_server()

    app = web.Application(middlewares=[cors_middleware(config.cors_origins), error_middleware])
    app[CONFIG_KEY] = config
    app[AUTH_LIMITER_KEY] = RateLimiter(config.auth_rate_limit, config.auth_rate_window)

    store = user_store or UserStore(config.database_url)
    store.create_tables()
    app[USER_STORE_KEY] = store

    app[PLANT_CLIENT_KEY] = plant_client or PlantClient(
        config.api_base_url,
        config.api_token,
        owner_id=config.owner_id,
        timeout=config.request_timeout,
    )

    async def close_owned(app: web.Application) -> None:
        if plant_client is None:
            await app[PLANT_CLIENT_KEY].close()
        if user_store is None:
            store.dispose()

    app.on_cleanup.append(close_owned)

    app.router.add_get("/api/ping", ping)
    setup_auth_routes(app)
    setup_plant_routes(app)

    _LOGGER.debug(
        "Server app created (upstream %s, CORS origins %s)",
        config.api_base_url,
        ", ".join(config.cors_origins) or "none",
    )
    return app


def run_server(config: PlantwatchConfig) -> None:
    """Run the server until interrupted."""
    app = create_app(config)
    _LOGGER.info("Serving on http://%s:%d", config.host, config.port)
    web.run_app(app, host=config.host, port=config.port, print=None)


__all__ = ["cors_middleware", "create_app", "error_middleware", "run_server"]
