"""Typed application keys shared by the server modules."""

from __future__ import annotations

from aiohttp import web

from ..client import PlantClient
from ..config import PlantwatchConfig
from .db import UserStore
from .ratelimit import RateLimiter

CONFIG_KEY = web.AppKey("config", PlantwatchConfig)
PLANT_CLIENT_KEY = web.AppKey("plant_client", PlantClient)
USER_STORE_KEY = web.AppKey("user_store", UserStore)
AUTH_LIMITER_KEY = web.AppKey("auth_limiter", RateLimiter)

__all__ = ["AUTH_LIMITER_KEY", "CONFIG_KEY", "PLANT_CLIENT_KEY", "USER_STORE_KEY"]
