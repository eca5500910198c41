"""HTTP route registration."""

from __future__ import annotations

from .auth import setup_auth_routes
from .plants import setup_plant_routes

__all__ = ["setup_auth_routes", "setup_plant_routes"]
