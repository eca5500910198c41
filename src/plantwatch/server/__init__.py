"""Local dashboard server: accounts, telemetry proxy and exports."""

from __future__ import annotations

from .app import create_app, run_server
from .db import User, UserRole, UserStore

__all__ = ["User", "UserRole", "UserStore", "create_app", "run_server"]
