"""Runtime configuration.

This module provides the PlantwatchConfig dataclass. Values come from
``PLANTWATCH_*`` environment variables, optionally loaded from a ``.env``
file first.

Example:
    config = PlantwatchConfig.from_env()
    config.validate()

    client = PlantClient(config.api_base_url, config.api_token,
                         owner_id=config.owner_id)
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import tzinfo
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .constants import (
    DEFAULT_API_BASE_URL,
    DEFAULT_AUTH_RATE_LIMIT,
    DEFAULT_AUTH_RATE_WINDOW,
    DEFAULT_BCRYPT_ROUNDS,
    DEFAULT_CORS_ORIGINS,
    DEFAULT_JWT_EXPIRY_DAYS,
    DEFAULT_TIMEOUT,
)
from .dates import resolve_timezone
from .exceptions import ConfigurationError

_LOGGER = logging.getLogger(__name__)

ENV_PREFIX = "PLANTWATCH_"


@dataclass
class PlantwatchConfig:
    """Configuration for the client, the detail view and the local server.

    Attributes:
        api_base_url: Telemetry API base URL
        api_token: Bearer token for the telemetry API
        owner_id: Owner whose plants are listed
        timezone: Plant timezone (IANA name or "GMT +N")
        display_offset_hours: Shift applied to chart/export time labels
        time_format: "24" or "12" hour labels
        request_timeout: Telemetry request timeout in seconds
        jwt_secret: Secret for signing local session tokens
        jwt_expiry_days: Session token lifetime
        bcrypt_rounds: bcrypt cost factor for password hashes
        database_url: SQLAlchemy URL of the user database
        cors_origins: Origins allowed to call the local server
        host: Local server bind address
        port: Local server port
        auth_rate_limit: Login/register attempts allowed per window and client
        auth_rate_window: Rate limit window in seconds
        log_level: Root log level used by the CLI
    """

    api_base_url: str = DEFAULT_API_BASE_URL
    api_token: str = ""
    owner_id: str = ""
    timezone: str = "UTC"
    display_offset_hours: float = 0
    time_format: str = "24"
    request_timeout: int = DEFAULT_TIMEOUT
    jwt_secret: str = ""
    jwt_expiry_days: int = DEFAULT_JWT_EXPIRY_DAYS
    bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS
    database_url: str = "sqlite:///plantwatch.db"
    cors_origins: tuple[str, ...] = field(default=DEFAULT_CORS_ORIGINS)
    host: str = "127.0.0.1"
    port: int = 8080
    auth_rate_limit: int = DEFAULT_AUTH_RATE_LIMIT
    auth_rate_window: int = DEFAULT_AUTH_RATE_WINDOW
    log_level: str = "INFO"

    @property
    def tzinfo(self) -> tzinfo:
        """Resolved plant timezone."""
        return resolve_timezone(self.timezone)

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ConfigurationError: If a value is invalid
        """
        if not self.api_base_url:
            raise ConfigurationError("api_base_url must not be empty")
        if self.time_format not in ("12", "24"):
            raise ConfigurationError("time_format must be '12' or '24'")
        if not -12 <= self.display_offset_hours <= 14:
            raise ConfigurationError("display_offset_hours must be between -12 and 14")
        if self.request_timeout <= 0:
            raise ConfigurationError("request_timeout must be positive")
        if self.jwt_expiry_days <= 0:
            raise ConfigurationError("jwt_expiry_days must be positive")
        if not 4 <= self.bcrypt_rounds <= 31:
            raise ConfigurationError("bcrypt_rounds must be between 4 and 31")
        if self.auth_rate_limit <= 0 or self.auth_rate_window <= 0:
            raise ConfigurationError("auth rate limit and window must be positive")
        if self.log_level.upper() not in logging.getLevelNamesMapping():
            raise ConfigurationError(f"Unknown log_level: {self.log_level!r}")
        try:
            resolve_timezone(self.timezone)
        except ValueError as err:
            raise ConfigurationError(str(err)) from err

    def require_server(self) -> None:
        """Validate settings needed to run the local server.

        Raises:
            ConfigurationError: If a value is invalid or the JWT secret is missing
        """
        self.validate()
        if not self.jwt_secret:
            raise ConfigurationError(f"{ENV_PREFIX}JWT_SECRET must be set to run the server")

    @classmethod
    def from_mapping(cls, env: Mapping[str, str]) -> PlantwatchConfig:
        """Build a configuration from ``PLANTWATCH_*`` keys of a mapping.

        Raises:
            ConfigurationError: If a numeric value cannot be parsed
        """
        values: dict[str, Any] = {}

        def get(name: str) -> str | None:
            value = env.get(f"{ENV_PREFIX}{name.upper()}")
            return value.strip() if value is not None else None

        for name in (
            "api_base_url",
            "api_token",
            "owner_id",
            "timezone",
            "time_format",
            "jwt_secret",
            "database_url",
            "host",
            "log_level",
        ):
            value = get(name)
            if value is not None:
                values[name] = value

        for name, convert in (
            ("display_offset_hours", float),
            ("request_timeout", int),
            ("jwt_expiry_days", int),
            ("bcrypt_rounds", int),
            ("port", int),
            ("auth_rate_limit", int),
            ("auth_rate_window", int),
        ):
            value = get(name)
            if value:
                try:
                    values[name] = convert(value)
                except ValueError as err:
                    raise ConfigurationError(
                        f"{ENV_PREFIX}{name.upper()} must be a number, got {value!r}"
                    ) from err

        origins = get("cors_origins")
        if origins is not None:
            values["cors_origins"] = tuple(
                origin.strip() for origin in origins.split(",") if origin.strip()
            )

        return cls(**values)

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> PlantwatchConfig:
        """Build a configuration from the process environment.

        Args:
            env_file: .env file to load first (default: ./.env when present).
                Variables already set in the environment take precedence.
        """
        path = Path(env_file) if env_file else Path.cwd() / ".env"
        if path.exists():
            load_dotenv(path)
            _LOGGER.debug("Loaded environment from %s", path)
        elif env_file:
            raise ConfigurationError(f"Environment file not found: {path}")

        return cls.from_mapping(os.environ)


__all__ = ["ENV_PREFIX", "PlantwatchConfig"]
