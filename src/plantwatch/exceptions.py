"""Exception classes for plantwatch.

All errors raised by the library inherit from :class:`PlantwatchError` so
callers can use a single ``except PlantwatchError`` to catch telemetry API,
export and configuration failures.
"""

from __future__ import annotations


class PlantwatchError(Exception):
    """Base exception for all plantwatch errors."""

    pass


class PlantAPIError(PlantwatchError):
    """The telemetry API returned an error status or an unusable body."""

    def __init__(self, message: str, status: int | None = None) -> None:
        """Initialize with message and optional HTTP status.

        Args:
            message: Human-readable error description
            status: HTTP status returned by the API, if any
        """
        super().__init__(message)
        self.status = status


class PlantConnectionError(PlantwatchError):
    """Failed to reach the telemetry API (network error or timeout)."""

    pass


class PlantAuthError(PlantAPIError):
    """The telemetry API rejected the configured bearer token."""

    pass


class ExportValidationError(PlantwatchError):
    """Export input is empty or does not look like numeric telemetry."""

    pass


class ConfigurationError(PlantwatchError):
    """Configuration value is missing or invalid."""

    pass


class AuthenticationError(PlantwatchError):
    """Local user authentication failed.

    Carries the HTTP status the server layer should answer with.
    """

    def __init__(self, message: str, status: int = 401) -> None:
        super().__init__(message)
        self.status = status


__all__ = [
    "AuthenticationError",
    "ConfigurationError",
    "ExportValidationError",
    "PlantAPIError",
    "PlantAuthError",
    "PlantConnectionError",
    "PlantwatchError",
]
