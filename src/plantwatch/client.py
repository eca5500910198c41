"""Plant telemetry API client.

This module provides an async client for the external plant telemetry API
that serves plant lists and time-windowed plant views.

Key Features:
- Async/await support with aiohttp
- Bearer token authentication
- Support for injected aiohttp.ClientSession
- Pydantic validation of every response
- Errors translated to the plantwatch exception hierarchy

Failures are terminal per request: there is no retry and no backoff. A
refresh has to be requested explicitly by the caller.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import tzinfo
from typing import Any

import aiohttp
from aiohttp import ClientTimeout
from pydantic import ValidationError

from .constants import DEFAULT_API_BASE_URL, DEFAULT_TIMEOUT
from .dates import day_bounds
from .exceptions import (
    ConfigurationError,
    PlantAPIError,
    PlantAuthError,
    PlantConnectionError,
)
from .models import Controller, PlantListResponse, PlantMetadata, PlantViewResponse

_LOGGER = logging.getLogger(__name__)


class PlantClient:
    """Plant telemetry API client.

    Example:
        ```python
        async with PlantClient(base_url, token, owner_id=owner) as client:
            plants = await client.get_plant_list()
            for plant in plants.plants:
                view = await client.get_day_view(plant.uid, "2025-07-22", tz)
                print(plant.uid, len(view.aggregated_data_snapshots))
        ```
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE_URL,
        token: str = "",
        *,
        owner_id: str = "",
        timeout: int = DEFAULT_TIMEOUT,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """Initialize the telemetry API client.

        Args:
            base_url: Base URL of the telemetry API
            token: Bearer token sent with every request
            owner_id: Default owner id for plant list requests
            timeout: Request timeout in seconds (default: 30)
            session: Optional aiohttp ClientSession for session injection
        """
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.owner_id = owner_id
        self.timeout = ClientTimeout(total=timeout)

        # Session management
        self._session: aiohttp.ClientSession | None = session
        self._owns_session: bool = session is None

    async def __aenter__(self) -> PlantClient:
        """Async context manager entry."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Async context manager exit."""
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session.

        Returns:
            aiohttp.ClientSession: The session to use for requests.
        """
        if self._session is not None and not self._owns_session:
            return self._session

        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True

        return self._session

    async def close(self) -> None:
        """Close the session if we own it.

        Only closes the session if it was created by this client,
        not if it was injected.
        """
        if self._session and not self._session.closed and self._owns_session:
            await self._session.close()

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def fetch_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET a path from the API and return the decoded JSON body.

        Args:
            path: Path relative to the base URL (e.g. "/plant_list/owner")
            params: Optional query parameters

        Returns:
            Decoded JSON body.

        Raises:
            PlantAuthError: If the API rejects the bearer token
            PlantConnectionError: If the API cannot be reached
            PlantAPIError: If the API returns an error status or a non-JSON body
        """
        session = await self._get_session()
        url = f"{self.base_url}/{path.lstrip('/')}"

        try:
            async with session.get(url, params=params, headers=self._headers()) as response:
                if response.status in (401, 403):
                    raise PlantAuthError(
                        f"API rejected credentials (HTTP {response.status})",
                        status=response.status,
                    )
                if response.status >= 400:
                    raise PlantAPIError(
                        f"API responded with status: {response.status}",
                        status=response.status,
                    )
                try:
                    return await response.json(content_type=None)
                except ValueError as err:
                    # Proxies and login walls answer with an HTML page
                    raise PlantAPIError(
                        f"API returned a non-JSON body for {path}",
                        status=response.status,
                    ) from err

        except PlantAPIError:
            raise

        except asyncio.TimeoutError as err:
            raise PlantConnectionError(f"Request to {url} timed out") from err

        except aiohttp.ClientError as err:
            raise PlantConnectionError(f"Connection error: {err}") from err

    async def get_plant_list(self, owner_id: str | None = None) -> PlantListResponse:
        """Get the plants belonging to an owner.

        Args:
            owner_id: Owner id (default: the client's configured owner)

        Returns:
            PlantListResponse: Plants of the owner

        Raises:
            ConfigurationError: If neither an owner id nor a default owner is set
        """
        owner = owner_id or self.owner_id
        if not owner:
            raise ConfigurationError("owner_id is required to list plants")

        data = await self.fetch_json(f"/plant_list/{owner}")
        try:
            result = PlantListResponse.model_validate(data)
        except ValidationError as err:
            raise PlantAPIError(f"Malformed plant list response: {err}") from err

        _LOGGER.debug("Fetched %d plants for owner %s", len(result.plants), owner)
        return result

    async def get_plant_view(self, plant_id: str, start: int, end: int) -> PlantViewResponse:
        """Get the plant view for a time window.

        Args:
            plant_id: Plant uid
            start: Window start, Unix seconds
            end: Window end, Unix seconds

        Returns:
            PlantViewResponse: Snapshots, controllers and metadata
        """
        data = await self.fetch_json(
            f"/plant_view/{plant_id}", params={"start": start, "end": end}
        )
        if data is not None and not isinstance(data, dict):
            raise PlantAPIError(f"Malformed plant view response: {type(data).__name__}")

        try:
            if not data or not data.get("aggregated_data_snapshots"):
                # Windows without samples come back partially filled or empty
                _LOGGER.warning(
                    "No snapshots for %s (%d-%d), using empty view", plant_id, start, end
                )
                data = data or {}
                metadata = data.get("plant_metadata")
                return PlantViewResponse.empty(
                    plant_id,
                    metadata=PlantMetadata.model_validate(metadata) if metadata else None,
                    controllers=[
                        Controller.model_validate(item) for item in data.get("controllers") or []
                    ],
                )
            return PlantViewResponse.model_validate(data)
        except ValidationError as err:
            raise PlantAPIError(f"Malformed plant view response: {err}") from err

    async def get_day_view(
        self, plant_id: str, key: str, tz: tzinfo | None = None
    ) -> PlantViewResponse:
        """Get the plant view for one calendar day.

        Args:
            plant_id: Plant uid
            key: Day key (YYYY-MM-DD)
            tz: Timezone the day is interpreted in (default: UTC)
        """
        start, end = day_bounds(key, tz)
        _LOGGER.debug("Fetching plant view %s for %s", plant_id, key)
        return await self.get_plant_view(plant_id, start, end)


__all__ = ["PlantClient"]
