"""Fetch coordination for per-day plant views.

The coordinator sits between a detail view and the telemetry client:

- Fresh cache entries are served without touching the network (except for
  explicit refreshes).
- At most one fetch per day key is started by non-refresh requests; a
  duplicate request while a fetch is in flight is a no-op.
- After a successful date-change fetch, the previous and next days are
  prefetched in the background. Prefetch failures are logged, never raised.

Every fetch carries a token. The latest foreground request records its
``(day_key, token)`` pair; results that do not answer it are reported with
``is_current=False`` so callers can drop them, and a fetch that has been
superseded by a later refresh of the same day does not overwrite the cache.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from .constants import INITIAL_HISTORY_DAYS
from .dates import adjacent_days, day_key, shift_day
from .exceptions import PlantwatchError

if TYPE_CHECKING:
    from .cache import DayCache
    from .client import PlantClient
    from .models import PlantViewResponse

_LOGGER = logging.getLogger(__name__)


class FetchReason(str, Enum):
    """Why a day is being requested."""

    INITIAL = "initial"
    DATE_CHANGE = "dateChange"
    REFRESH = "refresh"


@dataclass(frozen=True)
class FetchResult:
    """Outcome of a request that produced a payload.

    Attributes:
        day_key: Day the payload belongs to
        payload: Plant view for the day
        from_cache: True if served from the cache without a network call
        token: Token of the fetch (or cache read) that produced the result
        is_current: True if the result answers the latest foreground request
    """

    day_key: str
    payload: PlantViewResponse
    from_cache: bool
    token: int
    is_current: bool


ResultListener = Callable[[FetchResult], None]
ErrorListener = Callable[[str, PlantwatchError], None]


class FetchCoordinator:
    """Coordinates cache lookups, network fetches and prefetching for one plant.

    Example:
        ```python
        cache = DayCache(tz=tz)
        coordinator = FetchCoordinator(client, plant_id, cache)
        result = await coordinator.request("2025-07-22", FetchReason.DATE_CHANGE)
        if result is not None and result.is_current:
            show(result.payload)
        await coordinator.aclose()
        ```
    """

    def __init__(
        self,
        client: PlantClient,
        plant_id: str,
        cache: DayCache,
        *,
        on_result: ResultListener | None = None,
        on_error: ErrorListener | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            client: Telemetry API client
            plant_id: Plant uid every request is made for
            cache: Day cache owned by the caller
            on_result: Called with every current result, including ones
                produced by background fetches the latest request joined
            on_error: Called when a background fetch for the latest requested
                day fails (foreground failures are raised instead)
        """
        self._client = client
        self.plant_id = plant_id
        self._cache = cache
        self._on_result = on_result
        self._on_error = on_error

        self._tokens = itertools.count(1)
        self._in_flight: dict[str, int] = {}
        self._latest: tuple[str, int] | None = None
        self._background: set[asyncio.Task[None]] = set()
        self._closed = False

    @property
    def cache(self) -> DayCache:
        """The day cache this coordinator writes to."""
        return self._cache

    @property
    def in_flight(self) -> frozenset[str]:
        """Day keys with a network fetch in progress."""
        return frozenset(self._in_flight)

    @property
    def latest_key(self) -> str | None:
        """Day key of the latest foreground request."""
        return self._latest[0] if self._latest else None

    @property
    def pending_background(self) -> int:
        """Number of unfinished background fetches."""
        return len(self._background)

    def is_current(self, key: str, token: int) -> bool:
        """Check whether ``(key, token)`` answers the latest foreground request."""
        return self._latest == (key, token)

    def _begin(self, key: str) -> int:
        token = next(self._tokens)
        self._in_flight[key] = token
        return token

    def _publish(self, result: FetchResult) -> None:
        if result.is_current and self._on_result is not None:
            self._on_result(result)

    async def request(
        self,
        key: str | datetime,
        reason: FetchReason | str = FetchReason.INITIAL,
    ) -> FetchResult | None:
        """Request the plant view for a day.

        Args:
            key: Day key, or a date/datetime truncated to one
            reason: initial, dateChange or refresh

        Returns:
            FetchResult, or None when a fetch for the day is already in flight
            (the in-flight fetch will publish the result).

        Raises:
            PlantwatchError: If the network fetch fails. Cached entries are
                left untouched.
        """
        if self._closed:
            raise RuntimeError("FetchCoordinator is closed")

        reason = FetchReason(reason)
        key = day_key(key, self._cache.tz)

        if reason is not FetchReason.REFRESH:
            entry = self._cache.get(key)
            if entry is not None and self._cache.is_fresh(key):
                token = next(self._tokens)
                self._latest = (key, token)
                _LOGGER.debug("Cache hit for %s (%s)", key, reason.value)
                result = FetchResult(key, entry.payload, True, token, True)
                self._publish(result)
                if reason is FetchReason.DATE_CHANGE:
                    self.prefetch_adjacent(key)
                return result

            if key in self._in_flight:
                # Join the running fetch: its result now answers this request
                self._latest = (key, self._in_flight[key])
                _LOGGER.debug("Already fetching %s, skipping duplicate request", key)
                return None

        token = self._begin(key)
        self._latest = (key, token)
        _LOGGER.debug("Fetching %s (%s, token %d)", key, reason.value, token)

        payload = await self._fetch(key, token)

        result = FetchResult(key, payload, False, token, self.is_current(key, token))
        if not result.is_current:
            _LOGGER.debug("Discarding result for %s: no longer the latest request", key)
        self._publish(result)

        if reason is FetchReason.DATE_CHANGE:
            self.prefetch_adjacent(key)

        return result

    async def _fetch(self, key: str, token: int) -> PlantViewResponse:
        """Run the network fetch for a token created by ``_begin``."""
        try:
            payload = await self._client.get_day_view(self.plant_id, key, self._cache.tz)
        finally:
            owns_key = self._in_flight.get(key) == token
            if owns_key:
                del self._in_flight[key]

        if owns_key:
            self._cache.put(key, payload)
        else:
            _LOGGER.debug("Fetch %d for %s superseded, cache not updated", token, key)
        return payload

    def prefetch(self, keys: Iterable[str]) -> list[asyncio.Task[None]]:
        """Fetch days in the background unless fresh or already in flight.

        Returns:
            The background tasks that were started.
        """
        tasks: list[asyncio.Task[None]] = []
        if self._closed:
            return tasks

        for key in keys:
            if self._cache.is_fresh(key) or key in self._in_flight:
                continue
            token = self._begin(key)
            task = asyncio.create_task(self._prefetch(key, token))
            self._background.add(task)
            task.add_done_callback(self._background.discard)
            tasks.append(task)
        return tasks

    def prefetch_adjacent(self, key: str) -> list[asyncio.Task[None]]:
        """Prefetch the days before and after ``key``."""
        return self.prefetch(adjacent_days(key))

    async def _prefetch(self, key: str, token: int) -> None:
        try:
            payload = await self._fetch(key, token)
        except PlantwatchError as err:
            _LOGGER.warning("Prefetch failed for %s: %s", key, err)
            if self.is_current(key, token) and self._on_error is not None:
                self._on_error(key, err)
            return

        _LOGGER.debug("Prefetched and cached %s", key)
        if self.is_current(key, token):
            self._publish(FetchResult(key, payload, False, token, True))

    async def populate_initial(
        self, key: str, days_back: int = INITIAL_HISTORY_DAYS
    ) -> FetchResult | None:
        """Load ``key`` in the foreground, then the preceding days in the background.

        Returns:
            The foreground result for ``key``.
        """
        result = await self.request(key, FetchReason.INITIAL)
        self.prefetch(shift_day(key, -offset) for offset in range(1, days_back + 1))
        return result

    async def wait_background(self) -> None:
        """Wait until every background fetch has finished."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel background fetches and refuse further requests."""
        self._closed = True
        tasks = list(self._background)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._in_flight.clear()


__all__ = ["FetchCoordinator", "FetchReason", "FetchResult"]
