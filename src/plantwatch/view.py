"""Plant detail view controller.

Owns the state of one plant detail session: the selected day, the data shown
for it, loading flags and the last error. The day cache and the fetch
coordinator are created on mount and discarded on unmount, so nothing is
shared between sessions.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, tzinfo
from typing import TYPE_CHECKING, Any

from .cache import DayCache
from .charts import calculate_power_stats, convert_to_chart_data
from .coordinator import FetchCoordinator, FetchReason, FetchResult
from .dates import day_key, shift_day, today_key
from .exceptions import PlantwatchError

if TYPE_CHECKING:
    from .client import PlantClient
    from .models import ChartDataPoint, PlantViewResponse

_LOGGER = logging.getLogger(__name__)


class PlantDetailView:
    """View controller for a single plant.

    Example:
        ```python
        async with PlantDetailView(client, plant_id, tz=tz) as view:
            print(view.selected_day, len(view.chart_data))
            await view.previous_day()
            await view.refresh()
        ```
    """

    def __init__(
        self,
        client: PlantClient,
        plant_id: str,
        *,
        tz: tzinfo | None = None,
        offset_hours: float = 0,
        time_format: str = "24",
        initial_day: str | date | None = None,
    ) -> None:
        """Initialize the view (nothing is fetched until mount).

        Args:
            client: Telemetry API client
            plant_id: Plant uid
            tz: Plant timezone for day keys and labels
            offset_hours: Display offset for chart labels
            time_format: "24" or "12" hour chart labels
            initial_day: Day to open on (default: today)
        """
        self._client = client
        self.plant_id = plant_id
        self._tz = tz
        self.offset_hours = offset_hours
        self.time_format = time_format
        self._initial_day = initial_day

        self.selected_day: str | None = None
        self.data: PlantViewResponse | None = None
        self.error: str | None = None
        self.loading = False
        self.chart_loading = False

        self._cache: DayCache | None = None
        self._coordinator: FetchCoordinator | None = None

    async def __aenter__(self) -> PlantDetailView:
        await self.mount()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.unmount()

    @property
    def mounted(self) -> bool:
        return self._coordinator is not None

    @property
    def coordinator(self) -> FetchCoordinator:
        if self._coordinator is None:
            raise RuntimeError("View is not mounted")
        return self._coordinator

    @property
    def cache(self) -> DayCache:
        if self._cache is None:
            raise RuntimeError("View is not mounted")
        return self._cache

    async def mount(self) -> None:
        """Create the cache and coordinator, then load the initial day.

        The initial day is loaded in the foreground; the three days before
        it are fetched in the background.
        """
        if self.mounted:
            return

        self._cache = DayCache(tz=self._tz)
        self._coordinator = FetchCoordinator(
            self._client,
            self.plant_id,
            self._cache,
            on_result=self._apply_result,
            on_error=self._apply_background_error,
        )

        key = (
            day_key(self._initial_day, self._tz)
            if self._initial_day is not None
            else today_key(self._cache.tz)
        )
        self.selected_day = key
        self.loading = True
        self.error = None
        try:
            await self._coordinator.populate_initial(key)
        except PlantwatchError as err:
            self._apply_error(key, err)
        finally:
            self.loading = False

    async def unmount(self) -> None:
        """Cancel background work and drop the cache."""
        if self._coordinator is not None:
            await self._coordinator.aclose()
        self._coordinator = None
        self._cache = None
        _LOGGER.debug("Detail view for %s unmounted", self.plant_id)

    def _apply_result(self, result: FetchResult) -> None:
        if result.day_key != self.selected_day:
            return
        self.data = result.payload
        self.error = None
        self.chart_loading = False

    def _apply_error(self, key: str, err: PlantwatchError) -> None:
        _LOGGER.error("Error fetching data for %s on %s: %s", self.plant_id, key, err)
        if key == self.selected_day:
            self.error = str(err) or "Failed to fetch plant data"

    def _apply_background_error(self, key: str, err: PlantwatchError) -> None:
        self._apply_error(key, err)
        self.chart_loading = False

    async def _load(self, key: str, reason: FetchReason) -> FetchResult | None:
        self.chart_loading = True
        self.error = None
        result: FetchResult | None = None
        try:
            result = await self.coordinator.request(key, reason)
        except PlantwatchError as err:
            self._apply_error(key, err)
        finally:
            # A joined in-flight fetch clears the flag when it publishes
            if result is not None or self.error is not None:
                self.chart_loading = False
        return result

    async def select_date(self, value: str | date | datetime) -> FetchResult | None:
        """Show another day.

        Selecting the day that is already selected does nothing.
        """
        key = day_key(value, self.cache.tz)
        if key == self.selected_day:
            _LOGGER.debug("Skipping duplicate date change for %s", key)
            return None
        self.selected_day = key
        return await self._load(key, FetchReason.DATE_CHANGE)

    async def previous_day(self) -> FetchResult | None:
        return await self.select_date(shift_day(self._require_day(), -1))

    async def next_day(self) -> FetchResult | None:
        return await self.select_date(shift_day(self._require_day(), 1))

    async def refresh(self) -> FetchResult | None:
        """Mark the selected day stale and refetch it.

        The stale entry remains visible until the new data arrives.
        """
        key = self._require_day()
        self.cache.invalidate(key)
        return await self._load(key, FetchReason.REFRESH)

    def _require_day(self) -> str:
        if self.selected_day is None:
            raise RuntimeError("View is not mounted")
        return self.selected_day

    @property
    def chart_data(self) -> list[ChartDataPoint]:
        """Chart points for the displayed data."""
        if self.data is None:
            return []
        return convert_to_chart_data(
            self.data.aggregated_data_snapshots,
            self._cache.tz if self._cache else self._tz,
            offset_hours=self.offset_hours,
            time_format=self.time_format,
        )

    @property
    def power_stats(self) -> dict[str, dict[str, float]]:
        return calculate_power_stats(self.chart_data)

    @property
    def cache_info(self) -> dict[str, Any]:
        """Cache size and whether the selected day is cached."""
        size = len(self._cache) if self._cache is not None else 0
        current = self.selected_day
        return {
            "size": size,
            "current_cached": bool(self._cache is not None and current in self._cache),
            "current_key": current,
        }


__all__ = ["PlantDetailView"]
