"""Unit tests for the plant detail view controller."""

from __future__ import annotations

import asyncio
from datetime import UTC
from typing import Any
from unittest.mock import AsyncMock, Mock

import pytest

from plantwatch.client import PlantClient
from plantwatch.dates import shift_day, today_key
from plantwatch.exceptions import PlantConnectionError
from plantwatch.models import PlantViewResponse
from plantwatch.view import PlantDetailView

PLANT_ID = "6f1c2a9e-0b7d-4d7e-9a51-2f8c3e4b5a61"
TODAY = today_key(UTC)
DAY = shift_day(TODAY, -2)


@pytest.fixture
def client(plant_view: PlantViewResponse) -> Mock:
    client = Mock(spec=PlantClient)
    client.get_day_view = AsyncMock(return_value=plant_view)
    return client


def requested_days(client: Mock) -> list[str]:
    return [call.args[1] for call in client.get_day_view.await_args_list]


class TestMount:
    """Test mounting and unmounting."""

    @pytest.mark.asyncio
    async def test_mount_loads_today_and_history(
        self, client: Mock, plant_view: PlantViewResponse
    ) -> None:
        view = PlantDetailView(client, PLANT_ID, tz=UTC)
        await view.mount()
        await view.coordinator.wait_background()

        assert view.selected_day == TODAY
        assert view.data is plant_view
        assert view.loading is False
        assert view.error is None
        assert requested_days(client)[0] == TODAY
        assert sorted(requested_days(client)[1:]) == [shift_day(TODAY, -n) for n in (3, 2, 1)]
        assert view.cache_info == {"size": 4, "current_cached": True, "current_key": TODAY}

        await view.unmount()

    @pytest.mark.asyncio
    async def test_mount_on_initial_day(self, client: Mock) -> None:
        async with PlantDetailView(client, PLANT_ID, tz=UTC, initial_day=DAY) as view:
            assert view.selected_day == DAY
            assert requested_days(client)[0] == DAY

    @pytest.mark.asyncio
    async def test_mount_failure_sets_error(self, client: Mock) -> None:
        client.get_day_view.side_effect = PlantConnectionError("Connection error: refused")

        async with PlantDetailView(client, PLANT_ID, tz=UTC, initial_day=DAY) as view:
            assert view.data is None
            assert view.error == "Connection error: refused"
            assert view.loading is False

    @pytest.mark.asyncio
    async def test_unmount_discards_cache(self, client: Mock) -> None:
        view = PlantDetailView(client, PLANT_ID, tz=UTC, initial_day=DAY)
        await view.mount()
        await view.unmount()

        assert view.mounted is False
        assert view.cache_info["size"] == 0
        with pytest.raises(RuntimeError, match="not mounted"):
            _ = view.cache

    @pytest.mark.asyncio
    async def test_each_mount_gets_its_own_cache(self, client: Mock) -> None:
        async with PlantDetailView(client, PLANT_ID, tz=UTC, initial_day=DAY) as first:
            first_cache = first.cache
        async with PlantDetailView(client, PLANT_ID, tz=UTC, initial_day=DAY) as second:
            assert second.cache is not first_cache


class TestNavigation:
    """Test date selection, day stepping and refresh."""

    @pytest.mark.asyncio
    async def test_select_date_fetches_and_shows(self, client: Mock) -> None:
        other = PlantViewResponse.empty(PLANT_ID)
        target = shift_day(DAY, -1)

        async with PlantDetailView(client, PLANT_ID, tz=UTC, initial_day=DAY) as view:
            await view.coordinator.wait_background()
            client.get_day_view.reset_mock()
            view.cache.invalidate(target)
            client.get_day_view.return_value = other

            result = await view.select_date(target)

            assert result is not None and result.from_cache is False
            assert view.selected_day == target
            assert view.data is other
            assert view.chart_loading is False
            assert requested_days(client)[0] == target

    @pytest.mark.asyncio
    async def test_select_same_date_is_ignored(self, client: Mock) -> None:
        async with PlantDetailView(client, PLANT_ID, tz=UTC, initial_day=DAY) as view:
            calls = client.get_day_view.await_count

            assert await view.select_date(DAY) is None
            assert client.get_day_view.await_count == calls

    @pytest.mark.asyncio
    async def test_previous_day_served_from_prefetched_history(self, client: Mock) -> None:
        async with PlantDetailView(client, PLANT_ID, tz=UTC, initial_day=DAY) as view:
            await view.coordinator.wait_background()
            calls = client.get_day_view.await_count

            result = await view.previous_day()

            assert result is not None and result.from_cache is True
            assert view.selected_day == shift_day(DAY, -1)
            assert client.get_day_view.await_count == calls

    @pytest.mark.asyncio
    async def test_stepping_onto_oldest_cached_day_extends_history(self, client: Mock) -> None:
        async with PlantDetailView(client, PLANT_ID, tz=UTC) as view:
            await view.coordinator.wait_background()
            oldest = shift_day(TODAY, -3)
            await view.select_date(shift_day(TODAY, -2))
            client.get_day_view.reset_mock()

            result = await view.previous_day()
            await view.coordinator.wait_background()

            assert result is not None and result.from_cache is True
            assert view.selected_day == oldest
            assert requested_days(client) == [shift_day(oldest, -1)]

    @pytest.mark.asyncio
    async def test_next_day_prefetches_neighbours(self, client: Mock) -> None:
        async with PlantDetailView(client, PLANT_ID, tz=UTC, initial_day=DAY) as view:
            await view.coordinator.wait_background()
            client.get_day_view.reset_mock()

            await view.next_day()
            await view.coordinator.wait_background()

            after = shift_day(DAY, 1)
            assert view.selected_day == after
            # DAY itself is cached; only the new day and the day after it are fetched
            assert sorted(requested_days(client)) == [after, shift_day(after, 1)]

    @pytest.mark.asyncio
    async def test_refresh_refetches_selected_day(self, client: Mock) -> None:
        refreshed = PlantViewResponse.empty(PLANT_ID)

        async with PlantDetailView(client, PLANT_ID, tz=UTC, initial_day=DAY) as view:
            await view.coordinator.wait_background()
            client.get_day_view.reset_mock()
            client.get_day_view.return_value = refreshed

            result = await view.refresh()

            assert result is not None and result.from_cache is False
            assert requested_days(client) == [DAY]
            assert view.data is refreshed
            assert view.cache.is_fresh(DAY)

    @pytest.mark.asyncio
    async def test_refresh_failure_keeps_stale_data(
        self, client: Mock, plant_view: PlantViewResponse
    ) -> None:
        async with PlantDetailView(client, PLANT_ID, tz=UTC, initial_day=DAY) as view:
            await view.coordinator.wait_background()
            client.get_day_view.side_effect = PlantConnectionError("timed out")

            assert await view.refresh() is None

            assert view.error == "timed out"
            assert view.data is plant_view
            entry = view.cache.get(DAY)
            assert entry is not None and entry.is_stale
            assert view.chart_loading is False

    @pytest.mark.asyncio
    async def test_late_response_for_previous_selection_is_ignored(
        self, client: Mock, plant_view: PlantViewResponse
    ) -> None:
        slow_day = shift_day(TODAY, -1)
        fast_day = TODAY
        gate = asyncio.Event()
        slow_payload = PlantViewResponse.empty("slow")

        async def day_view(plant_id: str, key: str, tz: Any = None) -> PlantViewResponse:
            if key == slow_day:
                await gate.wait()
                return slow_payload
            return plant_view

        async with PlantDetailView(client, PLANT_ID, tz=UTC, initial_day=DAY) as view:
            await view.coordinator.wait_background()
            client.get_day_view.side_effect = day_view

            slow = asyncio.create_task(view.select_date(slow_day))
            await asyncio.sleep(0)
            await view.select_date(fast_day)
            gate.set()
            slow_result = await slow

            assert slow_result is not None and slow_result.is_current is False
            assert view.selected_day == fast_day
            assert view.data is plant_view


class TestDerivedData:
    """Test chart data derived from the shown view."""

    @pytest.mark.asyncio
    async def test_chart_data_and_stats(self, client: Mock) -> None:
        async with PlantDetailView(client, PLANT_ID, tz=UTC, initial_day=DAY) as view:
            points = view.chart_data

            assert [point.time for point in points] == ["00:00", "02:00", "12:00"]
            assert points[-1].pv == pytest.approx(8.25)
            assert view.power_stats["pv"]["max"] == pytest.approx(8.25)

    @pytest.mark.asyncio
    async def test_chart_labels_use_display_offset_and_format(self, client: Mock) -> None:
        async with PlantDetailView(
            client, PLANT_ID, tz=UTC, offset_hours=6, time_format="12", initial_day=DAY
        ) as view:
            labels = [point.time for point in view.chart_data]
            assert labels == ["06:00 AM", "08:00 AM", "06:00 PM"]

    def test_unmounted_view_has_no_chart_data(self, client: Mock) -> None:
        view = PlantDetailView(client, PLANT_ID)
        assert view.chart_data == []
        assert view.power_stats == {}
