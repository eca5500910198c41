"""Tests for the telemetry proxy and export routes."""

from __future__ import annotations

import io
from dataclasses import replace
from unittest.mock import Mock

import pytest
from aiohttp.test_utils import TestClient, TestServer
from openpyxl import load_workbook

from plantwatch.config import PlantwatchConfig
from plantwatch.exceptions import PlantAPIError, PlantConnectionError
from plantwatch.models import PlantViewResponse
from plantwatch.server import UserStore, create_app

PLANT_ID = "6f1c2a9e-0b7d-4d7e-9a51-2f8c3e4b5a61"
VIEW_URL = f"/api/plants/plant_view/{PLANT_ID}"


class TestPlantListProxy:
    """Test GET /api/plants/plant_list."""

    @pytest.mark.asyncio
    async def test_returns_upstream_list(self, api_client: TestClient) -> None:
        resp = await api_client.get("/api/plants/plant_list")

        assert resp.status == 200
        body = await resp.json()
        assert [plant["status"] for plant in body["plants"]] == ["Working", "Error", "Maintenance"]

    @pytest.mark.asyncio
    async def test_upstream_failure(
        self, api_client: TestClient, mock_plant_client: Mock
    ) -> None:
        mock_plant_client.get_plant_list.side_effect = PlantConnectionError(
            "Connection error: refused"
        )

        resp = await api_client.get("/api/plants/plant_list")

        assert resp.status == 502
        assert await resp.json() == {
            "error": "Failed to fetch plant list",
            "details": "Connection error: refused",
        }

    @pytest.mark.asyncio
    async def test_missing_owner_id(
        self, server_config: PlantwatchConfig, user_store: UserStore
    ) -> None:
        app = create_app(replace(server_config, owner_id=""), user_store=user_store)
        client = TestClient(TestServer(app))
        await client.start_server()
        try:
            resp = await client.get("/api/plants/plant_list")

            assert resp.status == 500
            assert await resp.json() == {
                "error": "Failed to fetch plant list",
                "details": "owner_id is required to list plants",
            }
        finally:
            await client.close()


class TestPlantViewProxy:
    """Test GET /api/plants/plant_view/{plant_id}."""

    @pytest.mark.asyncio
    async def test_forwards_window(self, api_client: TestClient, mock_plant_client: Mock) -> None:
        resp = await api_client.get(VIEW_URL, params={"start": "1753142400", "end": "1753228799"})

        assert resp.status == 200
        body = await resp.json()
        assert body["plant_metadata"]["uid"] == PLANT_ID
        assert len(body["aggregated_data_snapshots"]) == 3
        mock_plant_client.get_plant_view.assert_awaited_once_with(
            PLANT_ID, 1753142400, 1753228799
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("params", "message"),
        [
            ({"start": "1753142400"}, "start and end parameters are required"),
            ({"start": "yesterday", "end": "1753228799"}, "Unix timestamps"),
            ({"start": "1753228799", "end": "1753142400"}, "before start"),
        ],
    )
    async def test_bad_window(
        self,
        api_client: TestClient,
        mock_plant_client: Mock,
        params: dict[str, str],
        message: str,
    ) -> None:
        resp = await api_client.get(VIEW_URL, params=params)

        assert resp.status == 400
        assert message in (await resp.json())["error"]
        mock_plant_client.get_plant_view.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_upstream_failure(
        self, api_client: TestClient, mock_plant_client: Mock
    ) -> None:
        mock_plant_client.get_plant_view.side_effect = PlantAPIError(
            "API responded with status: 500", status=500
        )

        resp = await api_client.get(VIEW_URL, params={"start": "1", "end": "2"})

        assert resp.status == 502
        body = await resp.json()
        assert body["error"] == "Failed to fetch plant view"
        assert body["details"] == "API responded with status: 500"


class TestExport:
    """Test GET /api/plants/plant_view/{plant_id}/export."""

    @pytest.mark.asyncio
    async def test_csv_download(self, api_client: TestClient, mock_plant_client: Mock) -> None:
        resp = await api_client.get(f"{VIEW_URL}/export", params={"from": "2025-07-22"})

        assert resp.status == 200
        assert resp.headers["Content-Type"].startswith("text/csv")
        assert resp.headers["Content-Disposition"] == (
            f'attachment; filename="plant-{PLANT_ID}-2025-07-22.csv"'
        )
        lines = (await resp.text()).split("\n")
        assert lines[0].startswith("Timestamp,Formatted Timestamp,")
        assert len(lines) == 4
        mock_plant_client.get_plant_view.assert_awaited_once_with(
            PLANT_ID, 1753142400, 1753228799
        )

    @pytest.mark.asyncio
    async def test_xlsx_download_for_range(
        self, api_client: TestClient, mock_plant_client: Mock
    ) -> None:
        resp = await api_client.get(
            f"{VIEW_URL}/export",
            params={"from": "2025-07-21", "to": "2025-07-22", "format": "XLSX"},
        )

        assert resp.status == 200
        assert resp.headers["Content-Disposition"].endswith(
            '-2025-07-21_to_2025-07-22.xlsx"'
        )
        workbook = load_workbook(io.BytesIO(await resp.read()))
        assert workbook["Energy Data"].max_row == 4
        mock_plant_client.get_plant_view.assert_awaited_once_with(
            PLANT_ID, 1753142400 - 86400, 1753228799
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("params", "message"),
        [
            ({}, "'from' parameter is required"),
            ({"from": "22.07.2025"}, "Invalid day key"),
            ({"from": "2025-07-22", "to": "2025-07-21"}, "before start"),
            ({"from": "2025-07-22", "format": "pdf"}, "pdf"),
        ],
    )
    async def test_bad_request(
        self,
        api_client: TestClient,
        mock_plant_client: Mock,
        params: dict[str, str],
        message: str,
    ) -> None:
        resp = await api_client.get(f"{VIEW_URL}/export", params=params)

        assert resp.status == 400
        assert message in (await resp.json())["error"]
        mock_plant_client.get_plant_view.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_data_in_range(
        self, api_client: TestClient, mock_plant_client: Mock
    ) -> None:
        mock_plant_client.get_plant_view.return_value = PlantViewResponse.empty(PLANT_ID)

        resp = await api_client.get(f"{VIEW_URL}/export", params={"from": "2025-07-22"})

        assert resp.status == 400
        assert "No data" in (await resp.json())["error"]

    @pytest.mark.asyncio
    async def test_upstream_failure(
        self, api_client: TestClient, mock_plant_client: Mock
    ) -> None:
        mock_plant_client.get_plant_view.side_effect = PlantConnectionError("timed out")

        resp = await api_client.get(f"{VIEW_URL}/export", params={"from": "2025-07-22"})

        assert resp.status == 502
