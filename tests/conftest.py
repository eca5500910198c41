"""Pytest configuration and fixtures for plantwatch tests."""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator, Generator
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, Mock

import pytest
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer
from aioresponses import aioresponses

from plantwatch.client import PlantClient
from plantwatch.config import PlantwatchConfig
from plantwatch.models import PlantListResponse, PlantViewResponse
from plantwatch.server import UserStore, create_app

BASE_URL = "http://telemetry.test:5001"
OWNER_ID = "owner-1"
PLANT_ID = "6f1c2a9e-0b7d-4d7e-9a51-2f8c3e4b5a61"

# Load sample API responses
SAMPLES_DIR = Path(__file__).parent / "samples"


def load_sample(filename: str) -> dict[str, Any]:
    """Load a sample JSON response file."""
    file_path = SAMPLES_DIR / filename
    with open(file_path) as f:
        result: dict[str, Any] = json.load(f)
        return result


@pytest.fixture
def plant_list_response() -> dict[str, Any]:
    """Sample plant list response."""
    return load_sample("plant_list.json")


@pytest.fixture
def plant_view_response() -> dict[str, Any]:
    """Sample plant view response for 2025-07-22 (UTC)."""
    return load_sample("plant_view.json")


@pytest.fixture
def plant_view(plant_view_response: dict[str, Any]) -> PlantViewResponse:
    """Validated sample plant view."""
    return PlantViewResponse.model_validate(plant_view_response)


@pytest.fixture
def mocked_api() -> Generator[aioresponses, None, None]:
    """Create aioresponses mock for HTTP requests."""
    with aioresponses() as m:
        yield m


@pytest.fixture
def server_config() -> PlantwatchConfig:
    """Configuration for an in-process server with a throwaway database."""
    return PlantwatchConfig(
        api_base_url=BASE_URL,
        api_token="upstream-token",
        owner_id=OWNER_ID,
        jwt_secret="test-secret",
        bcrypt_rounds=4,
        database_url="sqlite://",
        auth_rate_limit=100,
    )


@pytest.fixture
def mock_plant_client(
    plant_list_response: dict[str, Any], plant_view: PlantViewResponse
) -> Mock:
    """Telemetry client double returning the sample responses."""
    client = Mock(spec=PlantClient)
    client.get_plant_list = AsyncMock(
        return_value=PlantListResponse.model_validate(plant_list_response)
    )
    client.get_plant_view = AsyncMock(return_value=plant_view)
    client.get_day_view = AsyncMock(return_value=plant_view)
    client.close = AsyncMock()
    return client


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    """In-memory user store."""
    store = UserStore("sqlite://")
    store.create_tables()
    yield store
    store.dispose()


@pytest.fixture
async def api_client(
    server_config: PlantwatchConfig, mock_plant_client: Mock, user_store: UserStore
) -> AsyncGenerator[TestClient[web.Request, web.Application], None]:
    """Test client for the local server backed by the client double."""
    app = create_app(server_config, plant_client=mock_plant_client, user_store=user_store)
    client = TestClient(TestServer(app))
    await client.start_server()
    yield client
    await client.close()
