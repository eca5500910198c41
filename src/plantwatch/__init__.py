"""Solar plant telemetry dashboard core.

Usage:
    Plant list and raw views:
        from plantwatch import PlantClient

        async with PlantClient(base_url, token, owner_id=owner) as client:
            plants = await client.get_plant_list()

    Cached, prefetching detail view:
        from plantwatch import PlantClient, PlantDetailView

        async with PlantClient(base_url, token) as client:
            async with PlantDetailView(client, plant_id, tz=tz) as view:
                await view.previous_day()
                print(view.power_stats)
"""

from __future__ import annotations

from .cache import CacheEntry, DayCache
from .client import PlantClient
from .config import PlantwatchConfig
from .coordinator import FetchCoordinator, FetchReason, FetchResult
from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    ExportValidationError,
    PlantAPIError,
    PlantAuthError,
    PlantConnectionError,
    PlantwatchError,
)
from .export import ExportConfig, ExportFile, ExportFormat, export_plant_data
from .models import ChartDataPoint, Plant, PlantStatus, PlantViewResponse
from .view import PlantDetailView

__version__ = "0.1.0"
__all__ = [
    "PlantClient",
    "PlantDetailView",
    "PlantwatchConfig",
    # Cache and fetching
    "CacheEntry",
    "DayCache",
    "FetchCoordinator",
    "FetchReason",
    "FetchResult",
    # Export
    "ExportConfig",
    "ExportFile",
    "ExportFormat",
    "export_plant_data",
    # Models
    "ChartDataPoint",
    "Plant",
    "PlantStatus",
    "PlantViewResponse",
    # Exceptions
    "PlantwatchError",
    "PlantAPIError",
    "PlantAuthError",
    "PlantConnectionError",
    "ExportValidationError",
    "ConfigurationError",
    "AuthenticationError",
]
