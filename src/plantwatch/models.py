"""Pydantic models for the plant telemetry API.

Field names follow the API's own snake_case payloads so responses can be
validated directly with ``model_validate``.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class PlantStatus(str, Enum):
    """Operational status reported for plants and devices."""

    WORKING = "Working"
    ERROR = "Error"
    MAINTENANCE = "Maintenance"


class Plant(BaseModel):
    """Plant entry from the plant list endpoint."""

    uid: str
    owner: str = ""
    status: PlantStatus = PlantStatus.WORKING
    device_amount: int = 0
    updated_at: float = 0


class PlantListResponse(BaseModel):
    """Response of ``/plant_list/{owner_id}``."""

    plants: list[Plant] = Field(default_factory=list)


class PlantDataSnapshot(BaseModel):
    """One aggregated telemetry sample.

    Power values are in watts, ``dt`` is a Unix timestamp in seconds.
    """

    uid: str = ""
    dt: int
    pv_p: float = 0.0
    battery_p: float = 0.0
    grid_p: float = 0.0
    load_p: float = 0.0
    wind_p: float = 0.0
    battery_soc: float = 0.0
    price: float = 0.0
    battery_savings: float = 0.0


class CommunicationSettings(BaseModel):
    """Network endpoint of a device."""

    ip: str
    port: int
    unit_id: int


class DeviceParameters(BaseModel):
    """Device parameters block (all fields optional)."""

    communication: CommunicationSettings | None = None
    communication_type: str | None = None
    role: str | None = None
    slave_id: int | None = None


class Device(BaseModel):
    """Device attached to a main feed, possibly with assigned sub-devices."""

    uid: str
    device_type: str = ""
    device_manufacturer: str = ""
    device_model: str = ""
    device_status: PlantStatus = PlantStatus.WORKING
    parameters: DeviceParameters = Field(default_factory=DeviceParameters)
    assigned_devices: list[Device] = Field(default_factory=list)
    updated_at: float = 0


class MainFeed(BaseModel):
    """Grid connection point of a controller."""

    uid: str
    export_power: float = 0.0
    import_power: float = 0.0
    main_feed_devices: list[Device] = Field(default_factory=list)
    updated_at: float = 0


class Controller(BaseModel):
    """Plant controller with its main feeds."""

    uid: str
    serial_number: str = ""
    controller_main_feeds: list[MainFeed] = Field(default_factory=list)
    updated_at: float = 0


class PlantMetadata(BaseModel):
    """Static plant information."""

    uid: str
    owner: str = ""
    status: PlantStatus = PlantStatus.WORKING
    capacity: float = 0.0
    latitude: float = 0.0
    longitude: float = 0.0
    updated_at: float = 0


class PlantViewResponse(BaseModel):
    """Response of ``/plant_view/{plant_id}``: snapshots, device tree, metadata."""

    aggregated_data_snapshots: list[PlantDataSnapshot] = Field(default_factory=list)
    controllers: list[Controller] = Field(default_factory=list)
    plant_metadata: PlantMetadata

    @field_validator("aggregated_data_snapshots")
    @classmethod
    def _sort_snapshots(cls, value: list[PlantDataSnapshot]) -> list[PlantDataSnapshot]:
        return sorted(value, key=lambda snapshot: snapshot.dt)

    @property
    def has_data(self) -> bool:
        """True when at least one snapshot is present."""
        return bool(self.aggregated_data_snapshots)

    @classmethod
    def empty(
        cls,
        plant_id: str,
        *,
        metadata: PlantMetadata | None = None,
        controllers: list[Controller] | None = None,
    ) -> PlantViewResponse:
        """Build the placeholder view used when a day has no snapshots.

        Args:
            plant_id: Plant uid for the placeholder metadata
            metadata: Metadata from the API response, kept when present
            controllers: Controllers from the API response, kept when present
        """
        return cls(
            aggregated_data_snapshots=[],
            controllers=controllers or [],
            plant_metadata=metadata
            or PlantMetadata(
                uid=plant_id,
                owner="Unknown",
                status=PlantStatus.WORKING,
                updated_at=time.time(),
            ),
        )


Device.model_rebuild()


@dataclass
class ChartDataPoint:
    """Snapshot converted for display: power in kW plus a time label."""

    timestamp: int
    time: str
    pv: float
    battery: float
    grid: float
    load: float
    battery_soc: float
    price: float
    battery_savings: float


__all__ = [
    "ChartDataPoint",
    "CommunicationSettings",
    "Controller",
    "Device",
    "DeviceParameters",
    "MainFeed",
    "Plant",
    "PlantDataSnapshot",
    "PlantListResponse",
    "PlantMetadata",
    "PlantStatus",
    "PlantViewResponse",
]
