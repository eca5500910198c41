"""Unit tests for Pydantic models."""

from __future__ import annotations

from typing import Any

import pytest
from pydantic import ValidationError

from plantwatch.models import (
    Device,
    PlantListResponse,
    PlantMetadata,
    PlantStatus,
    PlantViewResponse,
)


class TestPlantListResponse:
    """Test PlantListResponse model."""

    def test_parse_plant_list(self, plant_list_response: dict[str, Any]) -> None:
        model = PlantListResponse.model_validate(plant_list_response)

        assert [plant.status for plant in model.plants] == [
            PlantStatus.WORKING,
            PlantStatus.ERROR,
            PlantStatus.MAINTENANCE,
        ]
        assert model.plants[0].device_amount == 14
        assert model.plants[0].owner == "North Field Energy"

    def test_missing_plants_key(self) -> None:
        assert PlantListResponse.model_validate({}).plants == []

    def test_unknown_status_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PlantListResponse.model_validate({"plants": [{"uid": "p1", "status": "Offline"}]})


class TestPlantViewResponse:
    """Test PlantViewResponse model."""

    def test_snapshots_sorted_by_timestamp(self, plant_view_response: dict[str, Any]) -> None:
        model = PlantViewResponse.model_validate(plant_view_response)

        assert [snapshot.uid for snapshot in model.aggregated_data_snapshots] == [
            "snap-0000",
            "snap-0200",
            "snap-1200",
        ]
        assert model.has_data is True

    def test_nested_device_tree(self, plant_view: PlantViewResponse) -> None:
        feed = plant_view.controllers[0].controller_main_feeds[0]
        inverter = feed.main_feed_devices[0]

        assert feed.export_power == 3250.0
        assert inverter.parameters.communication is not None
        assert inverter.parameters.communication.port == 502
        assert inverter.assigned_devices[0].uid == "bat-1"
        assert inverter.assigned_devices[0].parameters.slave_id == 2
        assert inverter.assigned_devices[0].device_status == PlantStatus.MAINTENANCE

    def test_device_parameters_default_empty(self) -> None:
        device = Device.model_validate({"uid": "d1"})

        assert device.parameters.communication is None
        assert device.assigned_devices == []
        assert device.device_status == PlantStatus.WORKING

    def test_metadata_required(self) -> None:
        with pytest.raises(ValidationError):
            PlantViewResponse.model_validate({"aggregated_data_snapshots": []})

    def test_empty_placeholder(self) -> None:
        model = PlantViewResponse.empty("p1")

        assert model.has_data is False
        assert model.controllers == []
        assert model.plant_metadata.uid == "p1"
        assert model.plant_metadata.owner == "Unknown"
        assert model.plant_metadata.status == PlantStatus.WORKING
        assert model.plant_metadata.updated_at > 0

    def test_empty_keeps_given_metadata(self) -> None:
        metadata = PlantMetadata(uid="p1", owner="Harbor Storage Coop")

        model = PlantViewResponse.empty("p1", metadata=metadata)

        assert model.plant_metadata is metadata

    def test_json_dump_uses_status_values(self, plant_view: PlantViewResponse) -> None:
        dumped = plant_view.model_dump(mode="json")

        assert dumped["plant_metadata"]["status"] == "Working"
        assert dumped["aggregated_data_snapshots"][0]["dt"] == 1753142400
