"""Plant list filtering, pagination and totals."""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .constants import PLANTS_PER_PAGE
from .models import Plant, PlantStatus


@dataclass
class Page:
    """One page of plants.

    Attributes:
        items: Plants on this page
        page: 1-based page number (clamped into range)
        total_pages: Number of pages (at least 1)
        total_items: Number of plants across all pages
    """

    items: list[Plant]
    page: int
    total_pages: int
    total_items: int

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


def filter_plants(
    plants: Iterable[Plant], search: str = "", status: str | PlantStatus = "all"
) -> list[Plant]:
    """Filter plants by a search term and a status.

    Args:
        plants: Plants to filter
        search: Case-insensitive substring matched against uid and owner
        status: "all" or a plant status ("Working", "Error", "Maintenance")
    """
    term = search.strip().lower()
    wanted = None if status in ("all", "", None) else PlantStatus(status)

    result = []
    for plant in plants:
        if term and term not in plant.uid.lower() and term not in plant.owner.lower():
            continue
        if wanted is not None and plant.status != wanted:
            continue
        result.append(plant)
    return result


def paginate(plants: Sequence[Plant], page: int = 1, per_page: int = PLANTS_PER_PAGE) -> Page:
    """Slice plants into pages; out-of-range page numbers are clamped."""
    if per_page < 1:
        raise ValueError("per_page must be at least 1")

    total_pages = max(1, math.ceil(len(plants) / per_page))
    page = min(max(page, 1), total_pages)
    start = (page - 1) * per_page
    return Page(
        items=list(plants[start : start + per_page]),
        page=page,
        total_pages=total_pages,
        total_items=len(plants),
    )


def plant_totals(plants: Sequence[Plant]) -> dict[str, int]:
    """Aggregate counts shown above the plant list."""
    return {
        "total_plants": len(plants),
        "total_devices": sum(plant.device_amount for plant in plants),
        "working": sum(1 for plant in plants if plant.status == PlantStatus.WORKING),
        "error": sum(1 for plant in plants if plant.status == PlantStatus.ERROR),
        "maintenance": sum(1 for plant in plants if plant.status == PlantStatus.MAINTENANCE),
    }


__all__ = ["Page", "filter_plants", "paginate", "plant_totals"]
