"""Chart data conversion and display formatting.

Snapshots carry power in watts and Unix timestamps; charts show kW against a
local time label. The optional display offset shifts labels only, never the
stored timestamps, and is applied the same way for every consumer.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import UTC, datetime, timedelta, tzinfo

from .constants import WATTS_PER_KILOWATT
from .models import ChartDataPoint, PlantDataSnapshot

POWER_SERIES = ("pv", "battery", "grid", "load")


def local_datetime(
    timestamp: float, tz: tzinfo | None = None, offset_hours: float = 0
) -> datetime:
    """Convert a Unix timestamp to a local datetime, shifted by ``offset_hours``."""
    value = datetime.fromtimestamp(timestamp, tz or UTC)
    if offset_hours:
        value += timedelta(hours=offset_hours)
    return value


def format_time_label(value: datetime, time_format: str = "24") -> str:
    """Format a chart time label ("14:05" or "02:05 PM")."""
    if time_format == "12":
        return value.strftime("%I:%M %p")
    return value.strftime("%H:%M")


def convert_to_chart_data(
    snapshots: Iterable[PlantDataSnapshot],
    tz: tzinfo | None = None,
    *,
    offset_hours: float = 0,
    time_format: str = "24",
) -> list[ChartDataPoint]:
    """Convert snapshots to chart points (power in kW).

    Args:
        snapshots: Snapshots in chronological order
        tz: Timezone for time labels (default: UTC)
        offset_hours: Display offset added to labels
        time_format: "24" or "12" hour labels
    """
    return [
        ChartDataPoint(
            timestamp=snapshot.dt,
            time=format_time_label(local_datetime(snapshot.dt, tz, offset_hours), time_format),
            pv=snapshot.pv_p / WATTS_PER_KILOWATT,
            battery=snapshot.battery_p / WATTS_PER_KILOWATT,
            grid=snapshot.grid_p / WATTS_PER_KILOWATT,
            load=snapshot.load_p / WATTS_PER_KILOWATT,
            battery_soc=snapshot.battery_soc,
            price=snapshot.price,
            battery_savings=snapshot.battery_savings,
        )
        for snapshot in snapshots
    ]


def calculate_power_stats(points: Sequence[ChartDataPoint]) -> dict[str, dict[str, float]]:
    """Min, max and average of each power series.

    Returns:
        {"pv": {"max": ..., "min": ..., "avg": ...}, "battery": ..., ...},
        or an empty dict when there are no points.
    """
    if not points:
        return {}

    stats: dict[str, dict[str, float]] = {}
    for series in POWER_SERIES:
        values = [getattr(point, series) for point in points]
        stats[series] = {
            "max": max(values),
            "min": min(values),
            "avg": sum(values) / len(values),
        }
    return stats


def format_number(value: float, decimals: int = 2) -> str:
    return f"{value:.{decimals}f}"


def format_currency(amount: float) -> str:
    """Format an amount in euros, e.g. "€1,234.50" / "-€3.10"."""
    sign = "-" if amount < 0 else ""
    return f"{sign}€{abs(amount):,.2f}"


def format_power(value: float) -> str:
    """Format kW, switching to MW from 1000 kW."""
    if abs(value) >= 1000:
        return f"{value / 1000:.1f} MW"
    return f"{value:.1f} kW"


def format_energy(value: float) -> str:
    """Format kWh, switching to MWh from 1000 kWh."""
    if abs(value) >= 1000:
        return f"{value / 1000:.1f} MWh"
    return f"{value:.1f} kWh"


__all__ = [
    "calculate_power_stats",
    "convert_to_chart_data",
    "format_currency",
    "format_energy",
    "format_number",
    "format_power",
    "format_time_label",
    "local_datetime",
]
