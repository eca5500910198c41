"""CSV and XLSX export of plant telemetry.

Input rows are chart points (timestamp plus numeric fields). Validation runs
before any file content is produced:

- Empty input is rejected.
- The first row must carry real numbers (``Decimal`` included). Anything
  else (strings, booleans, an HTML error page that leaked through an
  upstream proxy) is rejected.

CSV files hold one header line plus one line per row. XLSX workbooks hold the
same rows on an "Energy Data" sheet and a second "Export Info" sheet that
documents the fields.
"""

from __future__ import annotations

import csv
import io
import logging
import numbers
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, tzinfo
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from .charts import local_datetime
from .constants import (
    CSV_MEDIA_TYPE,
    EXPORT_COLUMN_WIDTHS,
    EXPORT_FIELD_DESCRIPTIONS,
    EXPORT_HEADER_FILL,
    EXPORT_HEADER_FONT_COLOR,
    EXPORT_HEADERS,
    XLSX_MEDIA_TYPE,
)
from .dates import range_bounds
from .exceptions import ExportValidationError
from .models import ChartDataPoint

_LOGGER = logging.getLogger(__name__)

NUMERIC_FIELDS = ("pv", "battery", "grid", "load", "battery_soc", "price", "battery_savings")

_DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

ExportPoint = ChartDataPoint | Mapping[str, Any]


class ExportFormat(str, Enum):
    """Supported export file formats."""

    CSV = "csv"
    XLSX = "xlsx"


@dataclass
class ExportRow:
    """One exported sample with pre-formatted time columns."""

    timestamp: int
    formatted_timestamp: str
    datetime: str
    date: str
    time: str
    pv_power: float
    battery_power: float
    grid_power: float
    load_power: float
    battery_soc: float
    energy_price: float
    battery_savings: float

    def values(self) -> list[Any]:
        """Cell values in header order."""
        return list(asdict(self).values())


@dataclass
class ExportFile:
    """Generated export file, ready for download or saving."""

    filename: str
    content: bytes
    media_type: str

    def save(self, directory: str | Path) -> Path:
        """Write the file into ``directory`` and return its path."""
        path = Path(directory) / self.filename
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.content)
        _LOGGER.info("Saved export %s (%d bytes)", path, len(self.content))
        return path


@dataclass
class ExportConfig:
    """Date range and formats selected for an export."""

    from_date: date
    to_date: date
    formats: set[ExportFormat] = field(default_factory=lambda: {ExportFormat.CSV})

    def __post_init__(self) -> None:
        self.formats = {ExportFormat(fmt) for fmt in self.formats}
        if self.to_date < self.from_date:
            raise ExportValidationError(
                f"Export end date {self.to_date} is before start date {self.from_date}"
            )
        if not self.formats:
            raise ExportValidationError("At least one export format must be selected")


def _field(point: ExportPoint, name: str) -> Any:
    if isinstance(point, Mapping):
        return point.get(name)
    return getattr(point, name, None)


def _is_number(value: Any) -> bool:
    return isinstance(value, (numbers.Real, Decimal)) and not isinstance(value, bool)


def validate_rows(points: Sequence[ExportPoint]) -> None:
    """Reject empty input and rows that are not numeric telemetry.

    Only the first row is inspected.

    Raises:
        ExportValidationError: If the input cannot be exported.
    """
    if not points:
        raise ExportValidationError("No data available for export")

    first = points[0]
    for name in ("timestamp", *NUMERIC_FIELDS):
        value = _field(first, name)
        if _is_number(value):
            continue
        if isinstance(value, str) and "<!doctype" in value.lower():
            raise ExportValidationError(
                "Export failed: API returned HTML instead of data. "
                "Please check your authentication."
            )
        raise ExportValidationError(
            f"Export data appears to be corrupted or invalid: "
            f"field {name!r} is {value!r}, expected a number"
        )


def format_timestamp(value: datetime) -> str:
    """Format as "Tue 2025-07-22 14:31:50:279"."""
    return (
        f"{_DAY_NAMES[value.weekday()]} {value:%Y-%m-%d %H:%M:%S}:"
        f"{value.microsecond // 1000:03d}"
    )


def _clock(value: datetime, time_format: str) -> str:
    return value.strftime("%I:%M:%S %p" if time_format == "12" else "%H:%M:%S")


def prepare_export_rows(
    points: Sequence[ExportPoint],
    tz: tzinfo | None = None,
    *,
    offset_hours: float = 0,
    time_format: str = "24",
) -> list[ExportRow]:
    """Convert chart points to export rows.

    Args:
        points: Chart points or mappings with the same field names
        tz: Timezone for the formatted time columns
        offset_hours: Display offset applied to formatted columns only
        time_format: "24" or "12" hour clock for the time columns
    """
    rows = []
    for point in points:
        timestamp = _field(point, "timestamp")
        local = local_datetime(timestamp, tz, offset_hours)
        clock = _clock(local, time_format)
        rows.append(
            ExportRow(
                timestamp=timestamp,
                formatted_timestamp=format_timestamp(local),
                datetime=f"{local:%m/%d/%Y}, {clock}",
                date=f"{local.month}/{local.day}/{local.year}",
                time=clock,
                pv_power=_field(point, "pv") or 0,
                battery_power=_field(point, "battery") or 0,
                grid_power=_field(point, "grid") or 0,
                load_power=_field(point, "load") or 0,
                battery_soc=_field(point, "battery_soc") or 0,
                energy_price=_field(point, "price") or 0,
                battery_savings=_field(point, "battery_savings") or 0,
            )
        )
    return rows


def format_decimal(value: Any) -> str:
    """Render a number in plain decimal notation (no exponent)."""
    if isinstance(value, bool) or not _is_number(value):
        return str(value)
    if isinstance(value, numbers.Integral):
        return str(int(value))
    if not isinstance(value, Decimal):
        value = Decimal(repr(float(value)))
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def generate_csv(rows: Sequence[ExportRow]) -> str:
    """Render rows as CSV: a header line plus one line per row.

    Raises:
        ExportValidationError: If ``rows`` is empty.
    """
    if not rows:
        raise ExportValidationError("No data provided for CSV generation")

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(EXPORT_HEADERS)
    for row in rows:
        writer.writerow(
            [value if isinstance(value, str) else format_decimal(value) for value in row.values()]
        )

    content = buffer.getvalue().removesuffix("\n")
    _LOGGER.debug("Generated CSV with %d rows", len(rows))
    return content


def generate_xlsx(rows: Sequence[ExportRow], *, generated_at: datetime | None = None) -> bytes:
    """Render rows as an XLSX workbook with a data sheet and a metadata sheet.

    Raises:
        ExportValidationError: If ``rows`` is empty.
    """
    if not rows:
        raise ExportValidationError("No data provided for XLSX generation")

    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Energy Data"
    sheet.append(list(EXPORT_HEADERS))
    for row in rows:
        sheet.append(row.values())

    header_font = Font(bold=True, color=EXPORT_HEADER_FONT_COLOR)
    header_fill = PatternFill(fill_type="solid", fgColor=EXPORT_HEADER_FILL)
    header_alignment = Alignment(horizontal="center", vertical="center")
    for cell in sheet[1]:
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = header_alignment

    for index, width in enumerate(EXPORT_COLUMN_WIDTHS, start=1):
        sheet.column_dimensions[get_column_letter(index)].width = width

    info = workbook.create_sheet("Export Info")
    generated_at = generated_at or datetime.now()
    info.append(["Export Information"])
    info.append(["Generated Date:", generated_at.strftime("%Y-%m-%d %H:%M:%S")])
    info.append(["Total Records:", len(rows)])
    info.append(["Date Range:", f"{rows[0].date} to {rows[-1].date}"])
    info.append([])
    info.append(["Data Description:"])
    for name, description in EXPORT_FIELD_DESCRIPTIONS:
        info.append([name, description])
    info["A1"].font = Font(bold=True)
    info.column_dimensions["A"].width = 20
    info.column_dimensions["B"].width = 50

    buffer = io.BytesIO()
    workbook.save(buffer)
    _LOGGER.debug("Generated XLSX with %d rows", len(rows))
    return buffer.getvalue()


def export_rows(
    points: Sequence[ExportPoint],
    fmt: ExportFormat | str,
    filename: str,
    tz: tzinfo | None = None,
    *,
    offset_hours: float = 0,
    time_format: str = "24",
) -> ExportFile:
    """Validate points and render them in one format.

    Args:
        points: Chart points to export
        fmt: "csv" or "xlsx"
        filename: File name without extension

    Raises:
        ExportValidationError: Before any content is produced, if the input
            is empty or not numeric.
    """
    fmt = ExportFormat(fmt)
    validate_rows(points)
    rows = prepare_export_rows(points, tz, offset_hours=offset_hours, time_format=time_format)

    if fmt is ExportFormat.CSV:
        return ExportFile(f"{filename}.csv", generate_csv(rows).encode("utf-8"), CSV_MEDIA_TYPE)
    return ExportFile(f"{filename}.xlsx", generate_xlsx(rows), XLSX_MEDIA_TYPE)


def generate_filename(config: ExportConfig, plant_id: str) -> str:
    """Build the export file name (without extension).

    Example:
        >>> generate_filename(ExportConfig(date(2025, 7, 1), date(2025, 7, 1)), "p1")
        'plant-p1-2025-07-01'
    """
    start = config.from_date.isoformat()
    end = config.to_date.isoformat()
    if start == end:
        return f"plant-{plant_id}-{start}"
    return f"plant-{plant_id}-{start}_to_{end}"


def filter_by_range(
    points: Iterable[ExportPoint], config: ExportConfig, tz: tzinfo | None = None
) -> list[ExportPoint]:
    """Keep points between ``from_date`` 00:00:00 and ``to_date`` 23:59:59 local time."""
    start, end = range_bounds(config.from_date, config.to_date, tz)
    return [point for point in points if start <= _field(point, "timestamp") <= end]


def export_plant_data(
    points: Sequence[ExportPoint],
    config: ExportConfig,
    plant_id: str,
    tz: tzinfo | None = None,
    *,
    offset_hours: float = 0,
    time_format: str = "24",
) -> list[ExportFile]:
    """Export a plant's chart points in every selected format.

    Raises:
        ExportValidationError: If there is no data, the data is not numeric,
            or nothing falls inside the selected range.
    """
    validate_rows(points)

    selected = filter_by_range(points, config, tz)
    _LOGGER.debug("Filtered %d of %d points for export", len(selected), len(points))
    if not selected:
        raise ExportValidationError(
            f"No data found for the selected date range "
            f"({config.from_date.isoformat()} to {config.to_date.isoformat()}). "
            "Please try a different date range or check if data exists for these dates."
        )

    filename = generate_filename(config, plant_id)
    files = [
        export_rows(
            selected, fmt, filename, tz, offset_hours=offset_hours, time_format=time_format
        )
        for fmt in sorted(config.formats, key=lambda item: item.value)
    ]
    _LOGGER.info(
        "Exported %d rows for plant %s as %s",
        len(selected),
        plant_id,
        ", ".join(item.filename for item in files),
    )
    return files


__all__ = [
    "ExportConfig",
    "ExportFile",
    "ExportFormat",
    "ExportRow",
    "export_plant_data",
    "export_rows",
    "filter_by_range",
    "format_decimal",
    "format_timestamp",
    "generate_csv",
    "generate_filename",
    "generate_xlsx",
    "prepare_export_rows",
    "validate_rows",
]
