"""Constants shared across plantwatch modules."""

from __future__ import annotations

from datetime import timedelta

# Telemetry API
DEFAULT_API_BASE_URL = "http://localhost:5001"
DEFAULT_TIMEOUT = 30

# Day cache windows
CACHE_RETENTION_DAYS = 7
TODAY_TTL = timedelta(minutes=5)
HISTORY_TTL = timedelta(minutes=60)

# Days fetched behind today when a detail view mounts
INITIAL_HISTORY_DAYS = 3

DAY_KEY_FORMAT = "%Y-%m-%d"

# Snapshot power fields arrive in watts
WATTS_PER_KILOWATT = 1000.0

# Plant list pagination
PLANTS_PER_PAGE = 12

# Local auth
JWT_ALGORITHM = "HS256"
DEFAULT_JWT_EXPIRY_DAYS = 7
DEFAULT_BCRYPT_ROUNDS = 12
MIN_PASSWORD_LENGTH = 6
DEFAULT_AUTH_RATE_LIMIT = 5
DEFAULT_AUTH_RATE_WINDOW = 15 * 60

DEFAULT_CORS_ORIGINS = ("http://localhost:8080", "http://localhost:8081")

# Export
CSV_MEDIA_TYPE = "text/csv; charset=utf-8"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

EXPORT_HEADERS: tuple[str, ...] = (
    "Timestamp",
    "Formatted Timestamp",
    "Date & Time",
    "Date",
    "Time",
    "PV Power (kW)",
    "Battery Power (kW)",
    "Grid Power (kW)",
    "Load Power (kW)",
    "Battery SOC (%)",
    "Energy Price ($/kWh)",
    "Battery Savings ($)",
)

# Column widths (characters) for the XLSX data sheet, in header order
EXPORT_COLUMN_WIDTHS: tuple[int, ...] = (12, 25, 20, 12, 12, 15, 18, 15, 15, 15, 18, 18)

EXPORT_FIELD_DESCRIPTIONS: tuple[tuple[str, str], ...] = (
    ("PV Power", "Solar panel power generation in kilowatts"),
    (
        "Battery Power",
        "Battery charge/discharge power in kilowatts "
        "(positive = charging, negative = discharging)",
    ),
    ("Grid Power", "Power imported from/exported to grid in kilowatts"),
    ("Load Power", "Total electrical load consumption in kilowatts"),
    ("Battery SOC", "Battery State of Charge as percentage"),
    ("Energy Price", "Current electricity price in dollars per kilowatt-hour"),
    ("Battery Savings", "Cost savings from battery usage in dollars"),
)

EXPORT_HEADER_FILL = "366092"
EXPORT_HEADER_FONT_COLOR = "FFFFFF"
