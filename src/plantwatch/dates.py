"""Day keys and timezone handling.

A day key is a calendar date formatted as ``YYYY-MM-DD`` in the plant's
timezone. The same timezone is used for the key and for the request window
(00:00:00 to 23:59:59 local time), so a key always names the day whose data
it indexes.
"""

from __future__ import annotations

import logging
import re
import zoneinfo
from datetime import UTC, date, datetime, time, timedelta, timezone, tzinfo

from .constants import DAY_KEY_FORMAT

_LOGGER = logging.getLogger(__name__)

_DAY_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_GMT_OFFSET_RE = re.compile(r"^(?:GMT|UTC)\s*([+-])\s*(\d{1,2})(?::?(\d{2}))?$", re.IGNORECASE)


def resolve_timezone(name: str | None) -> tzinfo:
    """Resolve a timezone name to a tzinfo.

    Accepts IANA names ("Europe/Berlin"), fixed offsets in the API's
    "GMT -8" / "GMT +5:30" notation, and empty input (UTC).

    Raises:
        ValueError: If the name is not recognised.
    """
    if not name or not name.strip():
        return UTC

    name = name.strip()
    if name.upper() in ("UTC", "GMT", "Z"):
        return UTC

    match = _GMT_OFFSET_RE.match(name)
    if match:
        sign, hours, minutes = match.groups()
        offset = timedelta(hours=int(hours), minutes=int(minutes or 0))
        if sign == "-":
            offset = -offset
        return timezone(offset)

    try:
        return zoneinfo.ZoneInfo(name)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError) as err:
        raise ValueError(f"Unknown timezone: {name!r}") from err


def parse_day_key(key: str) -> date:
    """Parse a ``YYYY-MM-DD`` day key.

    Raises:
        ValueError: If the key is malformed or not a real calendar date.
    """
    if not isinstance(key, str) or not _DAY_KEY_RE.match(key):
        raise ValueError(f"Invalid day key: {key!r} (expected YYYY-MM-DD)")
    return datetime.strptime(key, DAY_KEY_FORMAT).date()


def day_key(value: date | datetime | str, tz: tzinfo | None = None) -> str:
    """Truncate a date/datetime to its day key.

    Aware datetimes are converted to ``tz`` first; naive datetimes are taken
    as already local. Strings are validated and returned unchanged.
    """
    if isinstance(value, str):
        parse_day_key(value)
        return value
    if isinstance(value, datetime):
        if value.tzinfo is not None and tz is not None:
            value = value.astimezone(tz)
        return value.date().strftime(DAY_KEY_FORMAT)
    return value.strftime(DAY_KEY_FORMAT)


def today_key(tz: tzinfo | None = None, now: datetime | None = None) -> str:
    """Day key of ``now`` (default: current time) in ``tz``."""
    tz = tz or UTC
    return day_key(now if now is not None else datetime.now(tz), tz)


def is_today(key: str, tz: tzinfo | None = None, now: datetime | None = None) -> bool:
    """Check whether ``key`` names the current day in ``tz``."""
    return key == today_key(tz, now)


def day_bounds(key: str, tz: tzinfo | None = None) -> tuple[int, int]:
    """Unix timestamps (seconds) of the first and last second of a day.

    Example:
        >>> day_bounds("2025-07-22", UTC)
        (1753142400, 1753228799)
    """
    tz = tz or UTC
    day = parse_day_key(key)
    start = datetime.combine(day, time(0, 0, 0), tzinfo=tz)
    end = datetime.combine(day, time(23, 59, 59), tzinfo=tz)
    return int(start.timestamp()), int(end.timestamp())


def range_bounds(start_day: date, end_day: date, tz: tzinfo | None = None) -> tuple[int, int]:
    """Unix timestamps spanning ``start_day`` 00:00:00 to ``end_day`` 23:59:59."""
    if end_day < start_day:
        raise ValueError(f"End date {end_day} is before start date {start_day}")
    start, _ = day_bounds(start_day.strftime(DAY_KEY_FORMAT), tz)
    _, end = day_bounds(end_day.strftime(DAY_KEY_FORMAT), tz)
    return start, end


def shift_day(key: str, days: int) -> str:
    """Return the key ``days`` calendar days away from ``key``."""
    return (parse_day_key(key) + timedelta(days=days)).strftime(DAY_KEY_FORMAT)


def adjacent_days(key: str) -> tuple[str, str]:
    """Previous and next day keys."""
    return shift_day(key, -1), shift_day(key, 1)


def days_between(older: str, newer: str) -> int:
    """Whole calendar days from ``older`` to ``newer`` (negative if reversed)."""
    return (parse_day_key(newer) - parse_day_key(older)).days


__all__ = [
    "adjacent_days",
    "day_bounds",
    "day_key",
    "days_between",
    "is_today",
    "parse_day_key",
    "range_bounds",
    "resolve_timezone",
    "shift_day",
    "today_key",
]
