"""Per-day cache of plant view responses.

Entries are keyed by day key. Each entry remembers when it was fetched and
whether it has been marked stale by a manual refresh. A stale entry is still
returned by :meth:`DayCache.get` so callers can keep showing it while a
refresh is in flight; it is just never considered fresh.

Freshness windows:
- Today: 5 minutes (data is still being produced)
- Past and future days: 60 minutes

Entries for days more than 7 days before today are evicted on every write.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta, tzinfo
from typing import Any

from .constants import CACHE_RETENTION_DAYS, HISTORY_TTL, TODAY_TTL
from .dates import day_key, days_between, parse_day_key
from .models import PlantViewResponse

_LOGGER = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """Cached plant view for one day.

    Attributes:
        payload: Plant view response for the day
        fetched_at_millis: Unix time in milliseconds when the payload was stored
        is_stale: Set by a manual refresh; the entry is kept but never fresh
    """

    payload: PlantViewResponse
    fetched_at_millis: int
    is_stale: bool = False

    def age(self, now: datetime) -> timedelta:
        """Age of the entry relative to ``now``."""
        return timedelta(milliseconds=int(now.timestamp() * 1000) - self.fetched_at_millis)


class DayCache:
    """Mapping of day key to :class:`CacheEntry`.

    Example:
        ```python
        cache = DayCache(tz=ZoneInfo("Europe/Berlin"))
        cache.put("2025-07-22", view)
        if cache.is_fresh("2025-07-22"):
            view = cache.get("2025-07-22").payload
        ```
    """

    def __init__(
        self,
        *,
        tz: tzinfo | None = None,
        retention_days: int = CACHE_RETENTION_DAYS,
        today_ttl: timedelta = TODAY_TTL,
        history_ttl: timedelta = HISTORY_TTL,
    ) -> None:
        """Initialize an empty cache.

        Args:
            tz: Timezone used to decide which day is "today"
            retention_days: Entries more than this many days before today are pruned
            today_ttl: Freshness window for today's entry
            history_ttl: Freshness window for every other day
        """
        self._tz = tz or UTC
        self._retention_days = retention_days
        self._today_ttl = today_ttl
        self._history_ttl = history_ttl
        self._entries: dict[str, CacheEntry] = {}

    @property
    def tz(self) -> tzinfo:
        """Timezone the cache decides "today" in."""
        return self._tz

    def _now(self, now: datetime | None) -> datetime:
        return now if now is not None else datetime.now(self._tz)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def keys(self) -> list[str]:
        """Cached day keys in chronological order."""
        return sorted(self._entries)

    def get(self, key: str) -> CacheEntry | None:
        """Get the entry for a day, stale or not."""
        return self._entries.get(key)

    def put(
        self, key: str, payload: PlantViewResponse, *, now: datetime | None = None
    ) -> CacheEntry:
        """Store a payload for a day, clearing any staleness, then prune.

        A day older than the retention window is evicted by its own write.

        Args:
            key: Day key
            payload: Plant view response for that day
            now: Store time (default: current time in the cache timezone)

        Returns:
            The new cache entry.
        """
        parse_day_key(key)
        now = self._now(now)
        entry = CacheEntry(
            payload=payload,
            fetched_at_millis=int(now.timestamp() * 1000),
            is_stale=False,
        )
        self._entries[key] = entry
        self.prune(now)
        _LOGGER.debug("Cached %s (%d entries)", key, len(self._entries))
        return entry

    def invalidate(self, key: str) -> bool:
        """Mark a day as stale without removing it.

        Returns:
            True if an entry existed and was marked, False otherwise.
        """
        entry = self._entries.get(key)
        if entry is None:
            return False
        entry.is_stale = True
        _LOGGER.debug("Marked %s stale", key)
        return True

    def prune(self, now: datetime | None = None) -> list[str]:
        """Remove entries whose day is more than ``retention_days`` before today.

        Args:
            now: Reference time (default: current time in the cache timezone)

        Returns:
            Removed day keys.
        """
        today = day_key(self._now(now), self._tz)
        removed = [
            key
            for key in self._entries
            if days_between(key, today) > self._retention_days
        ]
        for key in removed:
            del self._entries[key]

        if removed:
            _LOGGER.debug(
                "Pruned %d cache entries older than %d days: %s",
                len(removed),
                self._retention_days,
                removed,
            )
        return removed

    def ttl_for(self, key: str, now: datetime | None = None) -> timedelta:
        """Freshness window for a day key."""
        today = day_key(self._now(now), self._tz)
        return self._today_ttl if key == today else self._history_ttl

    def is_fresh(self, key: str, *, now: datetime | None = None) -> bool:
        """Check whether a day's entry exists, is not stale and is within its window."""
        entry = self._entries.get(key)
        if entry is None or entry.is_stale:
            return False
        now = self._now(now)
        return entry.age(now) < self.ttl_for(key, now)

    def clear(self) -> None:
        """Remove every entry."""
        count = len(self._entries)
        self._entries.clear()
        _LOGGER.debug("Cache cleared (%d entries removed)", count)

    def stats(self) -> dict[str, Any]:
        """Cache statistics.

        Returns:
            dict with:
                - total_entries: Number of cached days
                - stale_entries: Number of entries marked stale
                - oldest: Oldest cached day key, or None
                - newest: Newest cached day key, or None
        """
        keys = self.keys()
        return {
            "total_entries": len(keys),
            "stale_entries": sum(1 for entry in self._entries.values() if entry.is_stale),
            "oldest": keys[0] if keys else None,
            "newest": keys[-1] if keys else None,
        }


__all__ = ["CacheEntry", "DayCache"]
