"""Fixed-window request limiter for the auth endpoints."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from ..constants import DEFAULT_AUTH_RATE_LIMIT, DEFAULT_AUTH_RATE_WINDOW


@dataclass
class _Window:
    started: float
    count: int = 0


class RateLimiter:
    """Allow at most ``limit`` hits per client within each ``window`` seconds.

    Example:
        ```python
        limiter = RateLimiter(limit=5, window=900)
        if not limiter.hit(request.remote):
            return too_many_requests()
        ```
    """

    def __init__(
        self,
        limit: int = DEFAULT_AUTH_RATE_LIMIT,
        window: float = DEFAULT_AUTH_RATE_WINDOW,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.limit = limit
        self.window = window
        self._clock = clock
        self._windows: dict[str, _Window] = {}

    def hit(self, key: str) -> bool:
        """Record a hit for ``key``; False once the limit is exceeded."""
        now = self._clock()
        self._expire(now)

        current = self._windows.get(key)
        if current is None:
            current = self._windows[key] = _Window(started=now)
        current.count += 1
        return current.count <= self.limit

    def retry_after(self, key: str) -> int:
        """Seconds until ``key``'s window resets (0 if it has none)."""
        current = self._windows.get(key)
        if current is None:
            return 0
        return max(0, int(current.started + self.window - self._clock()) + 1)

    def _expire(self, now: float) -> None:
        expired = [key for key, item in self._windows.items() if now - item.started >= self.window]
        for key in expired:
            del self._windows[key]

    def reset(self) -> None:
        self._windows.clear()


__all__ = ["RateLimiter"]
