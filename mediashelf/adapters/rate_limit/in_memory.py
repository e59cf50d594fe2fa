"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: the read-modify-write on a key happens under a lock.
- Windows start at a key's first admitted request, not on clock boundaries.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from mediashelf.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult


@dataclass
class _RateWindow:
    count: int
    reset_at_ms: int


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Cap requests per key within a window opened by the key's first request.

    Once the cap is hit, further requests are denied until the window's reset
    time passes. Denied requests never extend or restart the window. The next
    request after the reset time opens a fresh window regardless of how many
    requests were denied in the old one.

    Entries are kept for the life of the process. When more than
    ``max_tracked_keys`` keys are tracked, expired windows are swept, at most
    once per window length.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: int,
        max_tracked_keys: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            limit: Maximum number of admitted requests per window.
            window_seconds: Size of the window in seconds.
            max_tracked_keys: Key count that triggers a sweep of expired
                windows (None disables sweeping).
            clock: Time source returning UNIX time in seconds.

        Raises:
            ValueError: If limit, window_seconds or max_tracked_keys are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")
        if max_tracked_keys is not None and max_tracked_keys < 1:
            raise ValueError("max_tracked_keys must be >= 1")

        self._limit = limit
        self._window_ms = window_seconds * 1000
        self._max_tracked_keys = max_tracked_keys
        self._clock = clock
        self._lock = threading.RLock()
        self._windows: dict[str, _RateWindow] = {}
        self._next_sweep_ms = 0

    @property
    def limit(self) -> int:
        return self._limit

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _sweep_due(self, now_ms: int) -> bool:
        return (
            self._max_tracked_keys is not None
            and len(self._windows) > self._max_tracked_keys
            and now_ms >= self._next_sweep_ms
        )

    def sweep_expired(self) -> int:
        """Drop windows whose reset time has passed.

        Returns:
            Number of windows removed.
        """
        now_ms = self._now_ms()
        with self._lock:
            expired = [k for k, w in self._windows.items() if w.reset_at_ms < now_ms]
            for key in expired:
                del self._windows[key]
            return len(expired)

    def consume(self, key: str) -> RateLimitResult:
        """Admit or deny one request for the provided key.

        Args:
            key: Unique identifier for rate limiting (e.g. client ip).

        Returns:
            RateLimitResult with allowance decision and window metadata.

        Raises:
            ValueError: If key is empty.
        """
        if not key:
            raise ValueError("key must be a non-empty string")

        now_ms = self._now_ms()

        with self._lock:
            if self._sweep_due(now_ms):
                self.sweep_expired()
                self._next_sweep_ms = now_ms + self._window_ms

            window = self._windows.get(key)

            if window is None or window.reset_at_ms < now_ms:
                window = _RateWindow(count=1, reset_at_ms=now_ms + self._window_ms)
                self._windows[key] = window
                return RateLimitResult(
                    allowed=True,
                    limit=self._limit,
                    remaining=self._limit - 1,
                    reset_at_ms=window.reset_at_ms,
                )

            if window.count >= self._limit:
                retry_after = max(0, int(math.ceil((window.reset_at_ms - now_ms) / 1000)))
                return RateLimitResult(
                    allowed=False,
                    limit=self._limit,
                    remaining=0,
                    reset_at_ms=window.reset_at_ms,
                    retry_after_seconds=retry_after,
                )

            window.count += 1
            return RateLimitResult(
                allowed=True,
                limit=self._limit,
                remaining=self._limit - window.count,
                reset_at_ms=window.reset_at_ms,
            )
