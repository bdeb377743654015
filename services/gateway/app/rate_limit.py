"""
Gateway — fixed-window rate limiter

Counts requests per client key inside a window of `window_seconds`; the
counter resets when the window rolls over. Process-local: each gateway
replica limits independently. Expired windows are swept at most once per
window, so the table only holds clients seen recently.
"""

import threading
import time
from collections.abc import Callable


class FixedWindowRateLimiter:
    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self._windows: dict[str, tuple[float, int]] = {}
        self._last_sweep = clock()
        self._lock = threading.Lock()

    @property
    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._windows)

    def hit(self, key: str) -> bool:
        """Count one request for `key`; False once the window's budget is spent."""
        now = self.clock()
        with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(now)
            started, count = self._windows.get(key, (now, 0))
            if now - started >= self.window_seconds:
                started, count = now, 0
            count += 1
            self._windows[key] = (started, count)
        return count <= self.max_requests

    def _sweep(self, now: float) -> None:
        expired = [
            key
            for key, (started, _) in self._windows.items()
            if now - started >= self.window_seconds
        ]
        for key in expired:
            del self._windows[key]
        self._last_sweep = now
