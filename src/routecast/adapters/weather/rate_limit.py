from __future__ import annotations

import asyncio
import time
from collections import deque
from typing import Callable


class SlidingWindowRateLimiter:
    """Allow at most ``max_requests`` acquisitions in any ``window_seconds`` span.

    ``acquire`` waits with ``asyncio.sleep`` until a slot frees, so callers
    simply await it and cancellation propagates normally.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._clock = clock
        self._timestamps: deque[float] = deque()
        self._lock = asyncio.Lock()

    def _evict(self, now: float) -> None:
        while self._timestamps and now - self._timestamps[0] >= self._window_seconds:
            self._timestamps.popleft()

    def wait_time(self) -> float:
        now = self._clock()
        self._evict(now)
        if len(self._timestamps) < self._max_requests:
            return 0.0
        return self._window_seconds - (now - self._timestamps[0])

    async def acquire(self) -> None:
        async with self._lock:
            delay = self.wait_time()
            while delay > 0:
                await asyncio.sleep(delay)
                delay = self.wait_time()
            self._timestamps.append(self._clock())
