from __future__ import annotations

import asyncio
import threading
import time


class RateLimiter:
    """Thread-safe pacing limiter shared by every worker thread of a run.

    acquire() blocks the caller until the next request slot, so requests are
    spaced at least 1/qps seconds apart. A qps of zero or less disables it.
    """

    def __init__(self, qps: float) -> None:
        self._interval = 1.0 / qps if qps > 0 else 0.0
        self._lock = threading.Lock()
        self._next_allowed = 0.0

    @property
    def enabled(self) -> bool:
        return self._interval > 0

    def acquire(self) -> None:
        if not self.enabled:
            return
        with self._lock:
            wait = self._reserve(time.monotonic())
        if wait > 0:
            time.sleep(wait)

    def _reserve(self, now: float) -> float:
        # Claim the next free slot and return how long the caller must wait for it.
        slot = max(self._next_allowed, now)
        self._next_allowed = slot + self._interval
        return slot - now


class AsyncRateLimiter(RateLimiter):
    """asyncio twin of RateLimiter: same slot arithmetic, non-blocking wait."""

    def __init__(self, qps: float) -> None:
        super().__init__(qps)
        self._async_lock = asyncio.Lock()

    async def acquire_async(self) -> None:
        if not self.enabled:
            return
        async with self._async_lock:
            wait = self._reserve(time.monotonic())
        if wait > 0:
            await asyncio.sleep(wait)
