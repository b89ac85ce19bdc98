from __future__ import annotations

import random
from typing import Optional


class BackoffStrategy:
    """Exponential backoff with jitter between retry attempts.

    The delay for attempt n is base * 2^(n-1), capped at max_seconds, plus
    up to 10% random jitter. Used by both the blocking and asyncio fetchers.
    """

    def __init__(self, base_seconds: float = 0.5, max_seconds: float = 10.0) -> None:
        if base_seconds < 0 or max_seconds < 0:
            raise ValueError("backoff durations must be non-negative")
        self._base = base_seconds
        self._max = max_seconds

    def get_sleep(self, attempt: int, error_type: Optional[str] = None) -> float:
        """Seconds to wait before retrying after the given (1-based) attempt."""
        delay = min(self._max, self._base * (2 ** max(attempt - 1, 0)))
        return delay + random.uniform(0, delay * 0.1)
