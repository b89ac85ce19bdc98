from __future__ import annotations

import math
import time
from collections import deque
from dataclasses import asdict
from threading import Lock
from typing import Deque, Dict, Iterable, List, Optional

from .models import FetchResult, MetricsSnapshot


def _percentile(values: List[int], pct: float) -> float:
    """Nearest-rank percentile; 0.0 for an empty list."""
    if not values:
        return 0.0
    ordered = sorted(values)
    rank = max(1, math.ceil(pct / 100.0 * len(ordered)))
    return float(ordered[rank - 1])


class MetricsCollector:
    """Thread-safe record of fetch results with windowed aggregation."""

    def __init__(self, maxlen: int = 100000) -> None:
        self._lock = Lock()
        self._events: Deque[tuple[float, FetchResult]] = deque(maxlen=maxlen)

    def record_result(self, result: FetchResult) -> None:
        with self._lock:
            self._events.append((time.time(), result))

    def record_many(self, results: Iterable[FetchResult]) -> None:
        now = time.time()
        with self._lock:
            self._events.extend((now, r) for r in results)

    def snapshot(self, window_secs: Optional[int] = None) -> MetricsSnapshot:
        """Aggregate events from the last window_secs seconds, or all events when None."""
        now = time.time()
        with self._lock:
            if window_secs is None:
                events = [e for _, e in self._events]
            else:
                cutoff = now - window_secs
                events = [e for ts, e in self._events if ts >= cutoff]

        total = len(events)
        latencies = [e.latency_ms for e in events]
        return MetricsSnapshot(
            window_secs=window_secs,
            total_requests=total,
            success_count=sum(1 for e in events if e.success),
            timeout_count=sum(1 for e in events if e.error_type == "Timeout"),
            conn_error_count=sum(1 for e in events if e.error_type == "ConnectionError"),
            http_error_count=sum(1 for e in events if (e.error_type or "").startswith("HTTP_")),
            avg_latency_ms=(sum(latencies) / total) if total else 0.0,
            p95_latency_ms=_percentile(latencies, 95),
            total_bytes=sum(e.size_bytes for e in events),
            timestamp=now,
        )

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def export_json(self) -> List[Dict]:
        with self._lock:
            return [{"timestamp": ts, **asdict(e)} for ts, e in self._events]
