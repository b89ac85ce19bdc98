from __future__ import annotations

import functools
import json
import time
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from .config import RunOptions
from .metrics import MetricsCollector
from .models import BenchmarkRecord, FetchResult
from .runners import get_runner


class Stopwatch:
    """Context manager that times a block and prints `<name> took <secs> seconds`."""

    def __init__(self, name: str, quiet: bool = False) -> None:
        self.name = name
        self.quiet = quiet
        self.elapsed = 0.0
        self._start = 0.0

    def __enter__(self) -> "Stopwatch":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *exc_info) -> None:
        self.elapsed = time.perf_counter() - self._start
        if not self.quiet:
            print(f"{self.name} took {self.elapsed:.2f} seconds")


def timed(fn: Callable) -> Callable:
    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        with Stopwatch(fn.__name__):
            return fn(*args, **kwargs)

    return wrapper


def run_benchmark(
    mode: str,
    urls: Sequence[str],
    options: RunOptions,
    metrics: Optional[MetricsCollector] = None,
) -> Tuple[BenchmarkRecord, List[FetchResult]]:
    runner = get_runner(mode)
    with Stopwatch(runner.__name__) as sw:
        results = runner(urls, options)

    if metrics is not None:
        metrics.record_many(results)

    success = sum(1 for r in results if r.success)
    record = BenchmarkRecord(
        name=runner.__name__,
        mode=mode,
        elapsed_secs=sw.elapsed,
        total=len(results),
        success_count=success,
        requests_per_sec=(len(results) / sw.elapsed) if sw.elapsed > 0 else 0.0,
    )
    log = {
        "event": "benchmark",
        "mode": mode,
        "client": options.client,
        "total": record.total,
        "success": success,
        "elapsed_secs": round(sw.elapsed, 4),
    }
    print(json.dumps(log, ensure_ascii=False))
    return record, results


def run_suite(
    modes: Iterable[str],
    urls: Sequence[str],
    options: RunOptions,
) -> List[Tuple[BenchmarkRecord, List[FetchResult]]]:
    # Validate every mode before spending time on the first one.
    modes = list(modes)
    for mode in modes:
        get_runner(mode)
    return [run_benchmark(mode, urls, options) for mode in modes]


def format_report(records: Iterable[BenchmarkRecord]) -> str:
    header = f"{'function':<18} {'elapsed (s)':>12} {'ok/total':>11} {'req/s':>9}"
    lines = [header, "-" * len(header)]
    for rec in records:
        ratio = f"{rec.success_count}/{rec.total}"
        lines.append(
            f"{rec.name:<18} {rec.elapsed_secs:>12.2f} {ratio:>11} {rec.requests_per_sec:>9.1f}"
        )
    return "\n".join(lines)
