from __future__ import annotations

from dataclasses import dataclass

DEFAULT_CLIENT = "requests"
DEFAULT_CONCURRENCY = 16
DEFAULT_PROCESSES = 4
DEFAULT_TIMEOUT = 20.0
DEFAULT_RETRIES = 3
DEFAULT_QPS = 0.0


@dataclass(frozen=True)
class RunOptions:
    """Parameters of one benchmark run.

    Frozen and made of plain values so it pickles into pool worker processes.
    `concurrency` is threads per pool or in-flight requests per event loop;
    `processes` is the process count of the multiprocess and hybrid modes.
    `qps` of zero disables pacing; with processes it applies per process.
    """

    client: str = DEFAULT_CLIENT
    concurrency: int = DEFAULT_CONCURRENCY
    processes: int = DEFAULT_PROCESSES
    timeout: float = DEFAULT_TIMEOUT
    max_retries: int = DEFAULT_RETRIES
    qps: float = DEFAULT_QPS
    verbose: bool = False
