from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional


@dataclass(frozen=True)
class FetchTask:
    task_id: str
    url: str
    meta: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class FetchResult:
    task_id: str
    url: str
    client: str
    success: bool
    status_code: Optional[int]
    latency_ms: int
    size_bytes: int
    data: Optional[Any]
    error_type: Optional[str]


@dataclass(frozen=True)
class MetricsSnapshot:
    window_secs: Optional[int]
    total_requests: int
    success_count: int
    timeout_count: int
    conn_error_count: int
    http_error_count: int
    avg_latency_ms: float
    p95_latency_ms: float
    total_bytes: int
    timestamp: float


@dataclass(frozen=True)
class BenchmarkRecord:
    name: str
    mode: str
    elapsed_secs: float
    total: int
    success_count: int
    requests_per_sec: float


@dataclass(frozen=True)
class CrawlRecord:
    article_url: str
    links: List[str] = field(default_factory=list)

    def to_line(self, separator: str = "") -> str:
        """One log line: the article URL immediately followed by its links."""
        return f"{self.article_url}{separator.join(self.links)}\n"


def make_tasks(urls: Iterable[str]) -> List[FetchTask]:
    return [FetchTask(task_id=str(uuid.uuid4()), url=url) for url in urls]
