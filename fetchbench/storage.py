from __future__ import annotations

import json
import queue
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import asdict
from typing import Any, Dict, Optional

from .models import CrawlRecord, FetchResult


class StorageBase(ABC):
    @abstractmethod
    def close(self) -> None:
        """Flush pending writes and release resources."""

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class JsonlStorage(StorageBase):
    """Appends results as JSON Lines from a background writer thread.

    Fetch threads only enqueue, so a slow disk never stalls a benchmark.
    """

    def __init__(self, path: str) -> None:
        self._path = path
        self._queue: "queue.Queue[Optional[Dict[str, Any]]]" = queue.Queue()
        self._thread = threading.Thread(target=self._writer, daemon=True)
        self._thread.start()

    def write(self, result: FetchResult) -> None:
        self.write_record({"kind": "result", **asdict(result)})

    def write_record(self, record: Dict[str, Any]) -> None:
        self._queue.put({"timestamp": time.time(), **record})

    def close(self) -> None:
        self._queue.put(None)
        self._thread.join(timeout=5)

    def _writer(self) -> None:
        with open(self._path, "a", encoding="utf-8") as f:
            while True:
                item = self._queue.get()
                if item is None:
                    break
                f.write(json.dumps(item, ensure_ascii=False, default=str) + "\n")
                f.flush()


class LinkLog(StorageBase):
    """Crawler output: one `<article-url><links>` line per scraped article."""

    def __init__(self, path: str, separator: str = "") -> None:
        self._separator = separator
        self._lock = threading.Lock()
        self._file = open(path, "a", encoding="utf-8")

    def append(self, record: CrawlRecord) -> None:
        with self._lock:
            self._file.write(record.to_line(self._separator))
            self._file.flush()

    def close(self) -> None:
        with self._lock:
            if not self._file.closed:
                self._file.close()
