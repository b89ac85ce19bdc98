from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

from .models import FetchResult, FetchTask


class ThreadPoolController:
    """Thread pool that caps the number of fetches in flight.

    submit() blocks the producer once `limit` tasks are running, so a long
    URL list never turns into an unbounded backlog of queued futures.
    """

    def __init__(self, max_workers: int, limit: Optional[int] = None) -> None:
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="fetch")
        self._cv = threading.Condition(threading.Lock())
        self._limit = max(1, limit if limit is not None else max_workers)
        self._active = 0
        self._running = True

    def __enter__(self) -> "ThreadPoolController":
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop(wait=True)

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def active(self) -> int:
        with self._cv:
            return self._active

    def stop(self, wait: bool = True) -> None:
        with self._cv:
            self._running = False
            self._cv.notify_all()
        self._executor.shutdown(wait=wait)

    def submit(self, fn: Callable[[FetchTask], FetchResult], task: FetchTask) -> Future:
        with self._cv:
            while self._running and self._active >= self._limit:
                self._cv.wait(timeout=0.5)

            if not self._running:
                future: Future = Future()
                future.set_result(self._stopped_result(task))
                return future

            self._active += 1

        return self._executor.submit(self._wrap_task, fn, task)

    def _wrap_task(self, fn: Callable[[FetchTask], FetchResult], task: FetchTask) -> FetchResult:
        try:
            return fn(task)
        finally:
            with self._cv:
                self._active -= 1
                self._cv.notify_all()

    @staticmethod
    def _stopped_result(task: FetchTask) -> FetchResult:
        return FetchResult(
            task_id=task.task_id,
            url=task.url,
            client="none",
            success=False,
            status_code=None,
            latency_ms=0,
            size_bytes=0,
            data=None,
            error_type="ControllerStopped",
        )
