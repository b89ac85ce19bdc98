from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any, Optional

from .models import FetchResult, FetchTask


def classify_error(exc: BaseException) -> str:
    """Map library-specific exceptions onto a small shared vocabulary.

    requests, curl_cffi and aiohttp each name their timeout and connection
    failures differently (ReadTimeout, ServerTimeoutError, ClientConnectorError,
    ...). Metrics count them together, so the names are folded here.
    """
    name = type(exc).__name__
    if "Timeout" in name:
        return "Timeout"
    if "Connect" in name:
        return "ConnectionError"
    return name


class BaseFetcher(ABC):
    """Blocking fetch pipeline shared by the thread, process and sequential runners.

    run() never raises: every failure is folded into a FetchResult so a
    benchmark run always yields one result per URL.
    """

    client = "base"

    def run(self, task: FetchTask) -> FetchResult:
        start_ms = self._now_ms()
        status_code: Optional[int] = None

        try:
            self.validate(task)
            response = self.fetch(task)
            status_code = getattr(response, "status_code", None)

            try:
                parsed = self.parse(response)
            except Exception as parse_exc:  # noqa: BLE001
                return self._result(
                    task,
                    start_ms,
                    success=False,
                    status_code=status_code,
                    data={"parse_error": type(parse_exc).__name__},
                    error_type=type(parse_exc).__name__,
                )

            success = bool(status_code is not None and 200 <= int(status_code) < 300)
            return self._result(
                task,
                start_ms,
                success=success,
                status_code=status_code,
                data=parsed,
                error_type=None if success else f"HTTP_{status_code}",
            )

        except Exception as exc:  # noqa: BLE001
            return self._result(
                task,
                start_ms,
                success=False,
                status_code=status_code,
                data=None,
                error_type=classify_error(exc),
            )

    def validate(self, task: FetchTask) -> None:
        if not task.url:
            raise ValueError("task.url is required")

    @abstractmethod
    def fetch(self, task: FetchTask) -> Any:
        ...

    @abstractmethod
    def parse(self, response: Any) -> Any:
        ...

    def _result(
        self,
        task: FetchTask,
        start_ms: int,
        *,
        success: bool,
        status_code: Optional[int],
        data: Any,
        error_type: Optional[str],
    ) -> FetchResult:
        size = data.get("bytes", 0) if isinstance(data, dict) else 0
        return FetchResult(
            task_id=task.task_id,
            url=task.url,
            client=self.client,
            success=success,
            status_code=status_code,
            latency_ms=self._now_ms() - start_ms,
            size_bytes=size,
            data=data,
            error_type=error_type,
        )

    @staticmethod
    def _now_ms() -> int:
        return int(time.time() * 1000)
