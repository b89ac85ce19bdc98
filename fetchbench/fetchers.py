from __future__ import annotations

import threading
import time as _time
from typing import Any, Dict, Optional

import requests
from curl_cffi import requests as curl_requests

from .backoff import BackoffStrategy
from .base import BaseFetcher
from .models import FetchTask
from .rate_limiter import RateLimiter


class _RetryingFetcher(BaseFetcher):
    """Retry loop shared by the blocking clients.

    Only exceptions are retried; a completed response of any status is
    returned as-is and judged by BaseFetcher.run().
    """

    def __init__(
        self,
        rate_limiter: Optional[RateLimiter] = None,
        backoff: Optional[BackoffStrategy] = None,
        max_retries: int = 3,
        timeout: float = 20,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self._rate_limiter = rate_limiter or RateLimiter(qps=0)
        self._backoff = backoff or BackoffStrategy()
        self._max_retries = max(1, max_retries)
        self._timeout = timeout
        self._headers = headers or {}
        self._local = threading.local()

    def fetch(self, task: FetchTask) -> Any:
        attempt = 0
        while True:
            attempt += 1
            self._rate_limiter.acquire()
            try:
                return self._request(task)
            except Exception as exc:  # noqa: BLE001
                if attempt >= self._max_retries:
                    raise
                _time.sleep(self._backoff.get_sleep(attempt, type(exc).__name__))

    def parse(self, response: Any) -> Any:
        body = response.content or b""
        return {
            "bytes": len(body),
            "content_type": response.headers.get("Content-Type"),
        }

    def _request(self, task: FetchTask) -> Any:
        raise NotImplementedError

    def _session(self) -> Any:
        # Sessions are not shared across threads.
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._new_session()
            self._local.session = session
        return session

    def _new_session(self) -> Any:
        raise NotImplementedError


class RequestsFetcher(_RetryingFetcher):
    client = "requests"

    def _new_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update(self._headers)
        return session

    def _request(self, task: FetchTask) -> requests.Response:
        return self._session().get(
            task.url,
            headers=task.meta.get("headers"),
            timeout=self._timeout,
        )


class ImpersonatingFetcher(_RetryingFetcher):
    """curl_cffi client presenting a real browser's TLS and HTTP/2 fingerprint."""

    client = "curl_cffi"

    def __init__(self, *args, impersonate: str = "chrome120", **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._impersonate = impersonate

    def _new_session(self) -> curl_requests.Session:
        return curl_requests.Session(headers=self._headers, impersonate=self._impersonate)

    def _request(self, task: FetchTask) -> Any:
        return self._session().get(
            task.url,
            headers=task.meta.get("headers"),
            timeout=self._timeout,
        )
