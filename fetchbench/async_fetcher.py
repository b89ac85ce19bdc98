from __future__ import annotations

import asyncio
import time
from typing import Any, Dict, Iterable, List, Optional

import aiohttp

from .backoff import BackoffStrategy
from .base import classify_error
from .models import FetchResult, FetchTask, make_tasks
from .rate_limiter import AsyncRateLimiter


class AsyncFetcher:
    """Fetches URLs on the event loop through a shared aiohttp session.

    A semaphore bounds the number of requests in flight. Like the blocking
    fetchers, fetch() never raises; failures come back as FetchResult.
    """

    client = "aiohttp"

    def __init__(
        self,
        session: aiohttp.ClientSession,
        concurrency: int = 10,
        timeout: float = 20,
        max_retries: int = 3,
        backoff: Optional[BackoffStrategy] = None,
        rate_limiter: Optional[AsyncRateLimiter] = None,
    ) -> None:
        self._session = session
        self._semaphore = asyncio.Semaphore(max(1, concurrency))
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._max_retries = max(1, max_retries)
        self._backoff = backoff or BackoffStrategy()
        self._rate_limiter = rate_limiter or AsyncRateLimiter(qps=0)

    async def fetch(self, task: FetchTask) -> FetchResult:
        start = time.time()
        if not task.url:
            return self._result(task, start, False, None, 0, None, "ValueError")

        async with self._semaphore:
            try:
                status, body, content_type = await self._get_with_retries(task)
            except Exception as exc:  # noqa: BLE001
                return self._result(task, start, False, None, 0, None, classify_error(exc))

        success = 200 <= status < 300
        data = {"bytes": len(body), "content_type": content_type}
        return self._result(
            task, start, success, status, len(body), data, None if success else f"HTTP_{status}"
        )

    async def fetch_all(self, tasks: Iterable[FetchTask]) -> List[FetchResult]:
        return list(await asyncio.gather(*(self.fetch(t) for t in tasks)))

    async def _get_with_retries(self, task: FetchTask) -> tuple:
        attempt = 0
        while True:
            attempt += 1
            await self._rate_limiter.acquire_async()
            try:
                async with self._session.get(
                    task.url,
                    headers=task.meta.get("headers"),
                    timeout=self._timeout,
                ) as resp:
                    body = await resp.read()
                    return resp.status, body, resp.headers.get("Content-Type")
            except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                if attempt >= self._max_retries:
                    raise
                await asyncio.sleep(self._backoff.get_sleep(attempt, type(exc).__name__))

    def _result(
        self,
        task: FetchTask,
        start: float,
        success: bool,
        status_code: Optional[int],
        size: int,
        data: Optional[Dict[str, Any]],
        error_type: Optional[str],
    ) -> FetchResult:
        return FetchResult(
            task_id=task.task_id,
            url=task.url,
            client=self.client,
            success=success,
            status_code=status_code,
            latency_ms=int((time.time() - start) * 1000),
            size_bytes=size,
            data=data,
            error_type=error_type,
        )


async def fetch_all_async(
    urls: Iterable[str],
    concurrency: int = 10,
    timeout: float = 20,
    max_retries: int = 3,
    qps: float = 0,
) -> List[FetchResult]:
    """Fetch every URL concurrently on the running loop, results in input order."""
    tasks = make_tasks(urls)
    async with aiohttp.ClientSession() as session:
        fetcher = AsyncFetcher(
            session,
            concurrency=concurrency,
            timeout=timeout,
            max_retries=max_retries,
            rate_limiter=AsyncRateLimiter(qps),
        )
        return await fetcher.fetch_all(tasks)
