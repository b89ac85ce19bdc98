from __future__ import annotations

from typing import Dict, Optional

from .backoff import BackoffStrategy
from .base import BaseFetcher
from .fetchers import ImpersonatingFetcher, RequestsFetcher
from .rate_limiter import RateLimiter

BLOCKING_CLIENTS = {
    RequestsFetcher.client: RequestsFetcher,
    ImpersonatingFetcher.client: ImpersonatingFetcher,
}


class FetcherFactory:
    """Builds blocking fetchers by client name.

    One instance is cached per client: fetchers keep their sessions in
    thread-local storage, so a single instance is safe to share between the
    threads of a pool.
    """

    def __init__(
        self,
        rate_limiter: Optional[RateLimiter] = None,
        backoff: Optional[BackoffStrategy] = None,
        timeout: float = 20,
        max_retries: int = 3,
    ) -> None:
        self._rate_limiter = rate_limiter or RateLimiter(qps=0)
        self._backoff = backoff or BackoffStrategy()
        self._timeout = timeout
        self._max_retries = max_retries
        self._cache: Dict[str, BaseFetcher] = {}

    def create_fetcher(self, client: str) -> BaseFetcher:
        if client in self._cache:
            return self._cache[client]

        cls = BLOCKING_CLIENTS.get(client)
        if cls is None:
            raise ValueError(f"Unknown client: {client}")

        fetcher = cls(
            rate_limiter=self._rate_limiter,
            backoff=self._backoff,
            max_retries=self._max_retries,
            timeout=self._timeout,
        )
        self._cache[client] = fetcher
        return fetcher
