"""One function per concurrency model, all with the same signature.

Each runner takes a URL list and RunOptions and returns one FetchResult per
URL. Thread and process runners return results in completion order; the
sequential, asyncio and hybrid runners preserve input order.
"""
from __future__ import annotations

import asyncio
from concurrent.futures import ProcessPoolExecutor, as_completed
from typing import Callable, Dict, List, Optional, Sequence

from .async_fetcher import fetch_all_async
from .backoff import BackoffStrategy
from .base import BaseFetcher
from .config import RunOptions
from .controller import ThreadPoolController
from .factory import BLOCKING_CLIENTS, FetcherFactory
from .models import FetchResult, FetchTask, make_tasks
from .rate_limiter import RateLimiter

Runner = Callable[[Sequence[str], RunOptions], List[FetchResult]]


def _build_fetcher(options: RunOptions) -> BaseFetcher:
    factory = FetcherFactory(
        rate_limiter=RateLimiter(options.qps),
        backoff=BackoffStrategy(),
        timeout=options.timeout,
        max_retries=options.max_retries,
    )
    return factory.create_fetcher(options.client)


def _report(result: FetchResult, options: RunOptions) -> None:
    if options.verbose:
        print(
            f"url={result.url} success={result.success} status={result.status_code} "
            f"latency_ms={result.latency_ms} bytes={result.size_bytes} error={result.error_type}"
        )


def chunk_urls(urls: Sequence[str], n: int) -> List[List[str]]:
    """Split urls into at most n contiguous chunks whose sizes differ by at most one."""
    if n < 1:
        raise ValueError(f"chunk count must be >= 1, got {n}")
    n = min(n, len(urls))
    if n == 0:
        return []
    size, extra = divmod(len(urls), n)
    chunks: List[List[str]] = []
    start = 0
    for i in range(n):
        end = start + size + (1 if i < extra else 0)
        chunks.append(list(urls[start:end]))
        start = end
    return chunks


def run_sequential(urls: Sequence[str], options: RunOptions) -> List[FetchResult]:
    fetcher = _build_fetcher(options)
    results = []
    for task in make_tasks(urls):
        result = fetcher.run(task)
        _report(result, options)
        results.append(result)
    return results


def run_threaded(urls: Sequence[str], options: RunOptions) -> List[FetchResult]:
    fetcher = _build_fetcher(options)
    results = []
    with ThreadPoolController(max_workers=options.concurrency) as controller:
        futures = [controller.submit(fetcher.run, task) for task in make_tasks(urls)]
        for fut in as_completed(futures):
            result = fut.result()
            _report(result, options)
            results.append(result)
    return results


def run_asyncio(urls: Sequence[str], options: RunOptions) -> List[FetchResult]:
    results = asyncio.run(
        fetch_all_async(
            urls,
            concurrency=options.concurrency,
            timeout=options.timeout,
            max_retries=options.max_retries,
            qps=options.qps,
        )
    )
    for result in results:
        _report(result, options)
    return results


# Per-process fetcher, built once by the pool initializer.
_worker_fetcher: Optional[BaseFetcher] = None


def _init_worker(options: RunOptions) -> None:
    global _worker_fetcher
    _worker_fetcher = _build_fetcher(options)


def _fetch_in_worker(task: FetchTask) -> FetchResult:
    if _worker_fetcher is None:
        raise RuntimeError("worker initializer did not run")
    return _worker_fetcher.run(task)


def run_multiprocess(urls: Sequence[str], options: RunOptions) -> List[FetchResult]:
    # Fail here rather than as a broken pool in the initializer.
    if options.client not in BLOCKING_CLIENTS:
        raise ValueError(f"Unknown client: {options.client}")
    results = []
    with ProcessPoolExecutor(
        max_workers=options.processes,
        initializer=_init_worker,
        initargs=(options,),
    ) as pool:
        futures = [pool.submit(_fetch_in_worker, task) for task in make_tasks(urls)]
        for fut in as_completed(futures):
            result = fut.result()
            _report(result, options)
            results.append(result)
    return results


def _fetch_chunk(chunk: List[str], options: RunOptions) -> List[FetchResult]:
    return asyncio.run(
        fetch_all_async(
            chunk,
            concurrency=options.concurrency,
            timeout=options.timeout,
            max_retries=options.max_retries,
            qps=options.qps,
        )
    )


def run_hybrid(urls: Sequence[str], options: RunOptions) -> List[FetchResult]:
    chunks = chunk_urls(urls, options.processes)
    if not chunks:
        return []
    results = []
    with ProcessPoolExecutor(max_workers=len(chunks)) as pool:
        for chunk_results in pool.map(_fetch_chunk, chunks, [options] * len(chunks)):
            for result in chunk_results:
                _report(result, options)
            results.extend(chunk_results)
    return results


RUNNERS: Dict[str, Runner] = {
    "sequential": run_sequential,
    "threaded": run_threaded,
    "asyncio": run_asyncio,
    "multiprocess": run_multiprocess,
    "hybrid": run_hybrid,
}


def get_runner(mode: str) -> Runner:
    try:
        return RUNNERS[mode]
    except KeyError:
        raise ValueError(f"Unknown mode: {mode} (expected one of {', '.join(RUNNERS)})") from None
