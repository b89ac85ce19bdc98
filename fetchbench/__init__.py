"""Benchmarks for Python's concurrency models on an I/O-bound workload.

The same URL list is fetched sequentially, with a thread pool, on an asyncio
event loop, with a process pool, and with asyncio inside several processes.
A small Chrome DevTools Protocol client and link crawler live alongside.

Key modules:
    models        -- FetchTask, FetchResult, BenchmarkRecord, CrawlRecord
    base          -- BaseFetcher pipeline and error classification
    fetchers      -- RequestsFetcher, ImpersonatingFetcher (curl_cffi)
    factory       -- FetcherFactory, client name -> fetcher
    async_fetcher -- AsyncFetcher and fetch_all_async (aiohttp)
    controller    -- ThreadPoolController, bounded in-flight thread pool
    runners       -- one runner per concurrency model, chunk_urls
    benchmark     -- Stopwatch, timed, run_benchmark, format_report
    metrics       -- MetricsCollector for aggregated statistics
    rate_limiter  -- RateLimiter and AsyncRateLimiter
    backoff       -- BackoffStrategy for retry delays
    storage       -- JsonlStorage and LinkLog
    cdp           -- DevTools endpoints and CDPSession
    crawler       -- LinkCrawler and run_crawl
"""

__version__ = "0.1.0"
