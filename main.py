from __future__ import annotations

import argparse
import asyncio
from dataclasses import asdict
from typing import List, Optional

from fetchbench.benchmark import format_report, run_suite
from fetchbench.cdp import DEFAULT_HOST, DEFAULT_PORT
from fetchbench.config import (
    DEFAULT_CLIENT,
    DEFAULT_CONCURRENCY,
    DEFAULT_PROCESSES,
    DEFAULT_QPS,
    DEFAULT_RETRIES,
    DEFAULT_TIMEOUT,
    RunOptions,
)
from fetchbench.crawler import DEFAULT_LINK_SELECTOR, run_crawl
from fetchbench.factory import BLOCKING_CLIENTS
from fetchbench.metrics import MetricsCollector
from fetchbench.runners import RUNNERS
from fetchbench.storage import JsonlStorage

DEFAULT_URL_LIST_PATH = "urls.txt"
DEFAULT_LOG_PATH = "links.log"


def _load_urls(path: str, limit: Optional[int] = None) -> List[str]:
    if limit is not None and limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")
    urls: List[str] = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            url = line.strip()
            if not url or url.startswith("#"):
                continue
            urls.append(url)
            if limit is not None and len(urls) >= limit:
                break
    if not urls:
        raise ValueError(f"No URLs found in {path}")
    return urls


def run_bench(
    url_path: str,
    modes: List[str],
    options: RunOptions,
    limit: Optional[int],
    repeat: int,
    results_path: Optional[str],
) -> None:
    urls = _load_urls(url_path, limit=limit) * max(1, repeat)
    print(f"fetching {len(urls)} urls per mode with client={options.client}")

    outcomes = run_suite(modes, urls, options)
    records = [record for record, _ in outcomes]

    metrics = MetricsCollector()
    for record, results in outcomes:
        metrics.clear()
        metrics.record_many(results)
        snap = metrics.snapshot()
        print(
            f"{record.mode}: timeouts={snap.timeout_count} conn_errors={snap.conn_error_count} "
            f"http_errors={snap.http_error_count} avg_latency_ms={snap.avg_latency_ms:.0f} "
            f"p95_latency_ms={snap.p95_latency_ms:.0f} bytes={snap.total_bytes}"
        )

    print()
    print(format_report(records))

    if results_path:
        with JsonlStorage(results_path) as storage:
            for record, results in outcomes:
                for result in results:
                    storage.write(result)
                storage.write_record({"kind": "benchmark", **asdict(record)})


def _check_bench_args(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    for flag, value in (
        ("--limit", args.limit),
        ("--repeat", args.repeat),
        ("--concurrency", args.concurrency),
        ("--processes", args.processes),
        ("--retries", args.retries),
    ):
        if value is not None and value < 1:
            parser.error(f"{flag} must be >= 1, got {value}")
    if args.timeout <= 0:
        parser.error(f"--timeout must be > 0, got {args.timeout}")


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Compare Python concurrency models on URL fetching")
    parser.add_argument("--run-bench", action="store_true", help="Fetch a URL list with each mode and time it")
    parser.add_argument("--run-crawl", action="store_true", help="Crawl article links through a running Chrome")

    bench = parser.add_argument_group("benchmark")
    bench.add_argument("--urls", default=DEFAULT_URL_LIST_PATH, help="File with one URL per line")
    bench.add_argument("--limit", type=int, default=None, help="Max number of URLs to load")
    bench.add_argument("--repeat", type=int, default=1, help="Repeat the URL list N times")
    bench.add_argument("--modes", nargs="+", default=list(RUNNERS), choices=list(RUNNERS))
    bench.add_argument("--client", default=DEFAULT_CLIENT, choices=list(BLOCKING_CLIENTS),
                       help="HTTP client for the blocking modes")
    bench.add_argument("--concurrency", type=int, default=DEFAULT_CONCURRENCY,
                       help="Threads per pool / in-flight requests per event loop")
    bench.add_argument("--processes", type=int, default=DEFAULT_PROCESSES, help="Worker processes")
    bench.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT, help="Per-request timeout seconds")
    bench.add_argument("--retries", type=int, default=DEFAULT_RETRIES, help="Attempts per URL")
    bench.add_argument("--qps", type=float, default=DEFAULT_QPS, help="Request pacing, 0 disables")
    bench.add_argument("--results", default=None, help="Append results to this JSONL file")
    bench.add_argument("--verbose", action="store_true", help="Print one line per fetched URL")

    crawl = parser.add_argument_group("crawl")
    crawl.add_argument("--host", default=DEFAULT_HOST, help="Chrome remote debugging host")
    crawl.add_argument("--port", type=int, default=DEFAULT_PORT, help="Chrome remote debugging port")
    crawl.add_argument("--index-url", default=None, help="Page listing the articles to crawl")
    crawl.add_argument("--articles", default=None, help="File with article URLs, one per line")
    crawl.add_argument("--article-selector", default=DEFAULT_LINK_SELECTOR,
                       help="CSS selector for article links on the index page")
    crawl.add_argument("--link-selector", default=DEFAULT_LINK_SELECTOR,
                       help="CSS selector for links to extract from each article")
    crawl.add_argument("--separator", default="", help="String placed between links in the log")
    crawl.add_argument("--log", default=DEFAULT_LOG_PATH, help="Output log file")
    crawl.add_argument("--page-timeout", type=float, default=30.0, help="Seconds to wait for page load")

    args = parser.parse_args(argv)

    if args.run_bench:
        _check_bench_args(parser, args)
        options = RunOptions(
            client=args.client,
            concurrency=args.concurrency,
            processes=args.processes,
            timeout=args.timeout,
            max_retries=args.retries,
            qps=args.qps,
            verbose=args.verbose,
        )
        run_bench(args.urls, args.modes, options, args.limit, args.repeat, args.results)
        return

    if args.run_crawl:
        if not args.index_url and not args.articles:
            parser.error("--run-crawl needs --index-url or --articles")
        article_urls = _load_urls(args.articles) if args.articles else None
        records = asyncio.run(
            run_crawl(
                args.log,
                host=args.host,
                port=args.port,
                index_url=args.index_url,
                article_urls=article_urls,
                article_selector=args.article_selector,
                link_selector=args.link_selector,
                separator=args.separator,
                page_timeout=args.page_timeout,
            )
        )
        print(f"\nDONE: {len(records)} articles written to {args.log}")
        return

    print("Nothing to do. Use --run-bench or --run-crawl.")


if __name__ == "__main__":
    main()
