from __future__ import annotations

import asyncio
import json
from typing import Iterable, List, Optional

from .cdp import DEFAULT_HOST, DEFAULT_PORT, CDPError, CDPSession, list_targets, new_target
from .models import CrawlRecord
from .storage import LinkLog

DEFAULT_LINK_SELECTOR = "a[href]"

# Resolved hrefs of every element matching a selector, in document order.
_HREFS_JS = (
    "Array.from(document.querySelectorAll({selector}))"
    ".map(el => el.href).filter(href => typeof href === 'string' && href.length > 0)"
)


def hrefs_expression(selector: str) -> str:
    return _HREFS_JS.format(selector=json.dumps(selector))


def _dedupe(items: Iterable[str]) -> List[str]:
    seen = set()
    out = []
    for item in items:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out


class LinkCrawler:
    """Drives one browser tab through article pages and logs the links on each."""

    def __init__(
        self,
        session: CDPSession,
        link_log: LinkLog,
        link_selector: str = DEFAULT_LINK_SELECTOR,
        article_selector: str = DEFAULT_LINK_SELECTOR,
        page_timeout: float = 30.0,
    ) -> None:
        self._session = session
        self._log = link_log
        self._link_selector = link_selector
        self._article_selector = article_selector
        self._page_timeout = page_timeout

    async def prepare(self) -> None:
        # Page.loadEventFired is only emitted once the Page domain is enabled.
        await self._session.send("Page.enable")

    async def extract_links(self, url: str, selector: str) -> List[str]:
        await self._session.navigate(url, timeout=self._page_timeout)
        value = await self._session.evaluate(hrefs_expression(selector))
        return [str(v) for v in value or []]

    async def collect_articles(self, index_url: str) -> List[str]:
        return _dedupe(await self.extract_links(index_url, self._article_selector))

    async def scrape_article(self, url: str) -> CrawlRecord:
        return CrawlRecord(article_url=url, links=await self.extract_links(url, self._link_selector))

    async def crawl(self, article_urls: Iterable[str]) -> List[CrawlRecord]:
        records = []
        for url in article_urls:
            try:
                record = await self.scrape_article(url)
            except (CDPError, ValueError, TypeError) as exc:
                print(f"failed {url}: {type(exc).__name__}: {exc}")
                continue
            self._log.append(record)
            print(f"scraped {url}: {len(record.links)} links")
            records.append(record)
        return records


async def open_page_session(host: str, port: int, timeout: float = 30.0) -> CDPSession:
    """Connect to the first open page of the browser, opening a tab if there is none."""
    targets = await asyncio.to_thread(list_targets, host, port)
    pages = [t for t in targets if t.get("type") == "page" and t.get("webSocketDebuggerUrl")]
    target = pages[0] if pages else await asyncio.to_thread(new_target, host, port)
    session = CDPSession(target["webSocketDebuggerUrl"], timeout=timeout)
    await session.connect()
    return session


async def run_crawl(
    log_path: str,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    index_url: Optional[str] = None,
    article_urls: Optional[Iterable[str]] = None,
    article_selector: str = DEFAULT_LINK_SELECTOR,
    link_selector: str = DEFAULT_LINK_SELECTOR,
    separator: str = "",
    page_timeout: float = 30.0,
) -> List[CrawlRecord]:
    if index_url is None and article_urls is None:
        raise ValueError("either index_url or article_urls is required")

    session = await open_page_session(host, port, timeout=page_timeout)
    try:
        with LinkLog(log_path, separator=separator) as link_log:
            crawler = LinkCrawler(
                session,
                link_log,
                link_selector=link_selector,
                article_selector=article_selector,
                page_timeout=page_timeout,
            )
            await crawler.prepare()
            urls = list(article_urls or [])
            if index_url is not None:
                urls.extend(await crawler.collect_articles(index_url))
            return await crawler.crawl(_dedupe(urls))
    finally:
        await session.close()
