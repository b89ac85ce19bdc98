"""Tests for LinkCrawler and run_crawl against a fake browser."""

import io
import os
import tempfile
import unittest
from contextlib import redirect_stdout

from devtools_fixture import FakeDevTools

from fetchbench.cdp import CDPSession
from fetchbench.crawler import LinkCrawler, hrefs_expression, open_page_session, run_crawl
from fetchbench.storage import LinkLog

INDEX = "http://blog.test/"
PAGES = {
    INDEX: {"a.post": ["http://blog.test/1", "http://blog.test/2", "http://blog.test/1"]},
    "http://blog.test/1": {"a[href]": ["http://x/a", "http://x/b"], "article a": ["http://x/b"]},
    "http://blog.test/2": {"a[href]": ["http://x/c"]},
}


class TestHrefsExpression(unittest.TestCase):
    """Verify the in-page link extraction script."""

    def test_selector_is_quoted(self):
        """The selector should be embedded as a JSON string literal."""
        expr = hrefs_expression('a[title="x"]')
        self.assertIn('querySelectorAll("a[title=\\"x\\"]")', expr)
        self.assertIn("el.href", expr)


class _CrawlerCase(unittest.IsolatedAsyncioTestCase):
    """Starts a fake browser and a temporary log file."""

    async def asyncSetUp(self):
        self.browser = await FakeDevTools(PAGES).start()
        fd, self.log_path = tempfile.mkstemp(suffix=".log")
        os.close(fd)
        self.addCleanup(os.remove, self.log_path)

    async def asyncTearDown(self):
        await self.browser.stop()

    def _read_log(self):
        with open(self.log_path, encoding="utf-8") as f:
            return f.read()


class TestLinkCrawler(_CrawlerCase):
    """Verify LinkCrawler against a connected fake browser."""

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.session = CDPSession(f"ws://127.0.0.1:{self.browser.port}/devtools/page/1", timeout=2)
        await self.session.connect()
        self.log = LinkLog(self.log_path)
        self.crawler = LinkCrawler(self.session, self.log, article_selector="a.post")
        await self.crawler.prepare()

    async def asyncTearDown(self):
        self.log.close()
        await self.session.close()
        await super().asyncTearDown()

    async def test_prepare_enables_page_domain(self):
        """prepare() should enable the Page domain first."""
        self.assertEqual(self.browser.methods[0], "Page.enable")

    async def test_collect_articles_dedupes_in_order(self):
        """Article links should be de-duplicated in page order."""
        articles = await self.crawler.collect_articles(INDEX)
        self.assertEqual(articles, ["http://blog.test/1", "http://blog.test/2"])

    async def test_scrape_article(self):
        """scrape_article should return the article's matching links."""
        record = await self.crawler.scrape_article("http://blog.test/1")
        self.assertEqual(record.article_url, "http://blog.test/1")
        self.assertEqual(record.links, ["http://x/a", "http://x/b"])

    async def test_crawl_logs_and_skips_failures(self):
        """A failing article should be printed and skipped; the rest are logged."""
        out = io.StringIO()
        with redirect_stdout(out):
            records = await self.crawler.crawl(
                ["http://blog.test/1", "http://gone.test/", "http://blog.test/2"]
            )
        self.assertEqual([r.article_url for r in records], ["http://blog.test/1", "http://blog.test/2"])
        self.assertEqual(
            self._read_log(),
            "http://blog.test/1http://x/ahttp://x/b\nhttp://blog.test/2http://x/c\n",
        )
        self.assertIn("failed http://gone.test/: CDPError:", out.getvalue())


class TestRunCrawl(_CrawlerCase):
    """Verify run_crawl end to end."""

    async def test_index_driven_crawl(self):
        """Articles found on the index page should each get one log line."""
        with redirect_stdout(io.StringIO()):
            records = await run_crawl(
                self.log_path,
                port=self.browser.port,
                index_url=INDEX,
                article_selector="a.post",
                link_selector="article a",
                separator=" ",
                page_timeout=2,
            )
        self.assertEqual(len(records), 2)
        self.assertEqual(self._read_log(), "http://blog.test/1http://x/b\nhttp://blog.test/2\n")

    async def test_explicit_articles(self):
        """Explicit article URLs should be crawled without an index page."""
        with redirect_stdout(io.StringIO()):
            records = await run_crawl(
                self.log_path, port=self.browser.port, article_urls=["http://blog.test/2"], page_timeout=2
            )
        self.assertEqual(records[0].links, ["http://x/c"])

    async def test_requires_some_input(self):
        """Without an index URL or articles run_crawl should raise ValueError."""
        with self.assertRaises(ValueError):
            await run_crawl(self.log_path, port=self.browser.port)

    async def test_opens_tab_when_none_exists(self):
        """With no page target open, a new tab should be created."""
        self.browser.open_tabs = False
        session = await open_page_session("127.0.0.1", self.browser.port, timeout=2)
        try:
            self.assertEqual(self.browser.created, 1)
            self.assertTrue(session.ws_url.endswith("/devtools/page/new1"))
        finally:
            await session.close()


if __name__ == "__main__":
    unittest.main()
