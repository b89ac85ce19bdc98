"""Tests for the blocking fetchers against a local HTTP server."""

import threading
import unittest

from http_fixture import LocalServer

from fetchbench.backoff import BackoffStrategy
from fetchbench.fetchers import ImpersonatingFetcher, RequestsFetcher
from fetchbench.models import FetchTask


class _FetcherCases:
    """Shared cases; subclasses set fetcher_cls."""

    fetcher_cls = None

    @classmethod
    def setUpClass(cls):
        cls.server = LocalServer().start()

    @classmethod
    def tearDownClass(cls):
        cls.server.stop()

    def _fetcher(self, **kwargs):
        kwargs.setdefault("backoff", BackoffStrategy(base_seconds=0.0))
        kwargs.setdefault("timeout", 5)
        return self.fetcher_cls(**kwargs)

    def test_fetches_body(self):
        """A 200 response should report body size and content type."""
        result = self._fetcher().run(FetchTask("t1", self.server.url("/page")))
        self.assertTrue(result.success)
        self.assertEqual(result.status_code, 200)
        self.assertEqual(result.size_bytes, len(b"hello /page"))
        self.assertEqual(result.data["content_type"], "text/plain")
        self.assertEqual(result.client, self.fetcher_cls.client)

    def test_http_error_status(self):
        """A 404 response should be reported as HTTP_404."""
        result = self._fetcher().run(FetchTask("t1", self.server.url("/status/404")))
        self.assertFalse(result.success)
        self.assertEqual(result.status_code, 404)
        self.assertEqual(result.error_type, "HTTP_404")

    def test_timeout_is_reported(self):
        """A response slower than the timeout should be classified as Timeout."""
        result = self._fetcher(timeout=0.2, max_retries=1).run(FetchTask("t1", self.server.url("/slow")))
        self.assertFalse(result.success)
        self.assertEqual(result.error_type, "Timeout")

    def test_refused_connection_after_retries(self):
        """A closed port should be classified as ConnectionError after retries."""
        # Port 9 (discard) is closed on test hosts.
        fetcher = self._fetcher(max_retries=2)
        result = fetcher.run(FetchTask("t1", "http://127.0.0.1:9/"))
        self.assertFalse(result.success)
        self.assertEqual(result.error_type, "ConnectionError")


class TestRequestsFetcher(_FetcherCases, unittest.TestCase):
    """Run the shared cases with requests."""
    fetcher_cls = RequestsFetcher

    def test_sessions_are_per_thread(self):
        """Each thread should get its own session."""
        fetcher = self._fetcher()
        sessions = []
        t = threading.Thread(target=lambda: sessions.append(fetcher._session()))
        t.start()
        t.join()
        self.assertIsNot(sessions[0], fetcher._session())


class TestImpersonatingFetcher(_FetcherCases, unittest.TestCase):
    """Run the shared cases with curl_cffi."""
    fetcher_cls = ImpersonatingFetcher


if __name__ == "__main__":
    unittest.main()
