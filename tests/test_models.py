"""Tests for data model classes."""

import unittest

from fetchbench.models import CrawlRecord, FetchResult, FetchTask, make_tasks


class TestFetchTask(unittest.TestCase):
    """Verify FetchTask creation and immutability."""

    def test_defaults(self):
        """FetchTask should be creatable with just required fields."""
        task = FetchTask(task_id="t1", url="https://example.com")
        self.assertEqual(task.meta, {})

    def test_is_immutable(self):
        """Frozen dataclass should raise on attribute assignment."""
        task = FetchTask(task_id="t1", url="https://example.com")
        with self.assertRaises(AttributeError):
            task.url = "https://other.com"

    def test_make_tasks_assigns_unique_ids(self):
        """make_tasks should keep URL order and give every task its own id."""
        tasks = make_tasks(["https://a", "https://a", "https://b"])
        self.assertEqual([t.url for t in tasks], ["https://a", "https://a", "https://b"])
        self.assertEqual(len({t.task_id for t in tasks}), 3)


class TestFetchResult(unittest.TestCase):
    """Verify FetchResult creation."""

    def test_failed_result_carries_error(self):
        """A failed result should carry the error_type."""
        result = FetchResult(
            task_id="t1",
            url="https://example.com",
            client="requests",
            success=False,
            status_code=429,
            latency_ms=50,
            size_bytes=0,
            data=None,
            error_type="HTTP_429",
        )
        self.assertFalse(result.success)
        self.assertEqual(result.error_type, "HTTP_429")


class TestCrawlRecord(unittest.TestCase):
    """Verify the crawler log line format."""

    def test_line_concatenates_links(self):
        """Links should follow the article URL with no separator."""
        record = CrawlRecord("https://blog/post", ["https://a", "https://b"])
        self.assertEqual(record.to_line(), "https://blog/posthttps://ahttps://b\n")

    def test_line_with_separator(self):
        """A separator should be placed between links only."""
        record = CrawlRecord("https://blog/post", ["https://a", "https://b"])
        self.assertEqual(record.to_line(" "), "https://blog/posthttps://a https://b\n")

    def test_line_without_links(self):
        """An article without links should log just its URL."""
        self.assertEqual(CrawlRecord("https://blog/post").to_line(), "https://blog/post\n")


if __name__ == "__main__":
    unittest.main()
