"""
Pytest configuration and shared fixtures for the test suite.
"""
import threading
from collections import Counter
from typing import Dict, Optional, Union

import pytest

from sitespider.errors import FetchError, HttpStatusError
from sitespider.fetch import FetchedPage
from sitespider.registry import JobRegistry
from sitespider.robots import RobotsCache


class FakeFetcher:
    """In-memory site: maps URLs to pages, robots.txt bodies or exceptions."""

    def __init__(self):
        self.pages: Dict[str, Union[FetchedPage, Exception]] = {}
        self.texts: Dict[str, Union[str, Exception]] = {}
        self.page_calls: Counter = Counter()
        self.text_calls: Counter = Counter()
        self._lock = threading.Lock()

    def add_page(self, url: str, links=(), title: Optional[str] = None, status_code: int = 200):
        self.pages[url] = FetchedPage(
            url=url,
            status_code=status_code,
            content_type="text/html; charset=utf-8",
            title=title if title is not None else url,
            links=tuple(links),
        )

    def fetch_page(self, url: str, timeout_s: float) -> FetchedPage:
        with self._lock:
            self.page_calls[url] += 1
        result = self.pages.get(url)
        if result is None:
            raise HttpStatusError(404, url, "Not Found")
        if isinstance(result, Exception):
            raise result
        return result

    def fetch_text(self, url: str, timeout_s: Optional[float]) -> str:
        with self._lock:
            self.text_calls[url] += 1
        result = self.texts.get(url)
        if result is None:
            raise FetchError(f"404 for {url}")
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def fetcher():
    """An empty fake site; tests add pages as needed."""
    return FakeFetcher()


@pytest.fixture
def robots(fetcher):
    return RobotsCache(fetcher)


@pytest.fixture
def registry(fetcher, robots):
    return JobRegistry(fetcher=fetcher, robots=robots)
