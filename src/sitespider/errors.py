"""
Exception types raised by the spider.
"""
from __future__ import annotations

from typing import List, Optional


class ConfigValidationError(ValueError):
    """Raised when a crawl policy fails validation; carries every violation."""

    def __init__(self, messages: List[str]):
        self.messages = list(messages)
        super().__init__(f"Invalid configuration: {', '.join(self.messages)}")


class FetchError(Exception):
    """Generic failure fetching or parsing a page."""


class HttpStatusError(FetchError):
    """The server answered with a non-success HTTP status."""

    def __init__(self, status_code: int, url: str, reason: Optional[str] = None):
        self.status_code = status_code
        self.url = url
        self.reason = reason or ""
        super().__init__(f"{status_code} {self.reason}".strip() + f" for {url}")
