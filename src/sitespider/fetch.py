"""
HTTP + HTML fetching used by the crawl engine.

The engine only depends on the ``Fetcher`` protocol; ``RequestsFetcher`` is
the default implementation backed by requests and BeautifulSoup.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol, Tuple
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup, SoupStrainer

from sitespider.errors import FetchError, HttpStatusError

DEFAULT_USER_AGENT = "SiteSpider/1.0"

# SoupStrainer to parse only <a> tags (faster link extraction)
LINK_STRAINER = SoupStrainer("a", href=True)


@dataclass(frozen=True, slots=True)
class FetchedPage:
    """Outcome of a successful page fetch."""
    url: str
    status_code: int
    content_type: Optional[str]
    title: Optional[str]
    links: Tuple[str, ...] = ()


class Fetcher(Protocol):
    """What the engine needs from the network."""

    def fetch_page(self, url: str, timeout_s: float) -> FetchedPage:
        """Fetch and parse an HTML page, following redirects.

        Raises HttpStatusError for a failing status and FetchError otherwise.
        """
        ...

    def fetch_text(self, url: str, timeout_s: Optional[float]) -> str:
        """Fetch a raw text resource (robots.txt)."""
        ...


def extract_links(html: str, base_url: str) -> List[str]:
    """Extract absolute href values from <a> tags."""
    soup = BeautifulSoup(html, "lxml", parse_only=LINK_STRAINER)
    links = []
    for a in soup.find_all("a", href=True):
        href = (a.get("href") or "").strip()
        if href:
            links.append(urljoin(base_url, href))
    return links


def parse_title(html: str) -> Optional[str]:
    """Extract the document title."""
    soup = BeautifulSoup(html, "lxml")
    if soup.title and soup.title.string:
        return soup.title.string.strip() or None
    return None


def is_parseable(content_type: Optional[str]) -> bool:
    """Text and XML responses are parsed; a missing content type is given the benefit of the doubt."""
    if not content_type:
        return True
    mime = content_type.split(";", 1)[0].strip().lower()
    if mime.startswith("text/"):
        return True
    return mime == "application/xml" or (mime.startswith("application/") and mime.endswith("+xml"))


class RequestsFetcher:
    """Fetcher backed by a shared requests session."""

    def __init__(self, user_agent: str = DEFAULT_USER_AGENT, session: Optional[requests.Session] = None):
        self.session = session or requests.Session()
        self.session.headers["User-Agent"] = user_agent

    def fetch_page(self, url: str, timeout_s: float) -> FetchedPage:
        try:
            resp = self.session.get(url, timeout=timeout_s, allow_redirects=True)
        except requests.RequestException as e:
            raise FetchError(str(e)) from e

        if resp.status_code < 200 or resp.status_code >= 400:
            raise HttpStatusError(resp.status_code, url, resp.reason)

        content_type = resp.headers.get("content-type")
        if not is_parseable(content_type):
            raise FetchError(f"Unhandled content type {content_type!r} for {url}")

        try:
            html = resp.text
            title = parse_title(html)
            # Resolve against the final URL so redirects don't break relative links
            links = extract_links(html, resp.url or url)
        except Exception as e:
            raise FetchError(f"Could not parse {url}: {e}") from e

        return FetchedPage(
            url=url,
            status_code=resp.status_code,
            content_type=content_type,
            title=title,
            links=tuple(links),
        )

    def fetch_text(self, url: str, timeout_s: Optional[float]) -> str:
        try:
            resp = self.session.get(url, timeout=timeout_s, allow_redirects=True)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise FetchError(str(e)) from e
        return resp.text
