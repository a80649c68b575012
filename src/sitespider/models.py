"""
Site map data model: pages, job status, and derived views.
"""
from __future__ import annotations

import threading
from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple
from urllib.parse import urlparse

from sitespider.policy import CrawlPolicy
from sitespider.store import PageStore


def utc_now() -> datetime:
    """Return current UTC time without microseconds."""
    return datetime.now(timezone.utc).replace(microsecond=0)


@dataclass(frozen=True, slots=True)
class Page:
    """One crawled (or merely discovered) page. Never mutated; use ``replace``."""
    url: str
    title: Optional[str] = None
    depth: int = 0
    parent_url: Optional[str] = None
    child_urls: Tuple[str, ...] = ()
    status_code: Optional[int] = None
    content_type: Optional[str] = None
    error_message: Optional[str] = None
    crawl_time: datetime = field(default_factory=utc_now)

    @property
    def is_success(self) -> bool:
        return (
            self.status_code is not None
            and 200 <= self.status_code <= 299
            and self.error_message is None
        )

    @property
    def domain(self) -> str:
        try:
            return urlparse(self.url).netloc
        except ValueError:
            return ""

    def replace(self, **changes) -> "Page":
        """Return a copy with the given fields changed and a fresh timestamp."""
        changes.setdefault("crawl_time", utc_now())
        return replace(self, **changes)

    def with_child(self, child_url: str) -> "Page":
        if child_url in self.child_urls:
            return self
        return self.replace(child_urls=self.child_urls + (child_url,))


@dataclass(frozen=True, slots=True)
class PageTreeNode:
    """A page together with its expanded children."""
    page: Page
    children: Tuple["PageTreeNode", ...] = ()


class SiteMapStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (SiteMapStatus.COMPLETED, SiteMapStatus.FAILED)


class SiteMap:
    """
    Everything known about one crawl job.

    Metrics are recomputed from a single Page Store snapshot on every call,
    so they are always consistent with each other.
    """

    def __init__(self, policy: CrawlPolicy):
        self.start_url = policy.start_url
        self.policy = policy
        self.pages = PageStore()
        self.start_time = utc_now()
        self.end_time: Optional[datetime] = None
        self._status = SiteMapStatus.PENDING
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"SiteMap({self.start_url!r}, status={self.status.value}, pages={len(self.pages)})"

    # --- Status transitions ---

    @property
    def status(self) -> SiteMapStatus:
        return self._status

    def mark_started(self) -> bool:
        """PENDING -> IN_PROGRESS."""
        with self._lock:
            if self._status is not SiteMapStatus.PENDING:
                return False
            self._status = SiteMapStatus.IN_PROGRESS
            return True

    def mark_finished(self, status: SiteMapStatus) -> bool:
        """Move a live job to a terminal status. A job already terminal is left alone."""
        with self._lock:
            if self._status.is_terminal:
                return False
            self._status = status
            self.end_time = utc_now()
            return True

    def force_failed(self) -> None:
        """Mark the job FAILED from any status (cancellation)."""
        with self._lock:
            self._status = SiteMapStatus.FAILED
            self.end_time = utc_now()

    # --- Derived metrics ---

    @property
    def root_page(self) -> Optional[Page]:
        return self.pages.get(self.start_url)

    @property
    def total_pages(self) -> int:
        return len(self.pages)

    @property
    def successful_pages(self) -> int:
        return sum(1 for p in self.pages.snapshot() if p.is_success)

    @property
    def failed_pages(self) -> int:
        return sum(1 for p in self.pages.snapshot() if not p.is_success)

    def counts(self) -> Tuple[int, int, int]:
        """(total, successful, failed) taken from one snapshot."""
        pages = self.pages.snapshot()
        ok = sum(1 for p in pages if p.is_success)
        return len(pages), ok, len(pages) - ok

    @property
    def duration_seconds(self) -> int:
        end = self.end_time or utc_now()
        return int((end - self.start_time).total_seconds())

    # --- Views ---

    def pages_by_depth(self) -> Dict[int, List[Page]]:
        grouped: Dict[int, List[Page]] = defaultdict(list)
        for page in self.pages.snapshot():
            grouped[page.depth].append(page)
        return dict(grouped)

    def pages_by_domain(self) -> Dict[str, List[Page]]:
        grouped: Dict[str, List[Page]] = defaultdict(list)
        for page in self.pages.snapshot():
            grouped[page.domain].append(page)
        return dict(grouped)

    def child_pages(self, url: str) -> List[Page]:
        page = self.pages.get(url)
        if page is None:
            return []
        children = (self.pages.get(child) for child in page.child_urls)
        return [child for child in children if child is not None]

    def page_tree(self) -> List[PageTreeNode]:
        """The page tree rooted at the start URL (empty list before it is recorded)."""
        root = self.root_page
        if root is None:
            return []
        return [self._build_tree(root, frozenset())]

    def _build_tree(self, page: Page, path: FrozenSet[str]) -> PageTreeNode:
        # path holds the URLs on the way down to this page only, so a URL may
        # repeat under sibling branches but never below itself
        path = path | {page.url}
        children = []
        for child_url in page.child_urls:
            if child_url in path:
                continue
            child = self.pages.get(child_url)
            if child is not None:
                children.append(self._build_tree(child, path))
        return PageTreeNode(page, tuple(children))
