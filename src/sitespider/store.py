"""
Thread-safe structures shared by the workers of one crawl job.
"""
from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Deque, Dict, Iterator, List, Optional, Set

if TYPE_CHECKING:
    from sitespider.models import Page


@dataclass(frozen=True, slots=True)
class FrontierItem:
    """A unit of work: a URL, the depth it was found at, and who linked to it."""
    url: str
    depth: int
    parent_url: Optional[str] = None


class Frontier:
    """
    FIFO of work items that also counts items currently being processed.

    ``take`` dequeues and bumps the in-flight count in one step and ``done``
    drops it again, so ``is_drained`` can never report an empty frontier while
    an item sits between dequeue and processing.
    """

    def __init__(self) -> None:
        self._items: Deque[FrontierItem] = deque()
        self._in_flight = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    @property
    def in_flight(self) -> int:
        with self._lock:
            return self._in_flight

    def put(self, item: FrontierItem) -> None:
        with self._lock:
            self._items.append(item)

    def take(self) -> Optional[FrontierItem]:
        """Pop the oldest item and mark it in flight, or return None if empty."""
        with self._lock:
            if not self._items:
                return None
            self._in_flight += 1
            return self._items.popleft()

    def done(self) -> None:
        """Mark one taken item as finished. Call only after its children are queued."""
        with self._lock:
            if self._in_flight <= 0:
                raise RuntimeError("done() called more times than take()")
            self._in_flight -= 1

    def is_drained(self) -> bool:
        """True when nothing is queued and nothing is in flight."""
        with self._lock:
            return not self._items and self._in_flight == 0


class DedupSet:
    """Set of URLs already claimed for crawling."""

    def __init__(self) -> None:
        self._urls: Set[str] = set()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._urls)

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._urls

    def claim(self, url: str) -> bool:
        """Add url and return True, or return False if someone already claimed it."""
        with self._lock:
            if url in self._urls:
                return False
            self._urls.add(url)
            return True


class PageStore:
    """
    Map of normalized URL to an immutable Page.

    Entries are only ever replaced whole, so readers always see a complete
    Page. ``put`` is last-writer-wins; ``update`` is an atomic
    read-modify-write for changes that depend on the current value.
    """

    def __init__(self) -> None:
        self._pages: Dict[str, "Page"] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._pages)

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._pages

    def __iter__(self) -> Iterator[str]:
        return iter(self.urls())

    def get(self, url: str) -> Optional["Page"]:
        with self._lock:
            return self._pages.get(url)

    def put(self, page: "Page") -> None:
        with self._lock:
            self._pages[page.url] = page

    def update(self, url: str, change: Callable[["Page"], "Page"]) -> Optional["Page"]:
        """Replace the page at url with change(page). No-op if url is absent."""
        with self._lock:
            current = self._pages.get(url)
            if current is None:
                return None
            updated = change(current)
            self._pages[url] = updated
            return updated

    def urls(self) -> List[str]:
        with self._lock:
            return list(self._pages)

    def snapshot(self) -> List["Page"]:
        """A consistent list of every page at this instant."""
        with self._lock:
            return list(self._pages.values())
