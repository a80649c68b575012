"""
robots.txt rules, cached per domain for the lifetime of the process.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Optional, Tuple
from urllib.parse import urlparse

from sitespider.fetch import Fetcher
from sitespider.urls import extract_domain

logger = logging.getLogger(__name__)

ROBOTS_TIMEOUT_S = 10.0


@dataclass(frozen=True, slots=True)
class RobotsRuleset:
    """Disallowed path prefixes for one domain. Empty means allow-all."""
    disallowed_paths: Tuple[str, ...] = ()

    @classmethod
    def empty(cls) -> "RobotsRuleset":
        return cls()

    @classmethod
    def parse(cls, content: str) -> "RobotsRuleset":
        """Collect every Disallow rule, regardless of the User-agent group it sits in."""
        paths = []
        for line in content.splitlines():
            line = line.strip()
            if line.lower().startswith("disallow:"):
                path = line.split(":", 1)[1].strip()
                if path:
                    paths.append(path)
        return cls(tuple(paths))

    def is_allowed(self, url: str) -> bool:
        """Check if URL path matches no disallow rule."""
        if not self.disallowed_paths:
            return True
        try:
            path = urlparse(url).path
        except ValueError:
            return True
        return not any(path.startswith(rule) for rule in self.disallowed_paths)


class RobotsCache:
    """
    Process-wide robots.txt cache shared by every crawl job.

    Rulesets are fetched lazily, at most once per domain, and never refreshed
    or evicted. A domain whose robots.txt cannot be fetched or parsed gets an
    empty (allow-all) ruleset.
    """

    def __init__(self, fetcher: Fetcher, timeout_s: Optional[float] = ROBOTS_TIMEOUT_S):
        self.fetcher = fetcher
        self.timeout_s = timeout_s
        self._rules: Dict[str, RobotsRuleset] = {}
        self._domain_locks: Dict[str, threading.Lock] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._rules)

    def is_allowed(self, url: str) -> bool:
        try:
            domain = extract_domain(url)
        except ValueError:
            return True
        return self.ruleset_for(domain).is_allowed(url)

    def ruleset_for(self, domain: str) -> RobotsRuleset:
        ruleset = self._rules.get(domain)
        if ruleset is not None:
            return ruleset

        with self._lock:
            domain_lock = self._domain_locks.setdefault(domain, threading.Lock())

        # Concurrent first requests for one domain wait here for a single fetch
        with domain_lock:
            ruleset = self._rules.get(domain)
            if ruleset is None:
                ruleset = self._fetch(domain)
                self._rules[domain] = ruleset
        return ruleset

    def _fetch(self, domain: str) -> RobotsRuleset:
        robots_url = f"https://{domain}/robots.txt"
        try:
            content = self.fetcher.fetch_text(robots_url, self.timeout_s)
            return RobotsRuleset.parse(content)
        except Exception as e:
            logger.warning("Error fetching robots.txt for domain %s: %s", domain, e)
            return RobotsRuleset.empty()
