"""
Crawl policy: the validated configuration of a single crawl job.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

DEFAULT_MAX_DEPTH = 3
DEFAULT_MAX_WORKERS = 4
DEFAULT_CONNECTION_TIMEOUT_MS = 5000
MIN_CONNECTION_TIMEOUT_MS = 1000


@dataclass(frozen=True, slots=True)
class CrawlPolicy:
    """Immutable crawl configuration.

    Include/exclude patterns are plain substrings matched in order; an empty
    include list means every URL matches.
    """
    start_url: str
    max_depth: int = DEFAULT_MAX_DEPTH
    include_patterns: Tuple[str, ...] = ()
    exclude_patterns: Tuple[str, ...] = ()
    stay_on_domain: bool = True
    max_workers: int = DEFAULT_MAX_WORKERS
    respect_robots: bool = True
    connection_timeout_ms: int = DEFAULT_CONNECTION_TIMEOUT_MS

    def __post_init__(self) -> None:
        # Accept lists from callers but store tuples so the policy stays hashable
        object.__setattr__(self, "include_patterns", tuple(self.include_patterns))
        object.__setattr__(self, "exclude_patterns", tuple(self.exclude_patterns))

    @property
    def timeout_s(self) -> float:
        return self.connection_timeout_ms / 1000.0

    def validate(self) -> List[str]:
        """Return a human-readable message for every violated rule (empty if valid)."""
        errors: List[str] = []

        if not self.start_url or not self.start_url.strip():
            errors.append("Start URL cannot be empty")
        elif not self.start_url.startswith(("http://", "https://")):
            errors.append("Start URL must start with http:// or https://")

        if self.max_depth < 1:
            errors.append("Maximum depth must be at least 1")

        if self.max_workers < 1:
            errors.append("Maximum workers must be at least 1")

        if self.connection_timeout_ms < MIN_CONNECTION_TIMEOUT_MS:
            errors.append(f"Connection timeout must be at least {MIN_CONNECTION_TIMEOUT_MS} ms")

        return errors
