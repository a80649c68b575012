"""
URL normalization and crawl eligibility.
"""
from __future__ import annotations

import logging
from urllib.parse import urlparse

from sitespider.policy import CrawlPolicy

logger = logging.getLogger(__name__)


def normalize_url(url: str) -> str:
    """
    Normalize an absolute link for deduplication.

    - Drops fragments (#...)
    - Drops a trailing slash, unless it is the one right after the host
      (i.e. the URL has no more than two slashes)

    Anything that goes wrong leaves the URL as it was.
    """
    try:
        result = url
        fragment_index = result.find("#")
        if fragment_index > 0:
            result = result[:fragment_index]

        if result.endswith("/") and result.count("/") > 2:
            result = result[:-1]

        return result
    except Exception:
        return url


def extract_domain(url: str) -> str:
    """Return the host part of an absolute URL, raising ValueError if there is none."""
    hostname = urlparse(url).hostname
    if not hostname:
        raise ValueError(f"No host in URL: {url!r}")
    return hostname


def is_eligible(url: str, parent_url: str, policy: CrawlPolicy) -> bool:
    """
    Decide whether a normalized link found on parent_url should be queued.

    The domain restriction compares against the page the link was found on,
    not against the start URL of the crawl.
    """
    try:
        if not url.startswith(("http://", "https://")):
            return False

        if policy.stay_on_domain and extract_domain(url) != extract_domain(parent_url):
            return False

        if policy.include_patterns and not any(p in url for p in policy.include_patterns):
            return False

        if any(p in url for p in policy.exclude_patterns):
            return False

        return True
    except Exception as e:
        logger.warning("Error checking URL %s: %s", url, e)
        return False
