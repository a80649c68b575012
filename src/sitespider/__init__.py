"""
Concurrent website spider that crawls from a start URL up to a depth limit
and assembles a queryable site map of pages, links and crawl outcomes.
"""
from sitespider.errors import ConfigValidationError, FetchError, HttpStatusError
from sitespider.models import Page, PageTreeNode, SiteMap, SiteMapStatus
from sitespider.policy import CrawlPolicy
from sitespider.registry import JobRegistry

__version__ = "1.0.0"
__all__ = [
    "ConfigValidationError",
    "CrawlPolicy",
    "FetchError",
    "HttpStatusError",
    "JobRegistry",
    "Page",
    "PageTreeNode",
    "SiteMap",
    "SiteMapStatus",
]
