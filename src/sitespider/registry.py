"""
Job registry: the entry point for submitting and querying crawl jobs.
"""
from __future__ import annotations

import logging
import random
import threading
import time
from typing import Dict, List, Optional, Tuple

from sitespider.engine import crawl_site
from sitespider.errors import ConfigValidationError
from sitespider.fetch import Fetcher, RequestsFetcher
from sitespider.models import SiteMap
from sitespider.policy import CrawlPolicy
from sitespider.robots import RobotsCache

logger = logging.getLogger(__name__)


def generate_job_id() -> str:
    """Return an opaque id such as ``sitemap-1718000000000-42``."""
    return f"sitemap-{int(time.time() * 1000)}-{random.randint(0, 9999)}"


class JobRegistry:
    """
    Owns every site map of the process and runs their crawls.

    All jobs share one fetcher and one robots.txt cache. Read and
    administrative calls never wait on a running crawl.
    """

    def __init__(self, fetcher: Optional[Fetcher] = None, robots: Optional[RobotsCache] = None):
        self.fetcher = fetcher if fetcher is not None else RequestsFetcher()
        self.robots = robots if robots is not None else RobotsCache(self.fetcher)
        self._jobs: Dict[str, SiteMap] = {}
        self._threads: Dict[str, threading.Thread] = {}
        self._lock = threading.Lock()

    def submit(self, policy: CrawlPolicy) -> str:
        """Validate policy, register a PENDING site map and start crawling it in the background."""
        errors = policy.validate()
        if errors:
            raise ConfigValidationError(errors)

        site_map = SiteMap(policy)
        with self._lock:
            job_id = generate_job_id()
            while job_id in self._jobs:
                job_id = generate_job_id()
            self._jobs[job_id] = site_map

            thread = threading.Thread(
                target=crawl_site,
                args=(site_map, self.fetcher, self.robots, job_id),
                name=f"crawl-{job_id}",
                daemon=True,
            )
            self._threads[job_id] = thread

        logger.info("Submitted job %s for %s", job_id, policy.start_url)
        thread.start()
        return job_id

    def get(self, job_id: str) -> Optional[SiteMap]:
        with self._lock:
            return self._jobs.get(job_id)

    def list(self) -> List[Tuple[str, SiteMap]]:
        with self._lock:
            return list(self._jobs.items())

    def cancel(self, job_id: str) -> bool:
        """
        Mark a job FAILED and stamp its end time.

        This is advisory only: running workers are not interrupted and keep
        adding pages until the frontier drains.
        """
        site_map = self.get(job_id)
        if site_map is None:
            return False
        site_map.force_failed()
        logger.info("Cancelled job %s", job_id)
        return True

    def remove(self, job_id: str) -> bool:
        """Forget a job. A crawl still running keeps writing to its own site map."""
        with self._lock:
            removed = self._jobs.pop(job_id, None)
            self._threads.pop(job_id, None)
        if removed is not None:
            logger.info("Removed job %s", job_id)
        return removed is not None

    def wait(self, job_id: str, timeout: Optional[float] = None) -> bool:
        """Block until the crawl of job_id has finished. Returns False on timeout or unknown id."""
        with self._lock:
            thread = self._threads.get(job_id)
        if thread is None:
            return False
        thread.join(timeout)
        return not thread.is_alive()
