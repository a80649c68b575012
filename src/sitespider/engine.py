"""
The crawl engine: a pool of workers draining a shared frontier.

Workers need no coordinator to decide when the crawl is over. A worker that
finds the frontier drained (nothing queued, nothing in flight) sets the
shared completion flag; every worker exits once it sees the flag.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

from sitespider.errors import HttpStatusError
from sitespider.fetch import Fetcher
from sitespider.models import Page, SiteMap, SiteMapStatus
from sitespider.robots import RobotsCache
from sitespider.store import DedupSet, Frontier, FrontierItem
from sitespider.urls import is_eligible, normalize_url

logger = logging.getLogger(__name__)

# How long an idle worker waits before polling the frontier again
IDLE_BACKOFF_S = 0.1

ROBOTS_BLOCKED = "Blocked by robots.txt"


@dataclass
class CrawlContext:
    """State shared by all workers of one job."""
    site_map: SiteMap
    fetcher: Fetcher
    robots: Optional[RobotsCache]
    frontier: Frontier
    claimed: DedupSet
    finished: threading.Event


def robots_allow(robots: Optional[RobotsCache], url: str) -> bool:
    """Ask the robots cache about url; any failure allows the URL."""
    if robots is None:
        return True
    try:
        return robots.is_allowed(url)
    except Exception as e:
        logger.warning("Error checking robots.txt for URL %s: %s", url, e)
        return True


def process_item(item: FrontierItem, ctx: CrawlContext) -> None:
    """
    Crawl one frontier item and queue its eligible links.

    Every failure is recorded on the item's page; nothing is raised.
    """
    url, depth, parent_url = item.url, item.depth, item.parent_url
    policy = ctx.site_map.policy
    pages = ctx.site_map.pages

    # Exactly one worker ever gets past this point for a given URL
    if not ctx.claimed.claim(url):
        return

    logger.debug("Crawling URL: %s (depth: %d)", url, depth)

    pages.put(Page(url=url, depth=depth, parent_url=parent_url))
    if parent_url is not None:
        pages.update(parent_url, lambda parent: parent.with_child(url))

    # Recorded, but never fetched or expanded
    if depth >= policy.max_depth:
        return

    try:
        if policy.respect_robots and not robots_allow(ctx.robots, url):
            pages.update(url, lambda page: page.replace(error_message=ROBOTS_BLOCKED))
            return

        fetched = ctx.fetcher.fetch_page(url, policy.timeout_s)
        pages.update(url, lambda page: page.replace(
            title=fetched.title,
            status_code=fetched.status_code,
            content_type=fetched.content_type,
        ))

        links = []
        for link in fetched.links:
            link = normalize_url(link)
            if link not in links and is_eligible(link, url, policy):
                links.append(link)

        for link in links:
            ctx.frontier.put(FrontierItem(link, depth + 1, url))

    except HttpStatusError as e:
        logger.warning("HTTP error for URL %s: %s %s", url, e.status_code, e.reason)
        pages.update(url, lambda page: page.replace(
            status_code=e.status_code,
            error_message=f"HTTP error: {e.status_code} {e.reason}".rstrip(),
        ))
    except Exception as e:
        logger.warning("Error crawling URL %s: %s", url, e)
        pages.update(url, lambda page: page.replace(error_message=f"Error: {e}"))


def run_worker(ctx: CrawlContext) -> None:
    """Drain the frontier until the crawl is finished."""
    while not ctx.finished.is_set():
        item = ctx.frontier.take()
        if item is not None:
            try:
                process_item(item, ctx)
            finally:
                # Children of item are already queued at this point
                ctx.frontier.done()
        elif ctx.frontier.is_drained():
            ctx.finished.set()
        else:
            # Another worker may still queue links; waking early if the flag is set
            ctx.finished.wait(IDLE_BACKOFF_S)


def crawl_site(
    site_map: SiteMap,
    fetcher: Fetcher,
    robots: Optional[RobotsCache] = None,
    job_id: str = "",
) -> SiteMap:
    """
    Run a whole crawl for site_map and block until it is finished.

    Args:
        site_map: A PENDING site map; its policy drives the crawl.
        fetcher: Page and robots.txt fetcher.
        robots: Shared robots.txt cache, consulted when the policy asks for it.
        job_id: Used for logging only.

    Returns:
        The same site map, now COMPLETED (or FAILED if the job was cancelled
        or something unexpected escaped the workers).
    """
    policy = site_map.policy
    ctx = CrawlContext(
        site_map=site_map,
        fetcher=fetcher,
        robots=robots,
        frontier=Frontier(),
        claimed=DedupSet(),
        finished=threading.Event(),
    )

    try:
        ctx.frontier.put(FrontierItem(policy.start_url, 0, None))
        site_map.mark_started()
        logger.info("Starting crawl %s from %s with %d workers", job_id, policy.start_url, policy.max_workers)

        with ThreadPoolExecutor(max_workers=policy.max_workers, thread_name_prefix=f"spider-{job_id}") as pool:
            workers = [pool.submit(run_worker, ctx) for _ in range(policy.max_workers)]
            try:
                for worker in workers:
                    worker.result()
            except Exception:
                # Release the surviving workers before the pool waits on them
                ctx.finished.set()
                raise

        site_map.mark_finished(SiteMapStatus.COMPLETED)
        logger.info("Crawling completed for site map %s: %d pages crawled", job_id, site_map.total_pages)
    except Exception:
        logger.exception("Error crawling site %s", policy.start_url)
        site_map.mark_finished(SiteMapStatus.FAILED)

    return site_map
