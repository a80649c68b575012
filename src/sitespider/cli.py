"""
Command-line interface for the spider.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from sitespider.errors import ConfigValidationError
from sitespider.export import build_sitemap_json, build_sitemap_text, build_sitemap_xml
from sitespider.fetch import DEFAULT_USER_AGENT, RequestsFetcher
from sitespider.models import SiteMap, SiteMapStatus
from sitespider.policy import (
    DEFAULT_CONNECTION_TIMEOUT_MS,
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_WORKERS,
    CrawlPolicy,
)
from sitespider.registry import JobRegistry

PROGRESS_INTERVAL_S = 0.5


def split_patterns(values: Optional[List[str]]) -> List[str]:
    """Flatten repeated and comma separated pattern flags."""
    patterns = []
    for value in values or []:
        patterns.extend(p.strip() for p in value.split(","))
    return [p for p in patterns if p]


def print_progress(site_map: SiteMap) -> None:
    """Print real-time progress to stderr."""
    total, ok, failed = site_map.counts()
    progress = (
        f"\r\033[K[{site_map.status.value}] Pages: {total} | OK: {ok} | "
        f"Failed: {failed} | {site_map.duration_seconds}s"
    )
    sys.stderr.write(progress)
    sys.stderr.flush()


def print_summary(site_map: SiteMap) -> None:
    """Print crawl summary to stderr."""
    total, ok, failed = site_map.counts()
    sys.stderr.write("=" * 50 + "\n")
    sys.stderr.write("CRAWL SUMMARY\n")
    sys.stderr.write("=" * 50 + "\n\n")

    sys.stderr.write(f"Status:                 {site_map.status.value}\n")
    sys.stderr.write(f"Total pages:            {total}\n")
    sys.stderr.write(f"Successful pages:       {ok}\n")
    sys.stderr.write(f"Failed pages:           {failed}\n")
    sys.stderr.write(f"Duration:               {site_map.duration_seconds}s\n\n")

    errors = [p for p in site_map.pages.snapshot() if not p.is_success]
    if errors:
        sys.stderr.write("Errors:\n")
        for page in sorted(errors, key=lambda p: p.url):
            sys.stderr.write(f"  {page.url}: {page.error_message or page.status_code or 'not fetched'}\n")
    else:
        sys.stderr.write("No errors encountered.\n")

    sys.stderr.write("\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Crawl a website from a start URL and print its site map."
    )
    parser.add_argument("start_url", help="Start URL (e.g. https://example.com)")
    parser.add_argument("--max-depth", type=int, default=DEFAULT_MAX_DEPTH,
                        help=f"Maximum link depth to crawl (default: {DEFAULT_MAX_DEPTH})")
    parser.add_argument("--include", action="append",
                        help="Only crawl URLs containing this substring (repeatable, comma separated)")
    parser.add_argument("--exclude", action="append",
                        help="Skip URLs containing this substring (repeatable, comma separated)")
    parser.add_argument("--any-domain", action="store_true",
                        help="Follow links to other domains")
    parser.add_argument("--workers", type=int, default=DEFAULT_MAX_WORKERS,
                        help=f"Number of concurrent workers (default: {DEFAULT_MAX_WORKERS})")
    parser.add_argument("--ignore-robots", action="store_true", help="Do not honour robots.txt")
    parser.add_argument("--timeout-ms", type=int, default=DEFAULT_CONNECTION_TIMEOUT_MS,
                        help=f"Connection timeout in milliseconds (default: {DEFAULT_CONNECTION_TIMEOUT_MS})")
    parser.add_argument("--user-agent", default=DEFAULT_USER_AGENT, help="User-Agent header")
    parser.add_argument("--format", choices=("text", "xml", "json"), default="text",
                        help="Output format (default: text)")
    parser.add_argument("--out", help="Output file path (default: stdout)")
    parser.add_argument("--verbose", action="store_true", help="Show progress, debug logs and summary")
    return parser


def policy_from_args(args: argparse.Namespace) -> CrawlPolicy:
    return CrawlPolicy(
        start_url=args.start_url,
        max_depth=args.max_depth,
        include_patterns=split_patterns(args.include),
        exclude_patterns=split_patterns(args.exclude),
        stay_on_domain=not args.any_domain,
        max_workers=args.workers,
        respect_robots=not args.ignore_robots,
        connection_timeout_ms=args.timeout_ms,
    )


def render(site_map: SiteMap, fmt: str, job_id: str) -> str:
    if fmt == "xml":
        return build_sitemap_xml(site_map)
    if fmt == "json":
        return json.dumps(build_sitemap_json(site_map, job_id), ensure_ascii=False, indent=2)
    return build_sitemap_text(site_map)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the spider CLI."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )

    registry = JobRegistry(fetcher=RequestsFetcher(user_agent=args.user_agent))
    try:
        job_id = registry.submit(policy_from_args(args))
    except ConfigValidationError as e:
        for message in e.messages:
            sys.stderr.write(f"error: {message}\n")
        return 2

    site_map = registry.get(job_id)
    while not registry.wait(job_id, timeout=PROGRESS_INTERVAL_S):
        if args.verbose:
            print_progress(site_map)

    if args.verbose:
        sys.stderr.write("\n\n")
        print_summary(site_map)

    output = render(site_map, args.format, job_id)
    if args.out:
        output_path = Path(args.out)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(output, encoding="utf-8")
        if args.verbose:
            sys.stderr.write(f"Site map written to: {output_path}\n")
    else:
        sys.stdout.write(output)
        if not output.endswith("\n"):
            sys.stdout.write("\n")

    return 1 if site_map.status is SiteMapStatus.FAILED else 0


if __name__ == "__main__":
    raise SystemExit(main())
