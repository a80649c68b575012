"""
Renderings of a site map: sitemaps.org XML, plain text, and JSON-ready dicts.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional
from xml.sax.saxutils import escape

from sitespider.models import Page, PageTreeNode, SiteMap

XML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>\n'
URLSET_OPEN = '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">\n'


def build_sitemap_xml(site_map: SiteMap) -> str:
    """Sitemap XML listing every successfully crawled page."""
    parts = [XML_HEADER, URLSET_OPEN]
    for page in site_map.pages.snapshot():
        if page.is_success:
            parts.append("  <url>\n")
            parts.append(f"    <loc>{escape(page.url)}</loc>\n")
            parts.append("  </url>\n")
    parts.append("</urlset>")
    return "".join(parts)


def build_sitemap_text(site_map: SiteMap) -> str:
    """Human-readable listing of every page, grouped by depth."""
    total, ok, failed = site_map.counts()
    generated = site_map.end_time.isoformat() if site_map.end_time else "in progress"

    lines = [
        f"Sitemap for {site_map.start_url}",
        f"Generated on {generated}",
        f"Total pages: {total}",
        f"Successful pages: {ok}",
        f"Failed pages: {failed}",
        "",
    ]

    pages_by_depth = site_map.pages_by_depth()
    for depth in sorted(pages_by_depth):
        pages = pages_by_depth[depth]
        lines.append(f"Depth {depth} ({len(pages)} pages):")
        for page in sorted(pages, key=lambda p: p.url):
            status = "OK" if page.is_success else f"ERROR: {page.error_message}"
            lines.append(f"  {page.url} - {status}")
        lines.append("")

    return "\n".join(lines) + "\n"


def status_dict(site_map: SiteMap) -> Dict[str, Any]:
    """Job status and metrics, as polled by progress displays."""
    total, ok, failed = site_map.counts()
    return {
        "status": site_map.status.value,
        "totalPages": total,
        "successfulPages": ok,
        "failedPages": failed,
        "durationSeconds": site_map.duration_seconds,
    }


def page_dict(page: Page) -> Dict[str, Any]:
    return {
        "url": page.url,
        "title": page.title,
        "depth": page.depth,
        "parentUrl": page.parent_url,
        "childUrls": list(page.child_urls),
        "statusCode": page.status_code,
        "contentType": page.content_type,
        "errorMessage": page.error_message,
        "crawlTime": page.crawl_time.isoformat(),
        "success": page.is_success,
    }


def _node_dict(node: PageTreeNode) -> Dict[str, Any]:
    return {"page": page_dict(node.page), "children": [_node_dict(c) for c in node.children]}


def tree_dict(site_map: SiteMap) -> List[Dict[str, Any]]:
    """The page tree as nested dicts (empty list before the root page exists)."""
    return [_node_dict(node) for node in site_map.page_tree()]


def build_sitemap_json(site_map: SiteMap, job_id: Optional[str] = None) -> Dict[str, Any]:
    """Status, metrics and page tree in one document."""
    payload = status_dict(site_map)
    if job_id is not None:
        payload["id"] = job_id
    payload["startUrl"] = site_map.start_url
    payload["startTime"] = site_map.start_time.isoformat()
    payload["endTime"] = site_map.end_time.isoformat() if site_map.end_time else None
    payload["tree"] = tree_dict(site_map)
    return payload
