"""
Tests for pages, site map status and the derived views.
"""
import pytest

from sitespider.models import Page, SiteMap, SiteMapStatus
from sitespider.policy import CrawlPolicy

START = "http://a.test/"


@pytest.fixture
def site_map():
    return SiteMap(CrawlPolicy(start_url=START))


def add(site_map, url, depth=0, children=(), status_code=200, error=None, parent=None):
    site_map.pages.put(Page(
        url=url,
        depth=depth,
        parent_url=parent,
        child_urls=tuple(children),
        status_code=status_code,
        error_message=error,
    ))


class TestPage:
    """Test cases for Page."""

    @pytest.mark.parametrize("status_code,error,expected", [
        (200, None, True),
        (299, None, True),
        (301, None, False),
        (404, "HTTP error: 404 Not Found", False),
        (200, "Blocked by robots.txt", False),
        (None, None, False),
    ])
    def test_is_success(self, status_code, error, expected):
        page = Page(url=START, status_code=status_code, error_message=error)
        assert page.is_success is expected

    def test_domain(self):
        assert Page(url="https://docs.a.test:8443/x").domain == "docs.a.test:8443"

    def test_replace_is_copy_on_write(self):
        page = Page(url=START, depth=2, parent_url="http://a.test/p")
        updated = page.replace(title="Home", status_code=200)

        assert page.title is None
        assert updated.title == "Home"
        assert updated.depth == 2
        assert updated.parent_url == "http://a.test/p"
        assert updated.crawl_time >= page.crawl_time

    def test_with_child_keeps_order_and_dedups(self):
        page = Page(url=START).with_child("http://a.test/b").with_child("http://a.test/c")
        assert page.with_child("http://a.test/b") is page
        assert page.child_urls == ("http://a.test/b", "http://a.test/c")


class TestStatus:
    """Test cases for SiteMap status transitions."""

    def test_lifecycle(self, site_map):
        assert site_map.status is SiteMapStatus.PENDING
        assert site_map.end_time is None

        assert site_map.mark_started()
        assert site_map.status is SiteMapStatus.IN_PROGRESS

        assert site_map.mark_finished(SiteMapStatus.COMPLETED)
        assert site_map.status is SiteMapStatus.COMPLETED
        assert site_map.end_time is not None

    def test_force_failed_from_any_status(self, site_map):
        site_map.force_failed()
        assert site_map.status is SiteMapStatus.FAILED
        assert site_map.end_time is not None
        assert not site_map.mark_started()

    def test_terminal_status_is_not_overwritten(self, site_map):
        site_map.mark_started()
        site_map.force_failed()
        assert not site_map.mark_finished(SiteMapStatus.COMPLETED)
        assert site_map.status is SiteMapStatus.FAILED


class TestMetricsAndViews:
    """Test cases for derived metrics and grouped views."""

    def test_counts(self, site_map):
        add(site_map, START, children=["http://a.test/b", "http://a.test/c"])
        add(site_map, "http://a.test/b", depth=1, status_code=404, error="HTTP error: 404")
        add(site_map, "http://a.test/c", depth=1, status_code=None)

        assert site_map.total_pages == 3
        assert site_map.successful_pages == 1
        assert site_map.failed_pages == 2
        assert site_map.counts() == (3, 1, 2)
        assert site_map.total_pages == site_map.successful_pages + site_map.failed_pages

    def test_duration_runs_until_end_time(self, site_map):
        assert site_map.duration_seconds >= 0
        site_map.end_time = site_map.start_time
        assert site_map.duration_seconds == 0

    def test_pages_by_depth_and_domain(self, site_map):
        add(site_map, START)
        add(site_map, "http://a.test/b", depth=1)
        add(site_map, "http://other.test/c", depth=1)

        by_depth = site_map.pages_by_depth()
        assert sorted(by_depth) == [0, 1]
        assert sorted(p.url for p in by_depth[1]) == ["http://a.test/b", "http://other.test/c"]

        by_domain = site_map.pages_by_domain()
        assert len(by_domain["a.test"]) == 2
        assert [p.url for p in by_domain["other.test"]] == ["http://other.test/c"]

    def test_child_pages_skips_missing(self, site_map):
        add(site_map, START, children=["http://a.test/b", "http://a.test/missing"])
        add(site_map, "http://a.test/b", depth=1)

        assert [p.url for p in site_map.child_pages(START)] == ["http://a.test/b"]
        assert site_map.child_pages("http://a.test/nope") == []


class TestPageTree:
    """Test cases for page tree building."""

    def test_no_root_gives_empty_tree(self, site_map):
        assert site_map.page_tree() == []

    def test_tree_shape(self, site_map):
        add(site_map, START, children=["http://a.test/b", "http://a.test/c"])
        add(site_map, "http://a.test/b", depth=1, children=["http://a.test/d"])
        add(site_map, "http://a.test/c", depth=1)
        add(site_map, "http://a.test/d", depth=2)

        [root] = site_map.page_tree()
        assert root.page.url == START
        assert [c.page.url for c in root.children] == ["http://a.test/b", "http://a.test/c"]
        assert [c.page.url for c in root.children[0].children] == ["http://a.test/d"]
        assert root.children[1].children == ()

    def test_cycles_terminate(self, site_map):
        add(site_map, START, children=["http://a.test/b"])
        add(site_map, "http://a.test/b", depth=1, children=[START, "http://a.test/c"])
        add(site_map, "http://a.test/c", depth=2, children=["http://a.test/b", START])

        [root] = site_map.page_tree()
        b = root.children[0]
        assert b.page.url == "http://a.test/b"
        assert [c.page.url for c in b.children] == ["http://a.test/c"]
        assert b.children[0].children == ()

    def test_same_url_may_repeat_under_siblings(self, site_map):
        shared = "http://a.test/shared"
        add(site_map, START, children=["http://a.test/b", "http://a.test/c"])
        add(site_map, "http://a.test/b", depth=1, children=[shared])
        add(site_map, "http://a.test/c", depth=1, children=[shared])
        add(site_map, shared, depth=2)

        [root] = site_map.page_tree()
        assert [n.children[0].page.url for n in root.children] == [shared, shared]
