"""
Tests for the acquisition strategies and the fallback chain.

Run with: pytest tests/test_strategist.py -v
"""
import json

import httpx
from conftest import FakeExtractor

from acquisition.base import (
    AcquisitionOutcome,
    AcquisitionRequest,
    AcquisitionSource,
    AcquisitionStatus,
    AcquisitionStrategy,
    Page,
)
from acquisition.llm_extraction import LLMExtractionStrategy
from acquisition.local_cache import LocalCacheStrategy
from acquisition.recursive_crawl import RecursiveCrawlStrategy
from acquisition.sitemap import SitemapDiscoverer
from acquisition.strategist import AcquisitionStrategist


class StubStrategy(AcquisitionStrategy):
    """Returns a canned outcome (or raises) and records that it ran."""

    def __init__(self, source, outcome=None, error=None, enabled=True):
        self._source = source
        self.outcome = outcome
        self.error = error
        self.enabled = enabled
        self.calls = 0

    @property
    def source(self):
        return self._source

    def is_enabled(self):
        return self.enabled

    def acquire(self, request):
        self.calls += 1
        if self.error:
            raise self.error
        return self.outcome


class NoSitemap:
    def discover(self, seed_url):
        return None


class FixedSitemap:
    def __init__(self, urls):
        self.urls = urls

    def discover(self, seed_url):
        return list(self.urls)


REQUEST = AcquisitionRequest(url="https://example.com/", app_name="docs")


# ============== Strategist ==============

def test_first_success_wins_and_later_strategies_do_not_run():
    first = StubStrategy(
        AcquisitionSource.LOCAL_CACHE,
        AcquisitionOutcome.success(AcquisitionSource.LOCAL_CACHE, [Page("a", "cached")]),
    )
    second = StubStrategy(
        AcquisitionSource.RECURSIVE_CRAWL,
        AcquisitionOutcome.success(AcquisitionSource.RECURSIVE_CRAWL, [Page("b", "crawled")]),
    )

    outcome = AcquisitionStrategist([first, second]).acquire("https://example.com/", "docs")

    assert outcome.ok
    assert outcome.source == AcquisitionSource.LOCAL_CACHE
    assert [p.raw_content for p in outcome.pages] == ["cached"]
    assert second.calls == 0, "Page sets must never be merged across strategies"


def test_empty_and_error_fall_through_in_order():
    empty = StubStrategy(AcquisitionSource.LOCAL_CACHE, AcquisitionOutcome.empty())
    error = StubStrategy(
        AcquisitionSource.LLM_EXTRACTION,
        AcquisitionOutcome.failure(AcquisitionSource.LLM_EXTRACTION, "boom"),
    )
    last = StubStrategy(
        AcquisitionSource.RECURSIVE_CRAWL,
        AcquisitionOutcome.success(AcquisitionSource.RECURSIVE_CRAWL, [Page("c", "crawled")]),
    )

    outcome = AcquisitionStrategist([empty, error, last]).acquire("https://example.com/", "docs")

    assert outcome.source == AcquisitionSource.RECURSIVE_CRAWL
    assert (empty.calls, error.calls, last.calls) == (1, 1, 1)


def test_raised_exception_becomes_fallback():
    raising = StubStrategy(AcquisitionSource.LOCAL_CACHE, error=RuntimeError("disk gone"))
    last = StubStrategy(
        AcquisitionSource.RECURSIVE_CRAWL,
        AcquisitionOutcome.success(AcquisitionSource.RECURSIVE_CRAWL, [Page("c", "crawled")]),
    )

    outcome = AcquisitionStrategist([raising, last]).acquire("https://example.com/", "docs")
    assert outcome.ok
    assert outcome.source == AcquisitionSource.RECURSIVE_CRAWL


def test_exhausted_chain_reports_last_error():
    chain = [
        StubStrategy(
            AcquisitionSource.LLM_EXTRACTION,
            AcquisitionOutcome.failure(AcquisitionSource.LLM_EXTRACTION, "first"),
        ),
        StubStrategy(AcquisitionSource.RECURSIVE_CRAWL, error=RuntimeError("second")),
    ]
    outcome = AcquisitionStrategist(chain).acquire("https://example.com/", "docs")

    assert outcome.status == AcquisitionStatus.ERROR
    assert outcome.source == AcquisitionSource.RECURSIVE_CRAWL
    assert "second" in outcome.error


def test_exhausted_chain_without_errors_is_empty():
    chain = [StubStrategy(AcquisitionSource.LOCAL_CACHE, AcquisitionOutcome.empty())]
    outcome = AcquisitionStrategist(chain).acquire("https://example.com/", "docs")
    assert outcome.status == AcquisitionStatus.EMPTY


def test_disabled_strategy_is_skipped():
    disabled = StubStrategy(AcquisitionSource.LOCAL_CACHE, AcquisitionOutcome.empty(), enabled=False)
    chain = [
        disabled,
        StubStrategy(
            AcquisitionSource.RECURSIVE_CRAWL,
            AcquisitionOutcome.success(AcquisitionSource.RECURSIVE_CRAWL, [Page("c", "x")]),
        ),
    ]
    AcquisitionStrategist(chain).acquire("https://example.com/", "docs")
    assert disabled.calls == 0


# ============== Local cache ==============

def test_local_cache_reads_snapshots_in_sorted_order(tmp_path):
    app_dir = tmp_path / "docs"
    app_dir.mkdir()
    (app_dir / "b.md").write_text("---\nurl: https://example.com/b\n---\n# B\n\nBody B")
    (app_dir / "a.json").write_text(json.dumps([
        {"url": "https://example.com/a1", "markdown": "Body A1"},
        {"url": "https://example.com/a2", "markdown": "   "},
    ]))
    (app_dir / "c.txt").write_text("Plain text page")
    (app_dir / "ignored.pdf").write_bytes(b"%PDF")

    outcome = LocalCacheStrategy(cache_dir=tmp_path, production=False).acquire(REQUEST)

    assert outcome.ok
    assert [p.source_url for p in outcome.pages] == [
        "https://example.com/a1",
        "https://example.com/b",
        (app_dir / "c.txt").resolve().as_uri(),
    ]


def test_local_cache_missing_directory_is_empty(tmp_path):
    outcome = LocalCacheStrategy(cache_dir=tmp_path, production=False).acquire(REQUEST)
    assert outcome.status == AcquisitionStatus.EMPTY


def test_local_cache_disabled_in_production(tmp_path):
    assert not LocalCacheStrategy(cache_dir=tmp_path, production=True).is_enabled()
    assert LocalCacheStrategy(cache_dir=tmp_path, production=False).is_enabled()


def test_local_cache_stays_inside_cache_dir(tmp_path):
    strategy = LocalCacheStrategy(cache_dir=tmp_path, production=False)
    assert strategy.app_directory("../../etc") == tmp_path / "etc"


# ============== LLM-guided extraction ==============

def test_llm_extraction_uses_sitemap_urls():
    extractor = FakeExtractor(single={
        "https://example.com/a": "# A",
        "https://example.com/b": "",
    })
    strategy = LLMExtractionStrategy(
        extractor,
        discoverer=FixedSitemap(["https://example.com/a", "https://example.com/b"]),
        enabled=True,
    )

    outcome = strategy.acquire(REQUEST)

    assert outcome.ok
    assert extractor.single_calls == ["https://example.com/a", "https://example.com/b"]
    assert [p.source_url for p in outcome.pages] == ["https://example.com/a"]


def test_llm_extraction_falls_back_to_seed_url():
    extractor = FakeExtractor(single={"https://example.com/": "# Home"})
    strategy = LLMExtractionStrategy(extractor, discoverer=NoSitemap(), enabled=True)

    outcome = strategy.acquire(REQUEST)

    assert extractor.single_calls == ["https://example.com/"]
    assert outcome.pages == [Page("https://example.com/", "# Home")]


def test_llm_extraction_continues_past_failed_urls():
    extractor = FakeExtractor(single={
        "https://example.com/a": None,
        "https://example.com/b": "# B",
    })
    strategy = LLMExtractionStrategy(
        extractor,
        discoverer=FixedSitemap(["https://example.com/a", "https://example.com/b"]),
        enabled=True,
    )

    outcome = strategy.acquire(REQUEST)
    assert outcome.ok
    assert [p.source_url for p in outcome.pages] == ["https://example.com/b"]


def test_llm_extraction_survives_malformed_sitemap_entry():
    sitemap = (
        "<urlset><url><loc>https://example.com/a</loc></url>"
        "<url><loc>http://[::1/broken</loc></url></urlset>"
    )

    def handler(request: httpx.Request) -> httpx.Response:
        if str(request.url) == "https://example.com/sitemap.xml":
            return httpx.Response(200, headers={"content-type": "application/xml"}, text=sitemap)
        return httpx.Response(404)

    discoverer = SitemapDiscoverer(client=httpx.Client(transport=httpx.MockTransport(handler)))
    extractor = FakeExtractor(single={"https://example.com/a": "# A"})
    strategy = LLMExtractionStrategy(extractor, discoverer=discoverer, enabled=True)

    outcome = strategy.acquire(REQUEST)

    assert outcome.ok
    assert extractor.single_calls == ["https://example.com/a"]


def test_llm_extraction_all_failed_is_error():
    extractor = FakeExtractor(single={"https://example.com/": None})
    strategy = LLMExtractionStrategy(extractor, discoverer=NoSitemap(), enabled=True)
    assert strategy.acquire(REQUEST).status == AcquisitionStatus.ERROR


def test_llm_extraction_disabled_by_default():
    """LLM_EXTRACTION_ENABLED defaults to false."""
    assert not LLMExtractionStrategy(FakeExtractor(), discoverer=NoSitemap()).is_enabled()


# ============== Recursive crawl ==============

def test_recursive_crawl_passes_limits():
    extractor = FakeExtractor(crawl_pages=[Page("https://example.com/", "# Home")])
    outcome = RecursiveCrawlStrategy(extractor, max_pages=100, max_depth=3).acquire(REQUEST)

    assert outcome.ok
    assert extractor.crawl_calls == [("https://example.com/", 100, 3)]


def test_recursive_crawl_without_pages_is_error():
    outcome = RecursiveCrawlStrategy(FakeExtractor()).acquire(REQUEST)
    assert outcome.status == AcquisitionStatus.ERROR
    assert outcome.error == "Failed to crawl the URL or no markdown content was returned."
