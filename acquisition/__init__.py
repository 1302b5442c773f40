"""
Acquisition module: obtaining raw pages for a site.

Strategies are tried in order by the AcquisitionStrategist:
- LocalCacheStrategy: pre-fetched snapshots (non-production only)
- LLMExtractionStrategy: sitemap discovery + LLM-guided page extraction
- RecursiveCrawlStrategy: full recursive crawl

Usage:
    from acquisition import build_default_strategist

    strategist = build_default_strategist()
    outcome = strategist.acquire("https://example.com/", "docs")
"""
from acquisition.base import (
    AcquisitionOutcome,
    AcquisitionRequest,
    AcquisitionSource,
    AcquisitionStatus,
    AcquisitionStrategy,
    Page,
)
from acquisition.extraction import ExtractionError, FirecrawlExtractor
from acquisition.llm_extraction import LLMExtractionStrategy
from acquisition.local_cache import LocalCacheStrategy
from acquisition.recursive_crawl import RecursiveCrawlStrategy
from acquisition.sitemap import SitemapDiscoverer
from acquisition.strategist import AcquisitionStrategist, build_default_strategist

__all__ = [
    "AcquisitionOutcome",
    "AcquisitionRequest",
    "AcquisitionSource",
    "AcquisitionStatus",
    "AcquisitionStrategy",
    "Page",
    "ExtractionError",
    "FirecrawlExtractor",
    "LLMExtractionStrategy",
    "LocalCacheStrategy",
    "RecursiveCrawlStrategy",
    "SitemapDiscoverer",
    "AcquisitionStrategist",
    "build_default_strategist",
]
