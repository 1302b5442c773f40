"""
Content extraction service client (Firecrawl).

Two modes:
- extract_single: LLM-guided extraction of one page, returns markdown or ""
- crawl_recursive: full breadth crawl from a seed URL, returns pages

All calls carry a timeout. SDK and transport failures surface as
ExtractionError so callers can fall back without knowing the SDK.
"""
from firecrawl import Firecrawl
from firecrawl.v2.types import ScrapeOptions

from acquisition.base import Page
from sitekb.config import settings
from sitekb.logging_config import get_logger

logger = get_logger(__name__)

# JSON extraction schema for LLM-guided scrapes
_EXTRACT_SCHEMA = {
    "type": "object",
    "properties": {
        "markdown": {
            "type": "string",
            "description": "The main content of the page as markdown",
        },
    },
    "required": ["markdown"],
}


class ExtractionError(RuntimeError):
    """Raised when the extraction service fails or times out."""


def _metadata_dict(doc) -> dict:
    metadata = getattr(doc, "metadata", None) or {}
    if isinstance(metadata, dict):
        return metadata
    if hasattr(metadata, "model_dump"):
        return metadata.model_dump()
    return dict(vars(metadata))


def _source_url(doc) -> str | None:
    metadata = _metadata_dict(doc)
    return (
        metadata.get("source_url")
        or metadata.get("sourceURL")
        or metadata.get("sourceUrl")
        or metadata.get("url")
    )


class FirecrawlExtractor:
    """Firecrawl-backed content extraction."""

    def __init__(self, client: Firecrawl | None = None):
        if client is None:
            kwargs = {"api_key": settings.firecrawl_api_key}
            if settings.firecrawl_api_url:
                kwargs["api_url"] = settings.firecrawl_api_url
            client = Firecrawl(**kwargs)
        self.client = client

    def extract_single(self, url: str, prompt: str) -> str:
        """
        LLM-guided extraction of a single page.

        Args:
            url: Page URL.
            prompt: Guidance prompt for the extraction model.

        Returns:
            Extracted markdown, or "" when the page yielded nothing.

        Raises:
            ExtractionError: The service failed or timed out.
        """
        try:
            doc = self.client.scrape(
                url,
                formats=[
                    "markdown",
                    {"type": "json", "prompt": prompt, "schema": _EXTRACT_SCHEMA},
                ],
                only_main_content=True,
                timeout=int(settings.extraction_timeout_seconds * 1000),
            )
        except Exception as e:
            raise ExtractionError(f"Extraction of {url} failed: {type(e).__name__}: {e}") from e

        if doc is None:
            return ""

        extracted = getattr(doc, "json", None)
        if isinstance(extracted, dict):
            markdown = extracted.get("markdown")
            if isinstance(markdown, str) and markdown.strip():
                return markdown

        return getattr(doc, "markdown", None) or ""

    def crawl_recursive(self, seed_url: str, max_pages: int, max_depth: int) -> list[Page]:
        """
        Crawl a site breadth-first from seed_url.

        Pages without markdown or without a source URL are dropped.

        Raises:
            ExtractionError: The crawl failed, was cancelled or timed out.
        """
        try:
            job = self.client.crawl(
                seed_url,
                limit=max_pages,
                max_discovery_depth=max_depth,
                scrape_options=ScrapeOptions(formats=["markdown"]),
                timeout=settings.crawl_timeout_seconds,
            )
        except Exception as e:
            raise ExtractionError(f"Crawl of {seed_url} failed: {type(e).__name__}: {e}") from e

        status = getattr(job, "status", None)
        if status in {"failed", "cancelled"}:
            raise ExtractionError(f"Crawl of {seed_url} ended with status '{status}'")

        pages = []
        for doc in getattr(job, "data", None) or []:
            markdown = getattr(doc, "markdown", None)
            source_url = _source_url(doc)
            if markdown and source_url:
                pages.append(Page(source_url=source_url, raw_content=markdown))

        logger.info(f"crawl.done url={seed_url} status={status} pages={len(pages)}")
        return pages
