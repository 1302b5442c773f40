"""
LLM-guided extraction strategy.

Runs sitemap discovery on the seed URL and extracts every discovered page
(capped at the discovery limit). Without a sitemap it extracts the seed
URL alone. A failing URL is logged and skipped; the batch continues.
"""
from acquisition.base import (
    AcquisitionOutcome,
    AcquisitionRequest,
    AcquisitionSource,
    AcquisitionStrategy,
    Page,
)
from acquisition.extraction import ExtractionError, FirecrawlExtractor
from acquisition.sitemap import SitemapDiscoverer
from sitekb.config import settings
from sitekb.logging_config import get_logger

logger = get_logger(__name__)


class LLMExtractionStrategy(AcquisitionStrategy):
    def __init__(
        self,
        extractor: FirecrawlExtractor,
        discoverer: SitemapDiscoverer | None = None,
        enabled: bool | None = None,
        prompt: str | None = None,
        max_urls: int | None = None,
    ):
        self.extractor = extractor
        self.discoverer = discoverer or SitemapDiscoverer()
        self.enabled = settings.llm_extraction_enabled if enabled is None else enabled
        self.prompt = prompt or settings.llm_extraction_prompt
        self.max_urls = max_urls or settings.sitemap_max_urls

    @property
    def source(self) -> AcquisitionSource:
        return AcquisitionSource.LLM_EXTRACTION

    def is_enabled(self) -> bool:
        return self.enabled

    def acquire(self, request: AcquisitionRequest) -> AcquisitionOutcome:
        urls = self.discoverer.discover(request.url)
        if urls:
            urls = urls[: self.max_urls]
            logger.info(f"llm_extraction.sitemap urls={len(urls)}")
        else:
            logger.info(f"llm_extraction.single url={request.url}")
            urls = [request.url]

        pages: list[Page] = []
        failures = 0
        for url in urls:
            try:
                markdown = self.extractor.extract_single(url, self.prompt)
            except ExtractionError as e:
                failures += 1
                logger.warning(f"llm_extraction.url_failed url={url} err={e}")
                continue

            if markdown and markdown.strip():
                pages.append(Page(source_url=url, raw_content=markdown))

        logger.info(
            f"llm_extraction.done urls={len(urls)} pages={len(pages)} failed={failures}"
        )
        if not pages:
            if failures:
                return AcquisitionOutcome.failure(
                    self.source, f"All {failures} extraction requests failed"
                )
            return AcquisitionOutcome.empty(self.source)
        return AcquisitionOutcome.success(self.source, pages)
