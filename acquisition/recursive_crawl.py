"""
Recursive crawl strategy: full-site breadth crawl with fixed page and depth limits.
"""
from acquisition.base import (
    AcquisitionOutcome,
    AcquisitionRequest,
    AcquisitionSource,
    AcquisitionStrategy,
)
from acquisition.extraction import FirecrawlExtractor
from sitekb.config import settings
from sitekb.logging_config import get_logger

logger = get_logger(__name__)


class RecursiveCrawlStrategy(AcquisitionStrategy):
    def __init__(
        self,
        extractor: FirecrawlExtractor,
        max_pages: int | None = None,
        max_depth: int | None = None,
    ):
        self.extractor = extractor
        self.max_pages = max_pages or settings.crawl_max_pages
        self.max_depth = max_depth or settings.crawl_max_depth

    @property
    def source(self) -> AcquisitionSource:
        return AcquisitionSource.RECURSIVE_CRAWL

    def acquire(self, request: AcquisitionRequest) -> AcquisitionOutcome:
        logger.info(
            f"crawl.start url={request.url} limit={self.max_pages} depth={self.max_depth}"
        )
        # ExtractionError propagates; the strategist records it as an ERROR outcome
        pages = self.extractor.crawl_recursive(request.url, self.max_pages, self.max_depth)
        if not pages:
            return AcquisitionOutcome.failure(
                self.source,
                "Failed to crawl the URL or no markdown content was returned.",
            )
        return AcquisitionOutcome.success(self.source, pages)
