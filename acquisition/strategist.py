"""
Acquisition strategist.

Tries acquisition strategies in a fixed priority order and returns the
page set of the first one that succeeds. Exactly one strategy supplies the
pages of a run; page sets are never merged across strategies.
"""
from acquisition.base import (
    AcquisitionOutcome,
    AcquisitionRequest,
    AcquisitionStatus,
    AcquisitionStrategy,
)
from acquisition.extraction import FirecrawlExtractor
from acquisition.llm_extraction import LLMExtractionStrategy
from acquisition.local_cache import LocalCacheStrategy
from acquisition.recursive_crawl import RecursiveCrawlStrategy
from sitekb.logging_config import get_logger

logger = get_logger(__name__)


class AcquisitionStrategist:
    """Run a fallback chain of acquisition strategies."""

    def __init__(self, strategies: list[AcquisitionStrategy]):
        self.strategies = strategies

    def acquire(self, url: str, app_name: str) -> AcquisitionOutcome:
        """
        Acquire pages for one ingestion request.

        Each strategy is fail-soft into the next: EMPTY, ERROR and raised
        exceptions all move on. When the chain is exhausted the last error
        is reported (or EMPTY if no strategy errored).
        """
        request = AcquisitionRequest(url=url, app_name=app_name)
        last_error: AcquisitionOutcome | None = None

        for strategy in self.strategies:
            if not strategy.is_enabled():
                logger.debug(f"acquire.skip strategy={strategy.name} reason=disabled")
                continue

            logger.info(f"acquire.try strategy={strategy.name} url={url}")
            try:
                outcome = strategy.acquire(request)
            except Exception as e:
                logger.warning(
                    f"acquire.error strategy={strategy.name} err={type(e).__name__}: {e}"
                )
                outcome = AcquisitionOutcome.failure(strategy.source, f"{type(e).__name__}: {e}")

            if outcome.status == AcquisitionStatus.SUCCESS and outcome.pages:
                logger.info(
                    f"acquire.ok strategy={strategy.name} pages={len(outcome.pages)}"
                )
                return outcome

            if outcome.status == AcquisitionStatus.ERROR:
                last_error = outcome
                logger.info(f"acquire.fallback strategy={strategy.name} error={outcome.error}")
            else:
                logger.info(f"acquire.fallback strategy={strategy.name} reason=empty")

        if last_error is not None:
            return last_error
        return AcquisitionOutcome.empty()


def build_default_strategist(extractor: FirecrawlExtractor | None = None) -> AcquisitionStrategist:
    """Local cache -> LLM-guided extraction -> recursive crawl."""
    extractor = extractor or FirecrawlExtractor()
    return AcquisitionStrategist(
        [
            LocalCacheStrategy(),
            LLMExtractionStrategy(extractor),
            RecursiveCrawlStrategy(extractor),
        ]
    )
