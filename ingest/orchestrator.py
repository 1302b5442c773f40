"""
Ingestion orchestrator.

Runs one ingestion request end to end:

    DISCOVERING -> ACQUIRING -> PROCESSING (page i of N) -> AGGREGATING -> DONE

Discovery happens inside the acquisition strategies (sitemap lookup is part
of LLM-guided extraction), so the orchestrator hands the seed URL to the
strategist and then folds every acquired page through
normalize -> dedup -> chunk -> embed/index.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from acquisition.base import AcquisitionSource, AcquisitionStatus
from acquisition.strategist import AcquisitionStrategist, build_default_strategist
from ingest.chunking import chunk_text
from ingest.dedup import DedupTracker
from ingest.embedder import Embedder
from ingest.normalizer import normalize_page
from ingest.pipeline import IndexingPipeline, IndexOutcome
from sitekb.logging_config import get_logger
from sitekb.vector_store import VectorStore

logger = get_logger(__name__)


class RunState(str, Enum):
    DISCOVERING = "discovering"
    ACQUIRING = "acquiring"
    PROCESSING = "processing"
    AGGREGATING = "aggregating"
    DONE = "done"


class IngestionStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL_FAILURE = "partial_failure"
    HARD_FAILURE = "hard_failure"


@dataclass
class RunContext:
    """
    Mutable state of one ingestion run.

    Owned by the run that created it; never shared across jobs.
    """
    url: str
    app_name: str
    collection: str
    dedup: DedupTracker = field(default_factory=DedupTracker)
    indexed: IndexOutcome = field(default_factory=IndexOutcome)
    pages_processed: int = 0
    pages_empty: int = 0
    state: RunState = RunState.DISCOVERING
    history: list[RunState] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        self.history.append(self.state)

    def advance(self, state: RunState, detail: str = "") -> None:
        self.state = state
        self.history.append(state)
        logger.debug(f"run.state state={state.value} {detail}".rstrip())


@dataclass
class IngestionResult:
    """Final outcome of one ingestion run."""
    status: IngestionStatus
    url: str
    app_name: str
    message: str
    chunks_indexed: int = 0
    chunks_failed: int = 0
    pages_processed: int = 0
    pages_skipped: int = 0
    source: AcquisitionSource | None = None
    error: str | None = None
    duration_seconds: float | None = None

    @property
    def ok(self) -> bool:
        return self.status == IngestionStatus.SUCCESS

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "url": self.url,
            "appName": self.app_name,
            "message": self.message,
            "chunksIndexed": self.chunks_indexed,
            "chunksFailed": self.chunks_failed,
            "pagesProcessed": self.pages_processed,
            "pagesSkipped": self.pages_skipped,
            "source": self.source.value if self.source else None,
            "error": self.error,
            "durationSeconds": self.duration_seconds,
        }


class IngestionOrchestrator:
    """
    Drive one website through acquisition, processing and indexing.

    Args:
        strategist: Acquisition fallback chain.
        embedder: Embedding service client.
        vector_store: Vector engine wrapper; one collection per application.
    """

    def __init__(
        self,
        strategist: AcquisitionStrategist,
        embedder: Embedder,
        vector_store: VectorStore,
    ):
        self.strategist = strategist
        self.embedder = embedder
        self.vector_store = vector_store

    def run(self, url: str, app_name: str) -> IngestionResult:
        """
        Ingest a website into the application's collection.

        Returns:
            IngestionResult. Hard failure when no strategy produced usable
            content; partial failure when any chunk failed to index.
        """
        ctx = RunContext(
            url=url,
            app_name=app_name,
            collection=VectorStore.collection_name(app_name),
        )
        logger.info(f"run.start url={url} app={app_name} collection={ctx.collection}")

        ctx.advance(RunState.ACQUIRING)
        acquisition = self.strategist.acquire(url, app_name)
        if not acquisition.ok:
            reason = acquisition.error if acquisition.status == AcquisitionStatus.ERROR else None
            return self._hard_failure(
                ctx,
                reason or "No content could be acquired by any strategy.",
                acquisition.source,
            )

        pipeline = IndexingPipeline(self.embedder, self.vector_store, ctx.collection)
        total = len(acquisition.pages)

        for i, page in enumerate(acquisition.pages, start=1):
            ctx.advance(RunState.PROCESSING, f"page={i}/{total} source={page.source_url}")
            normalized = normalize_page(page)

            if not normalized.text:
                ctx.pages_empty += 1
                logger.info(f"page.empty source={page.source_url}")
                continue

            if not ctx.dedup.check_and_add(normalized.content_hash):
                logger.info(f"page.duplicate source={page.source_url}")
                continue

            chunks = chunk_text(normalized.text, page.source_url)
            ctx.indexed += pipeline.index_chunks(chunks)
            ctx.pages_processed += 1
            logger.debug(f"page.done source={page.source_url} chunks={len(chunks)}")

        ctx.advance(RunState.AGGREGATING)
        return self._aggregate(ctx, acquisition.source)

    def _aggregate(self, ctx: RunContext, source: AcquisitionSource | None) -> IngestionResult:
        processed = ctx.indexed.processed
        failed = ctx.indexed.failed

        if ctx.pages_processed == 0:
            return self._hard_failure(
                ctx, "Acquired pages contained no content after normalization.", source
            )

        if failed > 0:
            status = IngestionStatus.PARTIAL_FAILURE
            error = f"{failed} chunks failed to index ({processed} indexed)"
            message = (
                f"Indexed {processed} chunks from {ctx.pages_processed} pages under {ctx.url}; "
                f"{failed} chunks failed to index."
            )
        else:
            status = IngestionStatus.SUCCESS
            error = None
            message = (
                f"Successfully crawled and indexed {processed} chunks from "
                f"{ctx.pages_processed} pages under {ctx.url}."
            )

        return self._finish(ctx, status, message, source, error)

    def _hard_failure(
        self,
        ctx: RunContext,
        reason: str,
        source: AcquisitionSource | None,
    ) -> IngestionResult:
        message = (
            f"Failed to ingest {ctx.url}: {reason} "
            f"Indexed {ctx.indexed.processed} chunks from {ctx.pages_processed} pages."
        )
        return self._finish(ctx, IngestionStatus.HARD_FAILURE, message, source, reason)

    def _finish(
        self,
        ctx: RunContext,
        status: IngestionStatus,
        message: str,
        source: AcquisitionSource | None,
        error: str | None,
    ) -> IngestionResult:
        ctx.advance(RunState.DONE, f"status={status.value}")
        duration = (datetime.now(timezone.utc) - ctx.started_at).total_seconds()

        result = IngestionResult(
            status=status,
            url=ctx.url,
            app_name=ctx.app_name,
            message=message,
            chunks_indexed=ctx.indexed.processed,
            chunks_failed=ctx.indexed.failed,
            pages_processed=ctx.pages_processed,
            pages_skipped=ctx.dedup.skipped + ctx.pages_empty,
            source=source,
            error=error,
            duration_seconds=duration,
        )

        log = logger.info if result.ok else logger.warning
        log(
            f"run.done status={status.value} chunks={result.chunks_indexed} "
            f"failed={result.chunks_failed} pages={result.pages_processed} "
            f"skipped={result.pages_skipped} source={source.value if source else '-'} "
            f"duration={duration:.1f}s"
        )
        return result


def build_orchestrator() -> IngestionOrchestrator:
    """Orchestrator wired to the configured Firecrawl, OpenAI and Qdrant clients."""
    return IngestionOrchestrator(
        strategist=build_default_strategist(),
        embedder=Embedder(),
        vector_store=VectorStore(),
    )


def ingest_website(url: str, app_name: str) -> IngestionResult:
    """
    Simple function to ingest one website synchronously.

    Args:
        url: Absolute seed URL.
        app_name: Application whose collection receives the documents.
    """
    return build_orchestrator().run(url, app_name)
