"""
Embedding & indexing pipeline.

Turns chunks into IndexedDocuments in the application's Qdrant collection.

Features:
- Idempotent upserts (same source + same text = same document id)
- Collection auto-provisioning before the first write
- Per-chunk failure accounting: a failed chunk is counted, never fatal
"""
import uuid
from dataclasses import dataclass

from ingest.chunking import Chunk
from ingest.embedder import Embedder
from sitekb.logging_config import get_logger
from sitekb.vector_store import CollectionNotFoundError, IndexedDocument, VectorStore

logger = get_logger(__name__)

# Fixed namespace so ids are stable across processes and deployments
DOCUMENT_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "sitekb:indexed-document")


def generate_document_id(source: str, text: str) -> str:
    """
    Generate a deterministic UUID for an indexed document.

    Same (source, text) always produces the same UUID, so re-ingesting
    unchanged content overwrites instead of duplicating. The source length
    prefix keeps ("a-b", "c") and ("a", "b-c") apart.

    Returns:
        UUID string suitable for a Qdrant point ID.
    """
    key = f"{len(source)}:{source}:{text}"
    return str(uuid.uuid5(DOCUMENT_NAMESPACE, key))


@dataclass
class IndexOutcome:
    """Aggregate of one batch of chunk writes."""
    processed: int = 0
    failed: int = 0

    def __add__(self, other: "IndexOutcome") -> "IndexOutcome":
        return IndexOutcome(
            processed=self.processed + other.processed,
            failed=self.failed + other.failed,
        )

    def to_dict(self) -> dict:
        return {"processed": self.processed, "failed": self.failed}


class IndexingPipeline:
    """
    Embed chunks and upsert them into one collection.

    Chunks are handled sequentially in the order given. Any failure of the
    embedding request or of the upsert increments `failed` and moves on.
    """

    def __init__(self, embedder: Embedder, vector_store: VectorStore, collection: str):
        self.embedder = embedder
        self.vector_store = vector_store
        self.collection = collection
        self._collection_ready = False

    def ensure_collection(self) -> None:
        """Verify (and if needed create) the collection before the first write."""
        if not self._collection_ready:
            self.vector_store.ensure_collection(self.collection)
            self._collection_ready = True

    def index_chunk(self, chunk: Chunk) -> None:
        """
        Embed and upsert a single chunk.

        A missing collection (e.g. dropped mid-run) is re-provisioned and the
        write retried once.
        """
        embedding = self.embedder.embed(chunk.text)
        document = IndexedDocument(
            id=generate_document_id(chunk.source_url, chunk.text),
            source=chunk.source_url,
            text=chunk.text,
            embedding=embedding,
        )

        self.ensure_collection()
        try:
            self.vector_store.upsert(self.collection, document)
        except CollectionNotFoundError:
            logger.warning(f"collection.not_found name={self.collection} action=recreate")
            self.vector_store.forget_collection(self.collection)
            self._collection_ready = False
            self.ensure_collection()
            self.vector_store.upsert(self.collection, document)

    def index_chunks(self, chunks: list[Chunk]) -> IndexOutcome:
        """
        Index chunks in sequence order.

        Returns:
            IndexOutcome with processed/failed counts (never raises for
            per-chunk failures).
        """
        outcome = IndexOutcome()
        for chunk in chunks:
            try:
                self.index_chunk(chunk)
                outcome.processed += 1
            except Exception as e:
                outcome.failed += 1
                logger.warning(
                    f"embed.chunk.error collection={self.collection} source={chunk.source_url} "
                    f"sequence={chunk.sequence} err={type(e).__name__}: {e}"
                )
        return outcome
