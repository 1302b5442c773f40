"""
Qdrant client configuration and per-application collection access.

Each application gets its own collection. Documents are written with
deterministic ids (see ingest.pipeline.generate_document_id), so upserting
the same (source, text) pair twice overwrites instead of duplicating, and
concurrent jobs can write to one collection without client-side locking.
"""
import re
from dataclasses import dataclass
from threading import Lock

from qdrant_client import QdrantClient
from qdrant_client.http.exceptions import UnexpectedResponse
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    MatchValue,
    PayloadSchemaType,
    PointStruct,
    TextIndexParams,
    TokenizerType,
    VectorParams,
)

from sitekb.config import settings
from sitekb.logging_config import get_logger

logger = get_logger(__name__)

_COLLECTION_NAME_PATTERN = re.compile(r"[^a-z0-9_\-]")


class VectorStoreError(RuntimeError):
    """Raised when the vector engine rejects an operation."""


class CollectionNotFoundError(VectorStoreError):
    """Raised when the target collection does not exist."""


@dataclass
class IndexedDocument:
    id: str
    source: str
    text: str
    embedding: list[float]


@dataclass
class SearchHit:
    id: str
    score: float
    source: str
    text: str


def _is_not_found(exc: Exception) -> bool:
    if isinstance(exc, UnexpectedResponse):
        return exc.status_code == 404
    return "not found" in str(exc).lower()


def _is_already_exists(exc: Exception) -> bool:
    if isinstance(exc, UnexpectedResponse) and exc.status_code == 409:
        return True
    return "already exists" in str(exc).lower()


def get_qdrant_client() -> QdrantClient:
    """Build a Qdrant client from settings."""
    return QdrantClient(
        url=settings.qdrant_url,
        api_key=settings.qdrant_api_key,
        timeout=settings.qdrant_timeout_seconds,
    )


class VectorStore:
    """
    Thin wrapper around Qdrant for per-application collections.

    Collections are created on first use with a fixed schema:
    - point id: stable document identifier
    - vector: cosine float vector of settings.embedding_dimension
    - payload "text": full-text indexed chunk text
    - payload "source": keyword indexed (faceted) source URL
    """

    def __init__(self, client: QdrantClient | None = None, dimension: int | None = None):
        self.client = client or get_qdrant_client()
        self.dimension = dimension or settings.embedding_dimension
        self._ensured: set[str] = set()
        self._lock = Lock()

    @staticmethod
    def collection_name(app_name: str) -> str:
        """Map an application name to its collection name."""
        name = f"{settings.collection_prefix}{app_name}".strip().lower()
        return _COLLECTION_NAME_PATTERN.sub("_", name)

    def collection_exists(self, name: str) -> bool:
        return self.client.collection_exists(collection_name=name)

    def ensure_collection(self, name: str) -> None:
        """
        Ensure the collection exists, creating it with the fixed schema if absent.

        A concurrent creator winning the race ("already exists") counts as success.
        """
        with self._lock:
            if name in self._ensured:
                return

        if not self.collection_exists(name):
            logger.warning(f"collection.missing name={name} action=create")
            try:
                self.client.create_collection(
                    collection_name=name,
                    vectors_config=VectorParams(
                        size=self.dimension,
                        distance=Distance.COSINE,
                    ),
                )
                logger.info(f"collection.created name={name} dimension={self.dimension}")
            except Exception as e:
                if not _is_already_exists(e):
                    raise VectorStoreError(f"Could not create collection '{name}': {e}") from e
                logger.info(f"collection.exists name={name}")

            self.client.create_payload_index(
                collection_name=name,
                field_name="source",
                field_schema=PayloadSchemaType.KEYWORD,
            )
            self.client.create_payload_index(
                collection_name=name,
                field_name="text",
                field_schema=TextIndexParams(
                    type="text",
                    tokenizer=TokenizerType.WORD,
                    lowercase=True,
                ),
            )

        with self._lock:
            self._ensured.add(name)

    def forget_collection(self, name: str) -> None:
        """Drop the cached 'exists' flag so the next write re-checks the engine."""
        with self._lock:
            self._ensured.discard(name)

    def upsert(self, collection: str, document: IndexedDocument) -> None:
        """
        Upsert a single document (idempotent - same id overwrites).

        Raises:
            CollectionNotFoundError: The collection does not exist.
            VectorStoreError: Any other engine-side rejection.
        """
        point = PointStruct(
            id=document.id,
            vector=document.embedding,
            payload={"source": document.source, "text": document.text},
        )
        try:
            self.client.upsert(collection_name=collection, points=[point], wait=True)
        except (UnexpectedResponse, ValueError) as e:
            if _is_not_found(e):
                raise CollectionNotFoundError(f"Collection '{collection}' not found") from e
            raise VectorStoreError(f"Upsert into '{collection}' failed: {e}") from e

    def search(
        self,
        collection: str,
        query_vector: list[float],
        k: int = 5,
        source: str | None = None,
    ) -> list[SearchHit]:
        """
        k-NN search over a collection.

        Args:
            collection: Collection name.
            query_vector: Query embedding.
            k: Number of hits to return.
            source: Optional exact-match filter on the source field.

        Returns:
            Hits ranked by similarity (best first).
        """
        query_filter = None
        if source:
            query_filter = Filter(
                must=[FieldCondition(key="source", match=MatchValue(value=source))]
            )

        try:
            response = self.client.query_points(
                collection_name=collection,
                query=query_vector,
                limit=k,
                query_filter=query_filter,
                with_payload=True,
            )
        except (UnexpectedResponse, ValueError) as e:
            if _is_not_found(e):
                raise CollectionNotFoundError(f"Collection '{collection}' not found") from e
            raise VectorStoreError(f"Search in '{collection}' failed: {e}") from e

        hits = []
        for point in response.points:
            payload = point.payload or {}
            hits.append(
                SearchHit(
                    id=str(point.id),
                    score=point.score,
                    source=payload.get("source", ""),
                    text=payload.get("text", ""),
                )
            )
        return hits

    def count(self, collection: str) -> int:
        """Exact number of documents in a collection."""
        return self.client.count(collection_name=collection, exact=True).count
