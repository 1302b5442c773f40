"""
Ingestion module for sitekb.

Components:
- normalizer: Markdown cleanup applied to every acquired page
- dedup: Run-scoped exact-duplicate page suppression
- chunking: Overlapping text chunking
- embedder: OpenAI embedding generation
- pipeline: Embedding & indexing of chunks into Qdrant
- orchestrator: End-to-end ingestion of one website

Usage:
    # Using CLI
    python -m ingest.ingest_cli --url https://example.com/ --app docs

    # Using Python
    from ingest.orchestrator import ingest_website

    result = ingest_website("https://example.com/", "docs")
"""
from ingest.normalizer import normalize_content, normalize_page, NormalizedPage
from ingest.dedup import content_hash, DedupTracker
from ingest.chunking import chunk_text, Chunk
from ingest.embedder import Embedder, EmbeddingError
from ingest.pipeline import IndexingPipeline, IndexOutcome, generate_document_id
from ingest.orchestrator import (
    IngestionOrchestrator,
    IngestionResult,
    IngestionStatus,
    ingest_website,
)

__all__ = [
    # Normalization
    "normalize_content",
    "normalize_page",
    "NormalizedPage",
    # Dedup
    "content_hash",
    "DedupTracker",
    # Chunking
    "chunk_text",
    "Chunk",
    # Embeddings
    "Embedder",
    "EmbeddingError",
    # Indexing
    "IndexingPipeline",
    "IndexOutcome",
    "generate_document_id",
    # Orchestration
    "IngestionOrchestrator",
    "IngestionResult",
    "IngestionStatus",
    "ingest_website",
]
