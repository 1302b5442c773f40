"""
Shared fixtures and fake collaborators.

Required credentials are seeded before sitekb.config is imported so the
settings object validates without a real .env file. No test touches the
network: HTTP goes through httpx.MockTransport, Qdrant runs in :memory:
mode, and the embedding/extraction services are replaced by fakes.
"""
import hashlib
import os

os.environ.setdefault("OPENAI_API_KEY", "sk-test")
os.environ.setdefault("FIRECRAWL_API_KEY", "fc-test")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from qdrant_client import QdrantClient

from acquisition.base import Page
from acquisition.extraction import ExtractionError
from ingest.embedder import EmbeddingRejectedError
from sitekb.vector_store import VectorStore

DIMENSION = 8


class FakeEmbedder:
    """
    Deterministic embedder.

    fail_calls holds 1-based call numbers that raise EmbeddingRejectedError.
    """

    def __init__(self, fail_calls: set[int] | None = None, dimension: int = DIMENSION):
        self.fail_calls = fail_calls or set()
        self.dimension = dimension
        self.calls: list[str] = []

    def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if len(self.calls) in self.fail_calls:
            raise EmbeddingRejectedError(f"rejected call {len(self.calls)}")
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return [b / 255 + 0.01 for b in digest[: self.dimension]]


class FakeExtractor:
    """Stands in for FirecrawlExtractor."""

    def __init__(
        self,
        single: dict[str, str] | None = None,
        crawl_pages: list[Page] | None = None,
        crawl_error: str | None = None,
    ):
        self.single = single or {}
        self.crawl_pages = crawl_pages or []
        self.crawl_error = crawl_error
        self.single_calls: list[str] = []
        self.crawl_calls: list[tuple[str, int, int]] = []

    def extract_single(self, url: str, prompt: str) -> str:
        self.single_calls.append(url)
        value = self.single.get(url, "")
        if value is None:
            raise ExtractionError(f"extraction failed for {url}")
        return value

    def crawl_recursive(self, seed_url: str, max_pages: int, max_depth: int) -> list[Page]:
        self.crawl_calls.append((seed_url, max_pages, max_depth))
        if self.crawl_error:
            raise ExtractionError(self.crawl_error)
        return list(self.crawl_pages)


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def qdrant():
    client = QdrantClient(":memory:")
    yield client
    client.close()


@pytest.fixture
def vector_store(qdrant):
    return VectorStore(client=qdrant, dimension=DIMENSION)


def page_text(topic: str, paragraphs: int = 3) -> str:
    """Markdown body with a heading and a few distinct paragraphs."""
    body = [f"# {topic.title()}"]
    for i in range(paragraphs):
        body.append(
            f"Paragraph {i + 1} about {topic}. It explains one detail of {topic} "
            f"in plain words so the chunker has sentences to break on."
        )
    return "\n\n".join(body)
