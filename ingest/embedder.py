"""
Embedding utilities for the ingestion pipeline.
Uses OpenAI's embedding API, one chunk per request.
"""
import time

from openai import APIConnectionError, APIStatusError, APITimeoutError, OpenAI, RateLimitError

from sitekb.config import settings
from sitekb.logging_config import get_logger

logger = get_logger(__name__)


class EmbeddingError(RuntimeError):
    """Base class for embedding service failures."""


class EmbeddingTimeoutError(EmbeddingError):
    """The embedding request timed out."""


class EmbeddingRejectedError(EmbeddingError):
    """The embedding service refused the request or returned an unusable vector."""


class Embedder:
    """
    Text -> fixed-length vector via the OpenAI embeddings API.

    Rate-limited requests are retried with exponential backoff (2, 4, 8s);
    every other failure is raised immediately as an EmbeddingError subclass.
    """

    def __init__(
        self,
        client: OpenAI | None = None,
        model: str | None = None,
        dimension: int | None = None,
        max_retries: int | None = None,
        backoff_base: float = 2.0,
    ):
        self.client = client or OpenAI(
            api_key=settings.openai_api_key,
            timeout=settings.embedding_timeout_seconds,
            max_retries=0,
        )
        self.model = model or settings.embedding_model
        self.dimension = dimension or settings.embedding_dimension
        self.max_retries = max_retries or settings.embedding_max_retries
        self.backoff_base = backoff_base

    def embed(self, text: str) -> list[float]:
        """
        Generate the embedding for a single text.

        Raises:
            EmbeddingTimeoutError: The request timed out.
            EmbeddingRejectedError: Error status, exhausted rate-limit retries,
                or a vector of the wrong dimension.
            EmbeddingError: Any other transport failure.
        """
        retries = 0
        while True:
            try:
                response = self.client.embeddings.create(model=self.model, input=text)
                break
            except RateLimitError as e:
                retries += 1
                if retries > self.max_retries:
                    raise EmbeddingRejectedError(f"Rate limited after {self.max_retries} retries: {e}") from e
                wait_time = self.backoff_base ** retries
                logger.warning(f"embed.rate_limited wait={wait_time:.0f}s attempt={retries}")
                time.sleep(wait_time)
            except APITimeoutError as e:
                raise EmbeddingTimeoutError(f"Embedding request timed out: {e}") from e
            except APIStatusError as e:
                raise EmbeddingRejectedError(
                    f"Embedding request rejected (status {e.status_code}): {e}"
                ) from e
            except APIConnectionError as e:
                raise EmbeddingError(f"Embedding service unreachable: {e}") from e

        if not response.data:
            raise EmbeddingRejectedError("Embedding service returned no vectors")

        vector = response.data[0].embedding
        if len(vector) != self.dimension:
            raise EmbeddingRejectedError(
                f"Expected {self.dimension}-dim embedding, got {len(vector)}"
            )
        return vector
