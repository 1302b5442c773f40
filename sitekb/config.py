from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_EXTRACTION_PROMPT = (
    "Extract the main readable content of this page as clean markdown. "
    "Keep headings, paragraphs, lists and tables. Leave out navigation, "
    "footers, cookie banners and advertising."
)


class Settings(BaseSettings):
    """
    Settings for the site knowledge-base ingestion service.

    All settings can be configured via environment variables or .env file.
    Required credentials are validated at import time, so a misconfigured
    process fails at startup instead of on the first ingestion request.
    """

    # Read from .env and ignore unknown vars
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # OpenAI settings (embedding service)
    openai_api_key: str = Field(alias="OPENAI_API_KEY")
    openai_embedding_model: str = Field(
        default="text-embedding-3-small",
        alias="OPENAI_EMBEDDING_MODEL",
    )
    embedding_dimension: int = Field(default=1536, alias="EMBEDDING_DIMENSION")
    embedding_timeout_seconds: float = Field(
        default=30.0,
        alias="EMBEDDING_TIMEOUT_SECONDS",
    )
    embedding_max_retries: int = Field(
        default=3,
        alias="EMBEDDING_MAX_RETRIES",
        description="Retries per chunk when the embedding service rate limits",
    )

    # Qdrant settings (vector search engine)
    qdrant_url: str = Field(
        default="http://localhost:6333",
        alias="QDRANT_URL",
    )
    qdrant_api_key: str | None = Field(
        default=None,
        alias="QDRANT_API_KEY",
    )
    qdrant_timeout_seconds: int = Field(default=10, alias="QDRANT_TIMEOUT_SECONDS")
    collection_prefix: str = Field(
        default="",
        alias="COLLECTION_PREFIX",
        description="Prepended to the application name to form the collection name",
    )

    # Firecrawl settings (content extraction service)
    firecrawl_api_key: str = Field(alias="FIRECRAWL_API_KEY")
    firecrawl_api_url: str | None = Field(
        default=None,
        alias="FIRECRAWL_API_URL",
        description="Override for self-hosted Firecrawl deployments",
    )
    extraction_timeout_seconds: float = Field(
        default=60.0,
        alias="EXTRACTION_TIMEOUT_SECONDS",
    )
    crawl_timeout_seconds: int = Field(default=600, alias="CRAWL_TIMEOUT_SECONDS")

    # LLM-guided extraction
    llm_extraction_enabled: bool = Field(
        default=False,
        alias="LLM_EXTRACTION_ENABLED",
        description="Use sitemap discovery + LLM-guided extraction before the recursive crawl",
    )
    llm_extraction_prompt: str = Field(
        default=DEFAULT_EXTRACTION_PROMPT,
        alias="LLM_EXTRACTION_PROMPT",
    )

    # Recursive crawl limits
    crawl_max_pages: int = Field(default=100, alias="CRAWL_MAX_PAGES")
    crawl_max_depth: int = Field(default=3, alias="CRAWL_MAX_DEPTH")

    # Sitemap discovery
    sitemap_max_urls: int = Field(
        default=50,
        alias="SITEMAP_MAX_URLS",
        description="Maximum page URLs taken from sitemap discovery (and extracted)",
    )
    sitemap_fetch_timeout_seconds: float = Field(
        default=10.0,
        alias="SITEMAP_FETCH_TIMEOUT_SECONDS",
    )

    # Local snapshot cache (non-production only)
    environment: str = Field(default="development", alias="ENVIRONMENT")
    local_cache_dir: str = Field(default="data/snapshots", alias="LOCAL_CACHE_DIR")

    # Chunking settings
    chunk_size: int = Field(default=1000, alias="CHUNK_SIZE")
    chunk_overlap: int = Field(default=200, alias="CHUNK_OVERLAP")

    # Job queue
    ingest_workers: int = Field(default=2, alias="INGEST_WORKERS")
    job_history_succeeded: int = Field(
        default=100,
        alias="JOB_HISTORY_SUCCEEDED",
        description="Succeeded job records kept before the oldest are evicted",
    )
    job_history_failed: int = Field(
        default=100,
        alias="JOB_HISTORY_FAILED",
        description="Failed job records kept before the oldest are evicted",
    )

    # API
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:8000"],
        alias="CORS_ORIGINS",
    )
    rate_limit_ingest: str = Field(
        default="10/minute",
        alias="RATE_LIMIT_INGEST",
        description="Rate limit for POST /ingestion (e.g., 10/minute)",
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @property
    def embedding_model(self) -> str:
        return self.openai_embedding_model

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"


settings = Settings()
