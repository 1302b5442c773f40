from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator


class IngestRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    url: str
    app_name: str = Field(alias="appName")

    @field_validator("url")
    @classmethod
    def _absolute_http_url(cls, value: str) -> str:
        value = value.strip()
        parts = urlsplit(value)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError("url must be an absolute http(s) URL")
        return value

    @field_validator("app_name")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("appName must not be empty")
        return value


class IngestAccepted(BaseModel):
    """Immediate acknowledgement; the work happens on a queue worker."""
    model_config = ConfigDict(populate_by_name=True)

    status: str = "queued"
    job_id: str = Field(alias="jobId")


class IngestionResultModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str  # "success" | "partial_failure" | "hard_failure"
    message: str
    chunks_indexed: int = Field(alias="chunksIndexed")
    chunks_failed: int = Field(alias="chunksFailed")
    pages_processed: int = Field(alias="pagesProcessed")
    pages_skipped: int = Field(default=0, alias="pagesSkipped")
    source: str | None = None  # Acquisition strategy that supplied the pages
    error: str | None = None
    duration_seconds: float | None = Field(default=None, alias="durationSeconds")


class JobResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(alias="jobId")
    status: str  # "queued" | "running" | "succeeded" | "failed"
    url: str
    app_name: str = Field(alias="appName")
    enqueued_at: str = Field(alias="enqueuedAt")
    started_at: str | None = Field(default=None, alias="startedAt")
    finished_at: str | None = Field(default=None, alias="finishedAt")
    result: IngestionResultModel | None = None  # Present once the job has run
    error: str | None = None


class HealthResponse(BaseModel):
    status: str = "ok"
    queue: dict[str, int] = Field(default_factory=dict)
