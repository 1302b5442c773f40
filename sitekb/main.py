from contextlib import asynccontextmanager
import time
import logging
import os
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from sitekb.models import HealthResponse, IngestAccepted, IngestRequest, JobResponse
from sitekb.logging_config import setup_logging, get_logger
from sitekb.logging_utils import request_id_ctx, new_request_id
from sitekb.config import settings
from sitekb.jobs import JobQueue

logger = get_logger(__name__)


# ============== Rate Limiting ==============

limiter = Limiter(key_func=get_remote_address)


# ============== Job Queue ==============

def create_job_queue() -> JobQueue:
    """Job queue whose workers run the full ingestion orchestrator."""
    from ingest.orchestrator import build_orchestrator

    return JobQueue(build_orchestrator().run)


@asynccontextmanager
async def lifespan(app: FastAPI):
    job_queue = create_job_queue()
    job_queue.start()
    app.state.job_queue = job_queue
    try:
        yield
    finally:
        job_queue.shutdown(timeout=5)


app = FastAPI(title="sitekb ingestion API", lifespan=lifespan)
setup_logging(settings.log_level)


def _sentry_before_send(event, hint):
    req = event.get("request") or {}
    # Remove request body & cookies
    req.pop("data", None)
    req.pop("cookies", None)
    headers = req.get("headers") or {}
    headers.pop("authorization", None)
    req["headers"] = headers
    event["request"] = req
    return event

sentry_dsn = os.getenv("SENTRY_DSN")
if sentry_dsn:
    sentry_sdk.init(
        dsn=sentry_dsn,
        integrations=[FastApiIntegration()],
        environment=os.getenv("SENTRY_ENVIRONMENT", "dev"),
        send_default_pii=False,
        traces_sample_rate=float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0") or "0"),
        before_send=_sentry_before_send,
    )


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    rid = request.headers.get("X-Request-ID") or new_request_id()
    token = request_id_ctx.set(rid)

    start = time.time()
    try:
        response = await call_next(request)
        duration_ms = int((time.time() - start) * 1000)

        response.headers["X-Request-ID"] = rid

        logging.getLogger("sitekb.request").info(
            "%s %s -> %s (%dms)",
            request.method,
            request.url.path,
            getattr(response, "status_code", "?"),
            duration_ms,
        )
        return response
    finally:
        request_id_ctx.reset(token)


# ============== Middleware ==============

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# In production, set CORS_ORIGINS env var to your domain(s)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

logger.info(f"CORS enabled for origins: {settings.cors_origins}")


# ============== Endpoints ==============

def _job_queue(request: Request) -> JobQueue:
    return request.app.state.job_queue


@app.post("/ingestion", response_model=IngestAccepted, status_code=202)
@limiter.limit(settings.rate_limit_ingest)
async def ingest(request: Request, body: IngestRequest):
    """
    Queue a website for ingestion into the application's collection.

    Returns immediately; poll GET /ingestion/jobs/{jobId} for the outcome.
    """
    job = _job_queue(request).enqueue(body.url, body.app_name)
    return IngestAccepted(job_id=job.job_id)


@app.get("/ingestion/jobs/{job_id}", response_model=JobResponse)
async def get_job(request: Request, job_id: str):
    """Status of a queued, running or recently finished ingestion job."""
    job = _job_queue(request).get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")
    return JobResponse.model_validate(job.to_dict())


@app.get("/health", response_model=HealthResponse)
def health_check(request: Request):
    """Health check endpoint. Returns minimal status information."""
    return HealthResponse(queue=_job_queue(request).stats())
