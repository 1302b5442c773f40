"""
In-process ingestion job queue.

POST /ingestion only enqueues; a small pool of daemon worker threads drains
the queue and runs each job to completion through the orchestrator before
taking the next one. Job records live in memory with bounded history:
the oldest finished jobs are evicted once the retention caps are exceeded.
"""
import queue
import threading
import uuid
from collections import deque
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Callable

import sentry_sdk

from ingest.orchestrator import IngestionResult
from sitekb.config import settings
from sitekb.logging_config import get_logger
from sitekb.logging_utils import correlation_scope

logger = get_logger(__name__)

JobRunner = Callable[[str, str], IngestionResult]

_STOP = object()


class JobStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class IngestionJob:
    job_id: str
    url: str
    app_name: str
    enqueued_at: datetime
    status: JobStatus = JobStatus.QUEUED
    started_at: datetime | None = None
    finished_at: datetime | None = None
    result: IngestionResult | None = None
    error: str | None = None

    @property
    def finished(self) -> bool:
        return self.status in (JobStatus.SUCCEEDED, JobStatus.FAILED)

    def to_dict(self) -> dict:
        return {
            "jobId": self.job_id,
            "status": self.status.value,
            "url": self.url,
            "appName": self.app_name,
            "enqueuedAt": self.enqueued_at.isoformat(),
            "startedAt": self.started_at.isoformat() if self.started_at else None,
            "finishedAt": self.finished_at.isoformat() if self.finished_at else None,
            "result": self.result.to_dict() if self.result else None,
            "error": self.error,
        }


class JobQueue:
    """
    Producer/consumer queue for ingestion jobs.

    A job is SUCCEEDED when the run returns a successful result and FAILED
    when the run reports a partial or hard failure, or raises.

    Args:
        runner: Callable (url, app_name) -> IngestionResult.
        workers: Number of worker threads.
        keep_succeeded: Succeeded jobs retained for lookup.
        keep_failed: Failed jobs retained for lookup.
    """

    def __init__(
        self,
        runner: JobRunner,
        workers: int | None = None,
        keep_succeeded: int | None = None,
        keep_failed: int | None = None,
    ):
        self.runner = runner
        self.workers = workers or settings.ingest_workers
        self.keep_succeeded = keep_succeeded if keep_succeeded is not None else settings.job_history_succeeded
        self.keep_failed = keep_failed if keep_failed is not None else settings.job_history_failed

        self._queue: queue.Queue = queue.Queue()
        self._jobs: dict[str, IngestionJob] = {}
        self._history: dict[JobStatus, deque[str]] = {
            JobStatus.SUCCEEDED: deque(),
            JobStatus.FAILED: deque(),
        }
        self._lock = threading.Lock()
        self._threads: list[threading.Thread] = []

    @property
    def running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    def start(self) -> None:
        if self._threads:
            return
        for i in range(self.workers):
            thread = threading.Thread(
                target=self._work,
                name=f"ingest-worker-{i + 1}",
                daemon=True,
            )
            thread.start()
            self._threads.append(thread)
        logger.info(f"jobs.start workers={self.workers}")

    def enqueue(self, url: str, app_name: str) -> IngestionJob:
        """Record a queued job and hand it to the workers. Returns immediately."""
        job = IngestionJob(
            job_id=uuid.uuid4().hex,
            url=url,
            app_name=app_name,
            enqueued_at=_now(),
        )
        with self._lock:
            self._jobs[job.job_id] = job
        self._queue.put(job.job_id)
        logger.info(f"job.enqueued job={job.job_id} url={url} app={app_name}")
        return replace(job)

    def get(self, job_id: str) -> IngestionJob | None:
        """Snapshot of a job, or None if unknown or evicted."""
        with self._lock:
            job = self._jobs.get(job_id)
            return replace(job) if job else None

    def stats(self) -> dict[str, int]:
        with self._lock:
            counts = {status.value: 0 for status in JobStatus}
            for job in self._jobs.values():
                counts[job.status.value] += 1
        counts["pending"] = self._queue.qsize()
        return counts

    def join(self) -> None:
        """Block until every enqueued job has been processed."""
        self._queue.join()

    def shutdown(self, timeout: float | None = None) -> None:
        """Stop the workers once the jobs already queued have drained."""
        for _ in self._threads:
            self._queue.put(_STOP)
        for thread in self._threads:
            thread.join(timeout)
        self._threads = []
        logger.info("jobs.stop")

    def _work(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._run(item)
            finally:
                self._queue.task_done()

    def _run(self, job_id: str) -> None:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return
            job.status = JobStatus.RUNNING
            job.started_at = _now()

        with correlation_scope(job_id):
            logger.info(f"job.started job={job_id} url={job.url} app={job.app_name}")
            try:
                result = self.runner(job.url, job.app_name)
            except Exception as e:
                logger.exception(f"job.crashed job={job_id}")
                sentry_sdk.capture_exception(e)
                self._finish(job, JobStatus.FAILED, error=f"{type(e).__name__}: {e}")
                return

            status = JobStatus.SUCCEEDED if result.ok else JobStatus.FAILED
            self._finish(job, status, result=result, error=result.error)
            logger.info(
                f"job.finished job={job_id} status={status.value} "
                f"chunks={result.chunks_indexed} failed={result.chunks_failed} "
                f"pages={result.pages_processed}"
            )

    def _finish(
        self,
        job: IngestionJob,
        status: JobStatus,
        result: IngestionResult | None = None,
        error: str | None = None,
    ) -> None:
        with self._lock:
            job.status = status
            job.finished_at = _now()
            job.result = result
            job.error = error

            history = self._history[status]
            history.append(job.job_id)
            cap = self.keep_succeeded if status == JobStatus.SUCCEEDED else self.keep_failed
            while len(history) > cap:
                evicted = history.popleft()
                self._jobs.pop(evicted, None)
                logger.debug(f"job.evicted job={evicted} status={status.value}")
