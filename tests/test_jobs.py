"""
Tests for the in-process ingestion job queue.

Run with: pytest tests/test_jobs.py -v
"""
import threading

import pytest

from ingest.orchestrator import IngestionResult, IngestionStatus
from sitekb.jobs import JobQueue, JobStatus
from sitekb.logging_utils import request_id_ctx


def _result(url, app_name, status=IngestionStatus.SUCCESS, failed=0):
    return IngestionResult(
        status=status,
        url=url,
        app_name=app_name,
        message=f"Successfully crawled and indexed 3 chunks from 1 pages under {url}.",
        chunks_indexed=3,
        chunks_failed=failed,
        pages_processed=1,
        error="1 chunks failed to index (3 indexed)" if failed else None,
    )


@pytest.fixture
def make_queue():
    queues = []

    def factory(runner, **kwargs):
        queue = JobQueue(runner, **kwargs)
        queue.start()
        queues.append(queue)
        return queue

    yield factory
    for queue in queues:
        queue.shutdown(timeout=5)


def test_enqueue_returns_immediately_as_queued():
    release = threading.Event()

    def runner(url, app_name):
        release.wait(5)
        return _result(url, app_name)

    queue = JobQueue(runner, workers=1)
    job = queue.enqueue("https://example.com/", "docs")

    assert job.status == JobStatus.QUEUED
    assert queue.get(job.job_id).status == JobStatus.QUEUED
    assert queue.stats()["pending"] == 1

    queue.start()
    release.set()
    queue.join()
    queue.shutdown(timeout=5)


def test_job_status_values():
    assert {s.value for s in JobStatus} == {"queued", "running", "succeeded", "failed"}


def test_successful_job_succeeds(make_queue):
    queue = make_queue(_result, workers=2)
    job = queue.enqueue("https://example.com/", "docs")
    queue.join()

    finished = queue.get(job.job_id)
    assert finished.status == JobStatus.SUCCEEDED
    assert finished.result.chunks_indexed == 3
    assert finished.started_at is not None and finished.finished_at is not None
    assert finished.to_dict()["result"]["pagesProcessed"] == 1
    assert finished.to_dict()["status"] == "succeeded"


def test_partial_failure_marks_job_failed_with_result(make_queue):
    queue = make_queue(
        lambda url, app: _result(url, app, IngestionStatus.PARTIAL_FAILURE, failed=1),
        workers=1,
    )
    job = queue.enqueue("https://example.com/", "docs")
    queue.join()

    finished = queue.get(job.job_id)
    assert finished.status == JobStatus.FAILED
    assert finished.result.chunks_failed == 1
    assert "failed" in finished.error


def test_runner_exception_marks_job_failed(make_queue):
    def runner(url, app_name):
        raise RuntimeError("qdrant unreachable")

    queue = make_queue(runner, workers=1)
    job = queue.enqueue("https://example.com/", "docs")
    queue.join()

    finished = queue.get(job.job_id)
    assert finished.status == JobStatus.FAILED
    assert finished.result is None
    assert finished.error == "RuntimeError: qdrant unreachable"


def test_worker_sets_job_id_as_request_id(make_queue):
    seen = []

    def runner(url, app_name):
        seen.append(request_id_ctx.get())
        return _result(url, app_name)

    queue = make_queue(runner, workers=1)
    job = queue.enqueue("https://example.com/", "docs")
    queue.join()

    assert seen == [job.job_id]


def test_history_is_bounded(make_queue):
    queue = make_queue(_result, workers=1, keep_succeeded=2, keep_failed=2)
    jobs = [queue.enqueue(f"https://example.com/{i}", "docs") for i in range(5)]
    queue.join()

    assert queue.get(jobs[0].job_id) is None, "Oldest succeeded jobs should be evicted"
    assert queue.get(jobs[2].job_id) is None
    assert queue.get(jobs[3].job_id).status == JobStatus.SUCCEEDED
    assert queue.get(jobs[4].job_id).status == JobStatus.SUCCEEDED
    assert queue.stats()["succeeded"] == 2


def test_unknown_job_is_none(make_queue):
    queue = make_queue(_result, workers=1)
    assert queue.get("missing") is None


def test_shutdown_drains_queued_jobs():
    done = []

    def runner(url, app_name):
        done.append(url)
        return _result(url, app_name)

    queue = JobQueue(runner, workers=1)
    queue.start()
    for i in range(3):
        queue.enqueue(f"https://example.com/{i}", "docs")
    queue.shutdown(timeout=5)

    assert len(done) == 3
    assert not queue.running
