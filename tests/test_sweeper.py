"""Tests for the stale job sweeper."""

from unittest.mock import MagicMock

import pytest

from fablecast.jobs.sweeper import StaleJobSweeper
from fablecast.pipeline.models import Job, LengthClass
from fablecast.pipeline.status import JobStatus


def stale_job(job_id, retry_count=0, status=JobStatus.section_image(1)):
    return Job(
        id=job_id,
        owner_id="owner-1",
        protagonist="Milo",
        length_class=LengthClass.SHORT,
        status=status,
        retry_count=retry_count,
        updated_at="2026-01-01T10:00:00+00:00",
    )


class FakeJobService:
    """Listed jobs plus the ids whose rows changed after listing."""

    def __init__(self, jobs, moved_on=()):
        self.jobs = jobs
        self.moved_on = set(moved_on)
        self.requeued = []
        self.failed = []
        self.errors = []

    async def list_stale_jobs(self, stale_minutes, limit=50):
        return self.jobs

    async def requeue_job(self, job, reason):
        if job.id in self.moved_on:
            return False
        self.requeued.append((job.id, reason))
        return True

    async def fail_stalled_job(self, job, message):
        if job.id in self.moved_on:
            return False
        self.failed.append((job.id, message))
        return True

    async def mark_error(self, job_id, message):
        self.errors.append((job_id, message))


def sweeper(service, enqueue, max_retries=2):
    return StaleJobSweeper(service, enqueue, stale_minutes=15, max_retries=max_retries)


@pytest.mark.asyncio
async def test_requeues_jobs_under_the_retry_limit():
    service = FakeJobService([stale_job("a", retry_count=0), stale_job("b", retry_count=1)])
    enqueue = MagicMock()

    counts = await sweeper(service, enqueue).sweep()

    assert counts == {"requeued": 2, "failed": 0, "skipped": 0, "errors": 0}
    assert [r[0] for r in service.requeued] == ["a", "b"]
    assert "section_image[1]" in service.requeued[0][1]
    enqueue.assert_any_call("a", attempt=1)
    enqueue.assert_any_call("b", attempt=2)


@pytest.mark.asyncio
async def test_marks_exhausted_jobs_as_error():
    service = FakeJobService([stale_job("a", retry_count=2)])
    enqueue = MagicMock()

    counts = await sweeper(service, enqueue).sweep()

    assert counts["failed"] == 1
    assert service.failed[0][0] == "a"
    assert service.failed[0][1].startswith("stalled")
    enqueue.assert_not_called()


@pytest.mark.asyncio
async def test_job_that_changed_after_listing_is_left_alone():
    service = FakeJobService(
        [stale_job("done", retry_count=0), stale_job("exhausted", retry_count=2)],
        moved_on={"done", "exhausted"},
    )
    enqueue = MagicMock()

    counts = await sweeper(service, enqueue).sweep()

    assert counts == {"requeued": 0, "failed": 0, "skipped": 2, "errors": 0}
    enqueue.assert_not_called()
    assert service.failed == [] and service.errors == []


@pytest.mark.asyncio
async def test_stuck_queued_job_is_reenqueued_with_next_attempt():
    service = FakeJobService([stale_job("q", retry_count=0, status=JobStatus.queued())])
    enqueue = MagicMock()

    counts = await sweeper(service, enqueue).sweep()

    assert counts["requeued"] == 1
    enqueue.assert_called_once_with("q", attempt=1)
    assert "queued" in service.requeued[0][1]


@pytest.mark.asyncio
async def test_enqueue_failure_marks_job_error_and_continues():
    service = FakeJobService([stale_job("a"), stale_job("b")])
    enqueue = MagicMock(side_effect=[ConnectionError("redis down"), None])

    counts = await sweeper(service, enqueue).sweep()

    assert counts == {"requeued": 1, "failed": 0, "skipped": 0, "errors": 1}
    assert service.errors == [("a", "stalled: could not re-enqueue: redis down")]


@pytest.mark.asyncio
async def test_zero_retries_fails_immediately():
    service = FakeJobService([stale_job("a", retry_count=0)])

    counts = await sweeper(service, MagicMock(), max_retries=0).sweep()

    assert counts["failed"] == 1
    assert service.requeued == []
