"""
Stale job sweeper.

A worker that crashes or hits the RQ timeout leaves its job in a
mid-pipeline status forever, and a lost queue entry leaves it in "queued".
The sweeper periodically finds such jobs and either re-drives them from
scratch or fails them for good.
"""

from typing import Any, Callable, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from fablecast.config import config
from fablecast.utils.logging import job_logger as logger

STALLED_MESSAGE = "stalled: no progress for {minutes} minutes after {retries} retries"
REQUEUE_MESSAGE = "requeued after stalling at {status}"


class StaleJobSweeper:
    """
    Interval job over non-terminal jobs whose ``updated_at`` is too old.

    Jobs under the retry limit are reset to "queued" and re-enqueued;
    the rest are marked "error". Both writes are conditional on the row
    being unchanged since it was listed, so a job that finished or made
    progress in the meantime is skipped.
    """

    def __init__(
        self,
        job_service,
        enqueue: Callable[..., Any],
        stale_minutes: Optional[int] = None,
        max_retries: Optional[int] = None,
        interval_seconds: Optional[int] = None,
    ):
        self.job_service = job_service
        self.enqueue = enqueue
        self.stale_minutes = stale_minutes or config.STALE_JOB_MINUTES
        self.max_retries = config.STALE_JOB_MAX_RETRIES if max_retries is None else max_retries
        self.interval_seconds = interval_seconds or config.SWEEP_INTERVAL_SECONDS

        self.scheduler = AsyncIOScheduler()
        self._is_sweeping = False
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self):
        """Start the interval job. Must be called with an event loop running."""
        self.scheduler.add_job(
            self.sweep,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id="stale_job_sweep",
            name="Re-drive or fail stalled story jobs",
            replace_existing=True,
            max_instances=1
        )
        self.scheduler.start()
        self._running = True
        logger.info(
            "Stale job sweeper started",
            interval=self.interval_seconds,
            stale_minutes=self.stale_minutes,
            max_retries=self.max_retries,
        )

    def stop(self):
        self._running = False
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("Stale job sweeper stopped")

    async def sweep(self) -> Dict[str, int]:
        """One pass. Returns counts of requeued, failed and skipped jobs."""
        counts = {"requeued": 0, "failed": 0, "skipped": 0, "errors": 0}
        if self._is_sweeping:
            return counts
        self._is_sweeping = True

        try:
            stale_jobs = await self.job_service.list_stale_jobs(self.stale_minutes)
            for job in stale_jobs:
                try:
                    if job.retry_count < self.max_retries:
                        outcome = "requeued" if await self._requeue(job) else "skipped"
                    elif await self.job_service.fail_stalled_job(
                        job,
                        STALLED_MESSAGE.format(minutes=self.stale_minutes, retries=job.retry_count),
                    ):
                        outcome = "failed"
                        logger.warning("Stalled job marked as error", job_id=job.id, status=str(job.status))
                    else:
                        outcome = "skipped"
                    counts[outcome] += 1
                except Exception as e:
                    counts["errors"] += 1
                    logger.error("Failed to sweep job", job_id=job.id, error=str(e), exc_info=True)
        finally:
            self._is_sweeping = False

        if any(counts.values()):
            logger.info("Stale job sweep finished", **counts)
        return counts

    async def _requeue(self, job) -> bool:
        if not await self.job_service.requeue_job(job, REQUEUE_MESSAGE.format(status=job.status)):
            return False
        attempt = job.retry_count + 1
        try:
            self.enqueue(job.id, attempt=attempt)
        except Exception as e:
            await self.job_service.mark_error(job.id, f"stalled: could not re-enqueue: {e}")
            raise
        logger.info("Stalled job requeued", job_id=job.id, attempt=attempt, was=str(job.status))
        return True
