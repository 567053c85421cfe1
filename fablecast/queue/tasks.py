"""
RQ task definitions for Fablecast.

These are the functions that run in the worker processes. They are
enqueued by the API when a story is created and by the stale job sweeper.
"""

import asyncio
from typing import Dict, Any

from rq.job import Job as RQJob

from fablecast.config import JOB_TIMEOUT_MARGIN_SECONDS, config
from fablecast.utils.logging import job_logger as logger

from .connection import get_story_queue


# =============================================================================
# STORY GENERATION TASK
# =============================================================================

def generate_story_task(job_id: str) -> Dict[str, Any]:
    """
    RQ task: run the story pipeline for one job.

    The pipeline is a no-op unless the job is still "queued", so a
    duplicate delivery of the same task does nothing.
    """
    # Run async code in sync context (RQ workers are sync)
    return asyncio.run(_generate_story_async(job_id))


async def _generate_story_async(job_id: str) -> Dict[str, Any]:
    from fablecast.pipeline.factory import build_pipeline

    logger.info("RQ Worker: processing story job", job_id=job_id)
    pipeline = build_pipeline()
    result = await pipeline.run(job_id)
    return result.to_dict()


# =============================================================================
# ENQUEUE HELPERS
# =============================================================================

def enqueue_story_job(job_id: str, attempt: int = 0) -> RQJob:
    """
    Enqueue a story generation job to the Redis queue.

    ``attempt`` keeps RQ job ids unique when the sweeper re-drives a job.
    RQ retries are not used; a failed run leaves the job in "error".
    """
    queue = get_story_queue()
    rq_job = queue.enqueue(
        generate_story_task,
        job_id,
        job_id=f"story_{job_id}_{attempt}",
        job_timeout=config.PIPELINE_TIMEOUT_SECONDS + JOB_TIMEOUT_MARGIN_SECONDS,
        result_ttl=86400,  # Keep results for 24 hours
        failure_ttl=604800,  # Keep failed jobs for 7 days
    )
    logger.info("Story job enqueued", job_id=job_id, rq_job_id=rq_job.id, attempt=attempt)
    return rq_job
