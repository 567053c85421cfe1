"""
Pipeline controller: drives one story job from "queued" to "complete".

Every stage transition is committed to the job store before that stage's
external calls begin, so a crashed or timed-out run leaves the job at the
last stage it actually started.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import List, Optional

from fablecast.utils.logging import pipeline_logger as logger

from .capabilities import JobStore, VoiceResolver
from .errors import PipelineError
from .models import Job
from .plan_stage import PlanStage
from .progress import JobProgress
from .section_stage import SectionStage
from .status import JobStatus


@dataclass
class PipelineResult:
    """Summary of one controller invocation."""

    job_id: str
    status: Optional[JobStatus]
    elapsed_seconds: float = 0.0
    error_message: Optional[str] = None
    skipped: bool = False
    timed_out: bool = False
    history: List[JobStatus] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status is not None and self.status == JobStatus.complete()

    def to_dict(self):
        return {
            "job_id": self.job_id,
            "status": str(self.status) if self.status else None,
            "elapsed_seconds": round(self.elapsed_seconds, 2),
            "error_message": self.error_message,
            "skipped": self.skipped,
            "timed_out": self.timed_out,
        }


class StoryPipeline:
    """
    Runs the plan stage and every section stage for a job.

    Collaborators are passed in explicitly; see ``fablecast.pipeline.factory``
    for the production wiring.
    """

    def __init__(
        self,
        job_store: JobStore,
        plan_stage: PlanStage,
        section_stage: SectionStage,
        voice_resolver: Optional[VoiceResolver] = None,
        default_voice_id: str = "ballad",
        timeout_seconds: float = 540,
        image_chain_enabled: bool = True,
    ):
        self.job_store = job_store
        self.plan_stage = plan_stage
        self.section_stage = section_stage
        self.voice_resolver = voice_resolver
        self.default_voice_id = default_voice_id
        self.timeout_seconds = timeout_seconds
        self.image_chain_enabled = image_chain_enabled

    async def run(self, job_id: str) -> PipelineResult:
        """Process a job if it is still queued; otherwise do nothing."""
        started = time.monotonic()

        try:
            job = await self.job_store.read_job(job_id)
        except Exception as exc:
            # Nothing was written; the job stays "queued" until the sweeper re-drives it.
            logger.error("Could not read job", job_id=job_id, error=str(exc), exc_info=True)
            raise
        if job is None:
            logger.warning("Job not found, nothing to do", job_id=job_id)
            return PipelineResult(job_id=job_id, status=None, skipped=True)
        if not job.status.is_queued:
            logger.info("Job is not queued, skipping", job_id=job_id, status=str(job.status))
            return PipelineResult(job_id=job_id, status=job.status, skipped=True)

        progress = JobProgress(self.job_store, job)
        result = PipelineResult(job_id=job_id, status=job.status)

        try:
            await asyncio.wait_for(self._execute(job, progress), timeout=self.timeout_seconds)
            result.status = progress.current
        except asyncio.TimeoutError:
            logger.critical(
                "Pipeline timed out; job left at its last checkpoint",
                job_id=job_id,
                status=str(progress.current),
                timeout_seconds=self.timeout_seconds,
            )
            result.status = progress.current
            result.timed_out = True
            result.error_message = f"timed out after {self.timeout_seconds}s"
        except PipelineError as exc:
            logger.error("Pipeline failed", job_id=job_id, error=exc.error_message)
            result.error_message = exc.error_message
            result.status = await self._record_failure(job_id, exc.error_message)
        except Exception as exc:
            message = f"{progress.current.label()}: unexpected error: {exc}"
            logger.error("Pipeline crashed", job_id=job_id, error=message, exc_info=True)
            result.error_message = message
            result.status = await self._record_failure(job_id, message)

        result.elapsed_seconds = time.monotonic() - started
        result.history = list(progress.history)
        logger.info("Pipeline finished", **result.to_dict())
        return result

    async def _execute(self, job: Job, progress: JobProgress) -> None:
        await progress.checkpoint(JobStatus.planning(), error_message=None)
        await self.plan_stage.run(job, progress)

        voice_id = await self._resolve_voice(job)
        texts: List[str] = []
        previous_image: Optional[bytes] = None

        for index in range(len(job.sections)):
            outcome = await self.section_stage.run(
                job,
                progress,
                index,
                prior_text="\n\n".join(texts),
                voice_id=voice_id,
                previous_image=previous_image if self.image_chain_enabled else None,
            )
            texts.append(outcome.text)
            previous_image = outcome.image_bytes

        if not progress.current.is_section_stage:
            logger.warning(
                "Skipping completion write, job is not in a section stage",
                job_id=job.id,
                status=str(progress.current),
            )
            return
        await progress.checkpoint(JobStatus.complete(), error_message=None)

    async def _resolve_voice(self, job: Job) -> str:
        if job.voice_id:
            return job.voice_id
        if self.voice_resolver is not None:
            try:
                preferred = await self.voice_resolver.get_voice_preference(job.owner_id)
            except Exception as exc:
                logger.warning(
                    "Could not load voice preference, using default",
                    job_id=job.id,
                    error=str(exc),
                )
                preferred = None
            if preferred:
                return preferred
        return self.default_voice_id

    async def _record_failure(self, job_id: str, message: str) -> Optional[JobStatus]:
        error = JobStatus.error()
        try:
            await self.job_store.write_job(job_id, {**error.to_fields(), "error_message": message})
        except Exception as exc:
            logger.critical(
                "Failed to record job error",
                job_id=job_id,
                error=message,
                write_error=str(exc),
            )
            return None
        return error
