"""
Story Job Service

Reads and writes story job documents in the Supabase ``story_jobs`` table.
This is the job store the pipeline controller checkpoints into.
"""

from datetime import datetime, timezone, timedelta
from typing import Optional, Dict, Any, List
from uuid import uuid4

from supabase import Client

from fablecast.pipeline.errors import JobStoreError
from fablecast.pipeline.models import Job, LengthClass
from fablecast.pipeline.status import JobStatus, SECTION_STAGES, Stage
from fablecast.utils.logging import job_logger as logger

from .client import get_supabase_admin_client

TABLE = "story_jobs"

# Stages a run passes through after leaving "queued".
IN_FLIGHT_STAGES = [Stage.PLANNING.value] + [s.value for s in SECTION_STAGES]

# Non-terminal stages the sweeper looks at. A job can sit in "queued" with no
# worker if its queue entry was lost or its run died before the first checkpoint.
SWEEPABLE_STAGES = [Stage.QUEUED.value] + IN_FLIGHT_STAGES


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class StoryJobService:
    """
    Service class for story job documents.

    Every write is a partial update that also bumps ``updated_at``.
    """

    def __init__(self, client: Optional[Client] = None):
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_supabase_admin_client()
        return self._client

    # =========================================================================
    # Job Creation
    # =========================================================================

    async def create_job(
        self,
        owner_id: str,
        protagonist: str,
        length_class: LengthClass,
        topic: Optional[str] = None,
        reference_image_url: Optional[str] = None,
        voice_id: Optional[str] = None,
    ) -> Job:
        """Insert a new job in status "queued"."""
        now = _now()
        row = {
            "id": str(uuid4()),
            "owner_id": owner_id,
            "protagonist": protagonist,
            "length_class": LengthClass(length_class).value,
            "topic": topic,
            "reference_image_url": reference_image_url,
            "voice_id": voice_id,
            "title": None,
            "error_message": None,
            "sections": [],
            "retry_count": 0,
            "created_at": now,
            "updated_at": now,
            **JobStatus.queued().to_fields(),
        }
        try:
            result = self.client.table(TABLE).insert(row).execute()
        except Exception as e:
            raise JobStoreError(f"Failed to create job: {e}") from e

        job = Job.from_row(result.data[0] if result.data else row)
        logger.info("Job created", job_id=job.id, owner_id=owner_id, length=job.length_class.value)
        return job

    # =========================================================================
    # Job Retrieval
    # =========================================================================

    async def read_job(self, job_id: str) -> Optional[Job]:
        """Get a job by id, or None if it does not exist."""
        try:
            result = self.client.table(TABLE).select("*").eq("id", job_id).execute()
        except Exception as e:
            raise JobStoreError(f"Failed to read job {job_id}: {e}") from e
        if not result.data:
            return None
        try:
            return Job.from_row(result.data[0])
        except (KeyError, ValueError) as e:
            raise JobStoreError(f"Job {job_id} has an invalid document: {e}") from e

    async def list_stale_jobs(self, stale_minutes: int, limit: int = 50) -> List[Job]:
        """Non-terminal jobs whose last update is older than ``stale_minutes``."""
        cutoff = (datetime.now(timezone.utc) - timedelta(minutes=stale_minutes)).isoformat()
        try:
            result = (
                self.client.table(TABLE)
                .select("*")
                .in_("status", SWEEPABLE_STAGES)
                .lt("updated_at", cutoff)
                .order("updated_at")
                .limit(limit)
                .execute()
            )
        except Exception as e:
            raise JobStoreError(f"Failed to list stale jobs: {e}") from e
        return [Job.from_row(row) for row in result.data]

    # =========================================================================
    # Job Updates
    # =========================================================================

    async def write_job(self, job_id: str, fields: Dict[str, Any]) -> None:
        """Partial update of a job document; ``updated_at`` is always bumped."""
        update_data = {**fields, "updated_at": _now()}
        try:
            result = (
                self.client.table(TABLE)
                .update(update_data)
                .eq("id", job_id)
                .execute()
            )
        except Exception as e:
            raise JobStoreError(f"Failed to update job {job_id}: {e}") from e
        if not result.data:
            raise JobStoreError(f"Job {job_id} not found for update")

    async def requeue_job(self, job: Job, reason: str) -> bool:
        """
        Reset a stalled job to "queued" so a fresh run can pick it up.

        The reset only applies if the row still has the status and
        ``updated_at`` it was listed with. Returns False when the job has
        moved on since then (finished, failed or progressed).
        """
        return await self._update_if_unchanged(job, {
            **JobStatus.queued().to_fields(),
            "title": None,
            "sections": [],
            "retry_count": job.retry_count + 1,
            "error_message": reason,
        })

    async def fail_stalled_job(self, job: Job, error_message: str) -> bool:
        """Mark a stalled job as error unless it has moved on since it was listed."""
        return await self._update_if_unchanged(job, {
            **JobStatus.error().to_fields(),
            "error_message": error_message,
        })

    async def mark_error(self, job_id: str, error_message: str) -> None:
        await self.write_job(job_id, {
            **JobStatus.error().to_fields(),
            "error_message": error_message,
        })

    async def _update_if_unchanged(self, job: Job, fields: Dict[str, Any]) -> bool:
        query = (
            self.client.table(TABLE)
            .update({**fields, "updated_at": _now()})
            .eq("id", job.id)
            .eq("status", job.status.stage.value)
        )
        if job.updated_at is not None:
            query = query.eq("updated_at", job.updated_at)
        try:
            result = query.execute()
        except Exception as e:
            raise JobStoreError(f"Failed to update job {job.id}: {e}") from e
        if not result.data:
            logger.info("Job changed since it was listed, leaving it alone", job_id=job.id, listed=str(job.status))
            return False
        return True
