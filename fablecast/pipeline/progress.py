"""Durable checkpoint tracking for one pipeline run."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fablecast.utils.logging import pipeline_logger as logger

from .capabilities import JobStore
from .errors import ConsistencyError, StageFailure
from .models import Job, Section, clean_optional
from .status import JobStatus


class JobProgress:
    """
    Writes a job's status checkpoints and section updates.

    All pipeline writes for a run go through one instance, which refuses any
    status that does not strictly follow the last one it committed.

    The sections array is updated by read-modify-write of the whole list.
    That is safe only because each job has exactly one writer at a time: the
    run that moved it out of "queued".
    """

    def __init__(self, job_store: JobStore, job: Job):
        self._store = job_store
        self.job_id = job.id
        self.current: JobStatus = job.status
        self.history: List[JobStatus] = [job.status]

    async def checkpoint(self, status: JobStatus, **fields: Any) -> None:
        """Commit ``status`` (plus any extra fields) before the stage's work starts."""
        if not self.current.precedes(status):
            raise ConsistencyError(
                status,
                f"status would move backwards from {self.current} to {status}",
            )
        update: Dict[str, Any] = {**fields, **status.to_fields()}
        try:
            await self._store.write_job(self.job_id, update)
        except Exception as exc:
            raise StageFailure(status, f"failed to record progress: {exc}") from exc
        self.current = status
        self.history.append(status)
        logger.debug("Checkpoint committed", job_id=self.job_id, status=str(status))

    async def update_section(
        self,
        index: int,
        *,
        next_status: Optional[JobStatus] = None,
        **values: Optional[str],
    ) -> List[Section]:
        """
        Re-read the job, assign ``values`` onto sections[index] and write the array back.

        Each value is trimmed; anything that is not a non-empty string is stored as null.
        When ``next_status`` is given it is committed in the same write.
        """
        active = next_status or self.current
        try:
            job = await self._store.read_job(self.job_id)
        except Exception as exc:
            raise StageFailure(active, f"failed to re-read job: {exc}") from exc
        if job is None:
            raise ConsistencyError(active, "job document disappeared")
        if index < 0 or index >= len(job.sections):
            raise ConsistencyError(
                active,
                f"section {index} is out of range for {len(job.sections)} sections",
            )

        section = job.sections[index]
        if section.index != index:
            raise ConsistencyError(active, f"section at position {index} has index {section.index}")
        for name, value in values.items():
            setattr(section, name, clean_optional(value))

        fields: Dict[str, Any] = {"sections": [s.to_dict() for s in job.sections]}
        if next_status is not None:
            if not self.current.precedes(next_status):
                raise ConsistencyError(
                    next_status,
                    f"status would move backwards from {self.current} to {next_status}",
                )
            fields.update(next_status.to_fields())

        try:
            await self._store.write_job(self.job_id, fields)
        except Exception as exc:
            raise StageFailure(active, f"failed to save section {index}: {exc}") from exc

        if next_status is not None:
            self.current = next_status
            self.history.append(next_status)
        return job.sections
