"""
Exceptions raised inside the story pipeline.

Every pipeline failure carries the status that was active when it happened,
so the controller can write a stage-qualified error message.
"""

from typing import Optional, Sequence

from .status import JobStatus


class GenerationError(Exception):
    """Raised by a generative provider adapter when a call fails or returns nothing usable."""
    pass


class AssetStoreError(Exception):
    """Raised when an asset upload fails."""
    pass


class JobStoreError(Exception):
    """Raised when the job store cannot read or write a job document."""
    pass


class PipelineError(Exception):
    """Base class for failures that halt a pipeline run."""

    def __init__(self, status: Optional[JobStatus], detail: str):
        self.status = status
        self.detail = detail
        super().__init__(self.error_message)

    @property
    def error_message(self) -> str:
        if self.status is None:
            return self.detail
        return f"{self.status.label()}: {self.detail}"


class StageFailure(PipelineError):
    """A stage's external call or persistence write failed."""
    pass


class PlanParseError(StageFailure):
    """The plan response could not be turned into a list of briefs."""
    pass


class ConsistencyError(PipelineError):
    """The job document does not have the shape the pipeline created."""

    @property
    def error_message(self) -> str:
        return f"{self.status.label()}: consistency violation: {self.detail}"


class MediaFanOutError(StageFailure):
    """One or both concurrent media branches of a section failed."""

    def __init__(self, status: JobStatus, failures: Sequence[PipelineError]):
        self.failures = list(failures)
        detail = "; ".join(f.detail for f in self.failures)
        super().__init__(status, f"media generation failed ({detail})")

    @property
    def error_message(self) -> str:
        if not getattr(self, "failures", None):
            return super().error_message
        return "; ".join(f.error_message for f in self.failures)
