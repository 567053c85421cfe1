"""
Fablecast story pipeline.

Turns one queued story job into a titled, multi-section story with an
illustration and narration per section, checkpointing every stage.
"""

from .controller import PipelineResult, StoryPipeline
from .errors import (
    AssetStoreError,
    ConsistencyError,
    GenerationError,
    JobStoreError,
    MediaFanOutError,
    PipelineError,
    PlanParseError,
    StageFailure,
)
from .models import DEFAULT_TOPIC, Job, LengthClass, Section
from .plan_stage import PlanStage, StoryPlan, parse_plan_response
from .progress import JobProgress
from .section_stage import SectionOutcome, SectionStage
from .status import JobStatus, Stage

__all__ = [
    "StoryPipeline",
    "PipelineResult",
    "PlanStage",
    "StoryPlan",
    "parse_plan_response",
    "SectionStage",
    "SectionOutcome",
    "JobProgress",
    "JobStatus",
    "Stage",
    "Job",
    "Section",
    "LengthClass",
    "DEFAULT_TOPIC",
    "PipelineError",
    "StageFailure",
    "PlanParseError",
    "ConsistencyError",
    "MediaFanOutError",
    "GenerationError",
    "AssetStoreError",
    "JobStoreError",
]
