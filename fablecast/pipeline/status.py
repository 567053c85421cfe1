"""
Job status as a tagged variant.

A status is a stage plus, for the per-section stages, the section index.
It is persisted as two columns (``status`` and ``status_section``) so the
section index is never recovered by parsing a string like "section_text_3".
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class Stage(str, Enum):
    QUEUED = "queued"
    PLANNING = "planning"
    SECTION_TEXT = "section_text"
    SECTION_IMAGE = "section_image"
    SECTION_AUDIO = "section_audio"
    COMPLETE = "complete"
    ERROR = "error"


SECTION_STAGES = (Stage.SECTION_TEXT, Stage.SECTION_IMAGE, Stage.SECTION_AUDIO)
TERMINAL_STAGES = (Stage.COMPLETE, Stage.ERROR)

# Offset of each sub-step inside a section's block of ranks.
_SECTION_STEP = {
    Stage.SECTION_TEXT: 0,
    Stage.SECTION_IMAGE: 1,
    Stage.SECTION_AUDIO: 2,
}

_STEP_NAMES = {
    Stage.SECTION_TEXT: "text",
    Stage.SECTION_IMAGE: "image",
    Stage.SECTION_AUDIO: "audio",
}


@dataclass(frozen=True)
class JobStatus:
    """Where a job currently is in the pipeline."""

    stage: Stage
    section_index: Optional[int] = None

    def __post_init__(self):
        if self.stage in SECTION_STAGES:
            if self.section_index is None or self.section_index < 0:
                raise ValueError(f"{self.stage.value} requires a non-negative section index")
        elif self.section_index is not None:
            raise ValueError(f"{self.stage.value} does not take a section index")

    # ----- constructors -----

    @classmethod
    def queued(cls) -> "JobStatus":
        return cls(Stage.QUEUED)

    @classmethod
    def planning(cls) -> "JobStatus":
        return cls(Stage.PLANNING)

    @classmethod
    def section_text(cls, index: int) -> "JobStatus":
        return cls(Stage.SECTION_TEXT, index)

    @classmethod
    def section_image(cls, index: int) -> "JobStatus":
        return cls(Stage.SECTION_IMAGE, index)

    @classmethod
    def section_audio(cls, index: int) -> "JobStatus":
        return cls(Stage.SECTION_AUDIO, index)

    @classmethod
    def complete(cls) -> "JobStatus":
        return cls(Stage.COMPLETE)

    @classmethod
    def error(cls) -> "JobStatus":
        return cls(Stage.ERROR)

    # ----- predicates -----

    @property
    def is_queued(self) -> bool:
        return self.stage == Stage.QUEUED

    @property
    def is_section_stage(self) -> bool:
        return self.stage in SECTION_STAGES

    @property
    def is_terminal(self) -> bool:
        return self.stage in TERMINAL_STAGES

    # ----- ordering -----

    def rank(self) -> int:
        """
        Position of this status in a successful run.

        queued < planning < text_0 < image_0 < audio_0 < text_1 < ... < complete.
        Error has no place in the order and raises.
        """
        if self.stage == Stage.QUEUED:
            return 0
        if self.stage == Stage.PLANNING:
            return 1
        if self.stage in SECTION_STAGES:
            return 2 + 3 * self.section_index + _SECTION_STEP[self.stage]
        if self.stage == Stage.COMPLETE:
            # Sorts after any realistic section index.
            return 2**31
        raise ValueError("error status has no rank")

    def precedes(self, other: "JobStatus") -> bool:
        return self.rank() < other.rank()

    # ----- persistence -----

    def to_fields(self) -> Dict[str, Any]:
        """Columns written to the job document."""
        return {"status": self.stage.value, "status_section": self.section_index}

    @classmethod
    def from_fields(cls, status: str, status_section: Optional[int] = None) -> "JobStatus":
        stage = Stage(status)
        if stage in SECTION_STAGES:
            return cls(stage, int(status_section) if status_section is not None else None)
        return cls(stage)

    def label(self) -> str:
        """Human-readable label used in logs and error messages."""
        if self.stage in SECTION_STAGES:
            return f"section {self.section_index} {_STEP_NAMES[self.stage]}"
        if self.stage == Stage.PLANNING:
            return "plan"
        return self.stage.value

    def to_dict(self) -> Dict[str, Any]:
        return {"stage": self.stage.value, "sectionIndex": self.section_index}

    def __str__(self) -> str:
        if self.section_index is None:
            return self.stage.value
        return f"{self.stage.value}[{self.section_index}]"
