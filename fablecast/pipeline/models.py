"""
Job and section records as read from and written to the job store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .status import JobStatus


class LengthClass(str, Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"

    @property
    def section_count(self) -> int:
        return SECTION_COUNTS[self]


SECTION_COUNTS = {
    LengthClass.SHORT: 3,
    LengthClass.MEDIUM: 5,
    LengthClass.LONG: 7,
}

DEFAULT_TOPIC = "adventure"


def clean_optional(value: Any) -> Optional[str]:
    """Trimmed string, or None for anything that is not a non-empty string."""
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return None


@dataclass
class Section:
    """One illustrated, narrated part of a story."""

    index: int
    plan_brief: str
    text: Optional[str] = None
    image_url: Optional[str] = None
    audio_url: Optional[str] = None

    @classmethod
    def placeholder(cls, index: int, plan_brief: str) -> "Section":
        return cls(index=index, plan_brief=plan_brief)

    @property
    def is_complete(self) -> bool:
        return bool(self.text and self.image_url and self.audio_url)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "plan_brief": self.plan_brief,
            "text": self.text,
            "image_url": self.image_url,
            "audio_url": self.audio_url,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Section":
        try:
            index = int(payload["index"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"Invalid section entry: {payload}") from exc
        return cls(
            index=index,
            plan_brief=str(payload.get("plan_brief") or ""),
            text=clean_optional(payload.get("text")),
            image_url=clean_optional(payload.get("image_url")),
            audio_url=clean_optional(payload.get("audio_url")),
        )


@dataclass
class Job:
    """A story creation request and its mutable progress record."""

    id: str
    owner_id: str
    protagonist: str
    length_class: LengthClass
    status: JobStatus
    topic: Optional[str] = None
    reference_image_url: Optional[str] = None
    voice_id: Optional[str] = None
    title: Optional[str] = None
    error_message: Optional[str] = None
    sections: List[Section] = field(default_factory=list)
    retry_count: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def effective_topic(self) -> str:
        return self.topic or DEFAULT_TOPIC

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Job":
        """Build a Job from a ``story_jobs`` row."""
        return cls(
            id=str(row["id"]),
            owner_id=str(row["owner_id"]),
            protagonist=str(row.get("protagonist") or ""),
            length_class=LengthClass(row["length_class"]),
            status=JobStatus.from_fields(row["status"], row.get("status_section")),
            topic=clean_optional(row.get("topic")),
            reference_image_url=clean_optional(row.get("reference_image_url")),
            voice_id=clean_optional(row.get("voice_id")),
            title=clean_optional(row.get("title")),
            error_message=row.get("error_message"),
            sections=[Section.from_dict(s) for s in (row.get("sections") or [])],
            retry_count=int(row.get("retry_count") or 0),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    def to_public_dict(self) -> Dict[str, Any]:
        """Shape returned by the HTTP API."""
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "topic": self.topic,
            "protagonist": self.protagonist,
            "lengthClass": self.length_class.value,
            "status": self.status.to_dict(),
            "errorMessage": self.error_message,
            "title": self.title,
            "sections": [
                {
                    "index": s.index,
                    "planBrief": s.plan_brief,
                    "text": s.text,
                    "imageUrl": s.image_url,
                    "audioUrl": s.audio_url,
                }
                for s in self.sections
            ],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
