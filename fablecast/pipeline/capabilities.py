"""
Interfaces the pipeline depends on.

The controller receives concrete implementations explicitly; production
wiring lives in ``fablecast.pipeline.factory`` and tests pass in-memory fakes.
"""

from typing import Any, Dict, Optional, Protocol

from .models import Job, LengthClass


class StoryTextGenerator(Protocol):
    async def generate_title(self, protagonist: str, topic: str) -> str:
        ...

    async def generate_plan(
        self,
        protagonist: str,
        topic: str,
        length_class: LengthClass,
        section_count: int,
    ) -> Any:
        """Raw plan response: a parsed object, a list, or unparsed text."""
        ...

    async def generate_section_text(
        self,
        protagonist: str,
        topic: str,
        brief: str,
        index: int,
        total: int,
        prior_text: str,
    ) -> str:
        ...


class ImageGenerator(Protocol):
    async def generate_image(
        self,
        protagonist: str,
        scene: str,
        reference_image: Optional[str] = None,
        previous_image: Optional[bytes] = None,
    ) -> bytes:
        ...


class SpeechSynthesizer(Protocol):
    async def synthesize_speech(self, text: str, voice_id: str) -> bytes:
        ...


class AssetStore(Protocol):
    async def store_blob(self, data: bytes, path: str, content_type: str) -> str:
        """Upload bytes and return a durable URL."""
        ...


class JobStore(Protocol):
    async def read_job(self, job_id: str) -> Optional[Job]:
        ...

    async def write_job(self, job_id: str, fields: Dict[str, Any]) -> None:
        """Partial update; implementations bump ``updated_at`` on every call."""
        ...


class VoiceResolver(Protocol):
    async def get_voice_preference(self, owner_id: str) -> Optional[str]:
        ...
