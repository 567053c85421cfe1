"""
Section asset stage: text, then image and audio, then one consolidated write.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from typing import List, Optional

from fablecast.utils.logging import media_logger, pipeline_logger as logger

from .capabilities import AssetStore, ImageGenerator, SpeechSynthesizer, StoryTextGenerator
from .errors import MediaFanOutError, PipelineError, StageFailure
from .models import Job
from .progress import JobProgress
from .status import JobStatus

IMAGE_CONTENT_TYPE = "image/png"
AUDIO_CONTENT_TYPE = "audio/mpeg"

_SECTION_LABEL = re.compile(r"^\s*(Scene|Part|Chapter)\s+\d+[:.]\s*", re.IGNORECASE)


def image_path(job_id: str, index: int) -> str:
    return f"stories/{job_id}/images/section_{index}.png"


def audio_path(job_id: str, index: int) -> str:
    return f"stories/{job_id}/audio/section_{index}.mp3"


def strip_section_label(text: str) -> str:
    """Drop a leading "Scene 3:" / "Part 2." / "Chapter 1:" label."""
    return _SECTION_LABEL.sub("", text, count=1).strip()


@dataclass
class SectionOutcome:
    index: int
    text: str
    image_url: str
    audio_url: str
    image_bytes: bytes


class SectionStage:
    """
    Produces one section's text, illustration and narration.

    With ``concurrent_media`` the image and audio branches run at the same
    time after the text is committed; otherwise image runs before audio.
    Either way the committed status sequence is text_i, image_i, audio_i.
    A failure in either branch halts the run.
    """

    def __init__(
        self,
        text_generator: StoryTextGenerator,
        image_generator: ImageGenerator,
        speech_synthesizer: SpeechSynthesizer,
        asset_store: AssetStore,
        concurrent_media: bool = True,
    ):
        self.text_generator = text_generator
        self.image_generator = image_generator
        self.speech_synthesizer = speech_synthesizer
        self.asset_store = asset_store
        self.concurrent_media = concurrent_media

    async def run(
        self,
        job: Job,
        progress: JobProgress,
        index: int,
        *,
        prior_text: str,
        voice_id: str,
        previous_image: Optional[bytes] = None,
    ) -> SectionOutcome:
        total = len(job.sections)
        brief = job.sections[index].plan_brief

        text_status = JobStatus.section_text(index)
        if progress.current != text_status:
            await progress.checkpoint(text_status)

        text = await self._generate_text(job, index, total, brief, prior_text)

        # Text lands together with the image checkpoint so a media failure keeps it.
        await progress.update_section(
            index, next_status=JobStatus.section_image(index), text=text
        )

        if self.concurrent_media:
            image_result, audio_url = await self._run_media_concurrently(
                job, progress, index, brief, text, voice_id, previous_image
            )
        else:
            image_result = await self._image_branch(job, index, brief, text, previous_image)
            audio_url = await self._audio_branch(job, progress, index, text, voice_id)
        image_url, image_bytes = image_result

        is_last = index == total - 1
        await progress.update_section(
            index,
            next_status=None if is_last else JobStatus.section_text(index + 1),
            image_url=image_url,
            audio_url=audio_url,
        )
        logger.info("Section complete", job_id=job.id, section=index, total=total)

        return SectionOutcome(
            index=index,
            text=text,
            image_url=image_url,
            audio_url=audio_url,
            image_bytes=image_bytes,
        )

    # =========================================================================
    # Text
    # =========================================================================

    async def _generate_text(
        self, job: Job, index: int, total: int, brief: str, prior_text: str
    ) -> str:
        status = JobStatus.section_text(index)
        try:
            raw = await self.text_generator.generate_section_text(
                job.protagonist, job.effective_topic, brief, index, total, prior_text
            )
        except Exception as exc:
            raise StageFailure(status, f"text generation failed: {exc}") from exc

        text = strip_section_label(raw) if isinstance(raw, str) else ""
        if not text:
            raise StageFailure(status, "generated text was empty")
        return text

    # =========================================================================
    # Media branches
    # =========================================================================

    async def _run_media_concurrently(
        self,
        job: Job,
        progress: JobProgress,
        index: int,
        brief: str,
        text: str,
        voice_id: str,
        previous_image: Optional[bytes],
    ):
        results = await asyncio.gather(
            self._image_branch(job, index, brief, text, previous_image),
            self._audio_branch(job, progress, index, text, voice_id),
            return_exceptions=True,
        )

        failures: List[PipelineError] = []
        branch_statuses = (JobStatus.section_image(index), JobStatus.section_audio(index))
        for status, result in zip(branch_statuses, results):
            if isinstance(result, PipelineError):
                failures.append(result)
            elif isinstance(result, Exception):
                failures.append(StageFailure(status, f"unexpected error: {result}"))
            elif isinstance(result, BaseException):
                raise result

        if failures:
            media_logger.error(
                "Section media failed",
                job_id=job.id,
                section=index,
                failures=[f.error_message for f in failures],
            )
            raise MediaFanOutError(JobStatus.section_image(index), failures)
        return results[0], results[1]

    async def _image_branch(
        self,
        job: Job,
        index: int,
        brief: str,
        text: str,
        previous_image: Optional[bytes],
    ):
        status = JobStatus.section_image(index)
        scene = f"{brief}\n\n{text}"
        try:
            image_bytes = await self.image_generator.generate_image(
                job.protagonist,
                scene,
                reference_image=job.reference_image_url,
                previous_image=previous_image,
            )
        except Exception as exc:
            raise StageFailure(status, f"image generation failed: {exc}") from exc
        if not image_bytes:
            raise StageFailure(status, "image generation returned no data")

        url = await self._store(status, image_bytes, image_path(job.id, index), IMAGE_CONTENT_TYPE)
        media_logger.info("Image stored", job_id=job.id, section=index, size=len(image_bytes))
        return url, image_bytes

    async def _audio_branch(
        self,
        job: Job,
        progress: JobProgress,
        index: int,
        text: str,
        voice_id: str,
    ) -> str:
        status = JobStatus.section_audio(index)
        await progress.checkpoint(status)

        if not text:
            raise StageFailure(status, "no section text to narrate")
        try:
            audio_bytes = await self.speech_synthesizer.synthesize_speech(text, voice_id)
        except Exception as exc:
            raise StageFailure(status, f"speech synthesis failed: {exc}") from exc
        if not audio_bytes:
            raise StageFailure(status, "speech synthesis returned no data")

        url = await self._store(status, audio_bytes, audio_path(job.id, index), AUDIO_CONTENT_TYPE)
        media_logger.info("Audio stored", job_id=job.id, section=index, size=len(audio_bytes))
        return url

    async def _store(self, status: JobStatus, data: bytes, path: str, content_type: str) -> str:
        try:
            url = await self.asset_store.store_blob(data, path, content_type)
        except Exception as exc:
            raise StageFailure(status, f"upload to {path} failed: {exc}") from exc
        if not isinstance(url, str) or not url.strip():
            raise StageFailure(status, f"upload to {path} returned no URL")
        return url.strip()
