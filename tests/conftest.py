"""
Shared pytest fixtures.

In-memory stand-ins for the job store, generators and asset store, plus a
factory that wires them into a StoryPipeline.
"""

import asyncio
import copy
from itertools import count
from typing import Any, Callable, Dict, List, Optional

import pytest

from fablecast.pipeline.controller import StoryPipeline
from fablecast.pipeline.models import Job, LengthClass
from fablecast.pipeline.plan_stage import PlanStage
from fablecast.pipeline.section_stage import SectionStage
from fablecast.pipeline.status import JobStatus


class InMemoryJobStore:
    """Dict-backed job store that records every write."""

    def __init__(self):
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.writes: List[Dict[str, Any]] = []
        self.fail_when: Optional[Callable[[Dict[str, Any]], bool]] = None
        self._clock = count(1)

    def add_job(
        self,
        job_id: str = "job-1",
        length_class: LengthClass = LengthClass.SHORT,
        topic: Optional[str] = "pirates",
        status: JobStatus = JobStatus.queued(),
        **extra: Any,
    ) -> str:
        self.rows[job_id] = {
            "id": job_id,
            "owner_id": "owner-1",
            "protagonist": "Milo, a curious fox in a red scarf",
            "length_class": length_class.value,
            "topic": topic,
            "title": None,
            "error_message": None,
            "sections": [],
            "retry_count": 0,
            "created_at": "t0",
            "updated_at": "t0",
            **status.to_fields(),
            **extra,
        }
        return job_id

    def job(self, job_id: str = "job-1") -> Job:
        return Job.from_row(copy.deepcopy(self.rows[job_id]))

    def statuses(self) -> List[JobStatus]:
        return [
            JobStatus.from_fields(w["status"], w.get("status_section"))
            for w in self.writes
            if "status" in w
        ]

    async def read_job(self, job_id: str) -> Optional[Job]:
        row = self.rows.get(job_id)
        return Job.from_row(copy.deepcopy(row)) if row else None

    async def write_job(self, job_id: str, fields: Dict[str, Any]) -> None:
        if self.fail_when is not None and self.fail_when(fields):
            raise RuntimeError("database unavailable")
        update = copy.deepcopy(fields)
        self.writes.append(update)
        self.rows[job_id].update(update)
        self.rows[job_id]["updated_at"] = f"t{next(self._clock)}"


class FakeTextGenerator:
    def __init__(self, title: Any = "Milo and the Pirate Map", plan: Any = None, texts: Optional[Dict[int, Any]] = None):
        self.title = title
        self.plan = plan
        self.texts = texts or {}
        self.section_calls: List[Dict[str, Any]] = []

    async def generate_title(self, protagonist, topic):
        if isinstance(self.title, Exception):
            raise self.title
        return self.title

    async def generate_plan(self, protagonist, topic, length_class, section_count):
        if self.plan is not None:
            return self.plan
        return {"plan": [f"Scene {i + 1} brief" for i in range(section_count)]}

    async def generate_section_text(self, protagonist, topic, brief, index, total, prior_text):
        self.section_calls.append({"index": index, "brief": brief, "prior_text": prior_text})
        value = self.texts.get(index, f"Milo takes step {index + 1} of {total}.")
        if isinstance(value, Exception):
            raise value
        return value


class FakeImageGenerator:
    def __init__(self, fail_on_call: Optional[int] = None):
        self.fail_on_call = fail_on_call
        self.calls: List[Dict[str, Any]] = []

    async def generate_image(self, protagonist, scene, reference_image=None, previous_image=None):
        call = len(self.calls)
        self.calls.append({"scene": scene, "reference_image": reference_image, "previous_image": previous_image})
        if self.fail_on_call == call:
            raise RuntimeError("image model unavailable")
        return f"png-{call}".encode()


class FakeSpeechSynthesizer:
    def __init__(self, fail_on_call: Optional[int] = None):
        self.fail_on_call = fail_on_call
        self.calls: List[Dict[str, Any]] = []

    async def synthesize_speech(self, text, voice_id):
        call = len(self.calls)
        self.calls.append({"text": text, "voice_id": voice_id})
        if self.fail_on_call == call:
            raise RuntimeError("tts quota exceeded")
        return f"mp3-{call}".encode()


class FakeAssetStore:
    def __init__(self):
        self.blobs: Dict[str, bytes] = {}
        self.content_types: Dict[str, str] = {}

    async def store_blob(self, data, path, content_type):
        self.blobs[path] = data
        self.content_types[path] = content_type
        return f"https://assets.test/{path}"


class FakeVoiceResolver:
    def __init__(self, voice: Optional[str] = None):
        self.voice = voice

    async def get_voice_preference(self, owner_id):
        return self.voice


@pytest.fixture
def job_store():
    return InMemoryJobStore()


@pytest.fixture
def text_generator():
    return FakeTextGenerator()


@pytest.fixture
def image_generator():
    return FakeImageGenerator()


@pytest.fixture
def speech_synthesizer():
    return FakeSpeechSynthesizer()


@pytest.fixture
def asset_store():
    return FakeAssetStore()


@pytest.fixture
def make_pipeline(job_store, text_generator, image_generator, speech_synthesizer, asset_store):
    """Build a StoryPipeline over the in-memory fakes."""

    def _make(concurrent_media: bool = True, **overrides) -> StoryPipeline:
        section_stage = SectionStage(
            text_generator=overrides.pop("text_generator", text_generator),
            image_generator=overrides.pop("image_generator", image_generator),
            speech_synthesizer=overrides.pop("speech_synthesizer", speech_synthesizer),
            asset_store=overrides.pop("asset_store", asset_store),
            concurrent_media=concurrent_media,
        )
        plan_stage = overrides.pop("plan_stage", None)
        options = {
            "voice_resolver": FakeVoiceResolver(),
            "default_voice_id": "ballad",
            "timeout_seconds": 5,
            "image_chain_enabled": True,
        }
        options.update(overrides)
        return StoryPipeline(
            job_store=job_store,
            plan_stage=plan_stage or PlanStage(section_stage.text_generator),
            section_stage=section_stage,
            **options,
        )

    return _make


class SlowTextGenerator(FakeTextGenerator):
    async def generate_section_text(self, *args, **kwargs):
        await asyncio.sleep(10)
        return "never"
