"""Tests for the section asset stage."""

import pytest

from fablecast.pipeline.errors import ConsistencyError, MediaFanOutError, StageFailure
from fablecast.pipeline.models import Section
from fablecast.pipeline.progress import JobProgress
from fablecast.pipeline.section_stage import (
    SectionStage,
    audio_path,
    image_path,
    strip_section_label,
)
from fablecast.pipeline.status import JobStatus

from conftest import FakeAssetStore, FakeImageGenerator, FakeSpeechSynthesizer, FakeTextGenerator


def planned_job(job_store, sections=3):
    placeholders = [Section.placeholder(i, f"brief {i}").to_dict() for i in range(sections)]
    job_store.add_job(status=JobStatus.section_text(0), sections=placeholders, title="T")
    return job_store.job()


def make_stage(concurrent=True, text=None, image=None, speech=None, assets=None):
    return SectionStage(
        text_generator=text or FakeTextGenerator(),
        image_generator=image or FakeImageGenerator(),
        speech_synthesizer=speech or FakeSpeechSynthesizer(),
        asset_store=assets or FakeAssetStore(),
        concurrent_media=concurrent,
    )


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Scene 3: Milo jumps.", "Milo jumps."),
        ("Part 2. The boat sinks.", "The boat sinks."),
        ("chapter 1: Once upon a time", "Once upon a time"),
        ("  Milo naps.  ", "Milo naps."),
        ("The scene 3: stays", "The scene 3: stays"),
    ],
)
def test_strip_section_label(raw, expected):
    assert strip_section_label(raw) == expected


def test_asset_paths():
    assert image_path("abc", 2) == "stories/abc/images/section_2.png"
    assert audio_path("abc", 2) == "stories/abc/audio/section_2.mp3"


@pytest.mark.asyncio
@pytest.mark.parametrize("concurrent", [True, False])
async def test_section_writes_all_three_assets(job_store, concurrent):
    job = planned_job(job_store)
    assets = FakeAssetStore()
    stage = make_stage(concurrent=concurrent, assets=assets)
    progress = JobProgress(job_store, job)

    outcome = await stage.run(job, progress, 0, prior_text="", voice_id="ballad")

    section = job_store.job().sections[0]
    assert section.text == "Milo takes step 1 of 3."
    assert section.image_url == "https://assets.test/stories/job-1/images/section_0.png"
    assert section.audio_url == "https://assets.test/stories/job-1/audio/section_0.mp3"
    assert assets.content_types[image_path("job-1", 0)] == "image/png"
    assert assets.content_types[audio_path("job-1", 0)] == "audio/mpeg"
    assert outcome.image_bytes == b"png-0"
    assert job_store.job().status == JobStatus.section_text(1)


@pytest.mark.asyncio
@pytest.mark.parametrize("concurrent", [True, False])
async def test_both_orderings_commit_the_same_statuses(job_store, concurrent):
    job = planned_job(job_store)
    progress = JobProgress(job_store, job)

    await make_stage(concurrent=concurrent).run(job, progress, 0, prior_text="", voice_id="ballad")

    assert job_store.statuses() == [
        JobStatus.section_image(0),
        JobStatus.section_audio(0),
        JobStatus.section_text(1),
    ]


@pytest.mark.asyncio
async def test_last_section_does_not_advance_status(job_store):
    job = planned_job(job_store, sections=1)
    progress = JobProgress(job_store, job)

    await make_stage().run(job, progress, 0, prior_text="", voice_id="ballad")

    assert job_store.job().status == JobStatus.section_audio(0)
    assert job_store.job().sections[0].is_complete


@pytest.mark.asyncio
async def test_label_is_stripped_before_saving(job_store):
    job = planned_job(job_store)
    stage = make_stage(text=FakeTextGenerator(texts={0: "Scene 1: Milo wakes up."}))

    await stage.run(job, JobProgress(job_store, job), 0, prior_text="", voice_id="ballad")

    assert job_store.job().sections[0].text == "Milo wakes up."


@pytest.mark.asyncio
async def test_blank_text_fails_before_any_write(job_store):
    job = planned_job(job_store)
    stage = make_stage(text=FakeTextGenerator(texts={0: "   "}))

    with pytest.raises(StageFailure) as exc_info:
        await stage.run(job, JobProgress(job_store, job), 0, prior_text="", voice_id="ballad")

    assert exc_info.value.error_message == "section 0 text: generated text was empty"
    assert job_store.writes == []


@pytest.mark.asyncio
async def test_image_failure_keeps_committed_text(job_store):
    job = planned_job(job_store)
    stage = make_stage(concurrent=False, image=FakeImageGenerator(fail_on_call=0))

    with pytest.raises(StageFailure) as exc_info:
        await stage.run(job, JobProgress(job_store, job), 0, prior_text="", voice_id="ballad")

    assert exc_info.value.error_message.startswith("section 0 image: ")
    section = job_store.job().sections[0]
    assert section.text == "Milo takes step 1 of 3."
    assert section.image_url is None


@pytest.mark.asyncio
async def test_concurrent_failures_name_every_branch(job_store):
    job = planned_job(job_store)
    stage = make_stage(
        image=FakeImageGenerator(fail_on_call=0),
        speech=FakeSpeechSynthesizer(fail_on_call=0),
    )

    with pytest.raises(MediaFanOutError) as exc_info:
        await stage.run(job, JobProgress(job_store, job), 0, prior_text="", voice_id="ballad")

    message = exc_info.value.error_message
    assert "section 0 image: image generation failed: image model unavailable" in message
    assert "section 0 audio: speech synthesis failed: tts quota exceeded" in message


@pytest.mark.asyncio
async def test_concurrent_audio_failure_halts(job_store):
    job = planned_job(job_store)
    stage = make_stage(speech=FakeSpeechSynthesizer(fail_on_call=0))

    with pytest.raises(MediaFanOutError) as exc_info:
        await stage.run(job, JobProgress(job_store, job), 0, prior_text="", voice_id="ballad")

    assert exc_info.value.error_message.startswith("section 0 audio: ")
    assert job_store.job().sections[0].audio_url is None


@pytest.mark.asyncio
async def test_upload_failure_is_a_stage_failure(job_store):
    class BrokenStore(FakeAssetStore):
        async def store_blob(self, data, path, content_type):
            raise OSError("bucket missing")

    job = planned_job(job_store)
    stage = make_stage(concurrent=False, assets=BrokenStore())

    with pytest.raises(StageFailure, match="upload to stories/job-1/images/section_0.png failed"):
        await stage.run(job, JobProgress(job_store, job), 0, prior_text="", voice_id="ballad")


@pytest.mark.asyncio
async def test_missing_section_is_a_consistency_violation(job_store):
    job = planned_job(job_store, sections=2)
    progress = JobProgress(job_store, job)
    job_store.rows["job-1"]["sections"] = job_store.rows["job-1"]["sections"][:1]

    with pytest.raises(ConsistencyError) as exc_info:
        await progress.update_section(1, text="hello")

    assert "consistency violation" in exc_info.value.error_message


@pytest.mark.asyncio
async def test_previous_image_and_reference_are_forwarded(job_store):
    job = planned_job(job_store)
    job.reference_image_url = "https://cdn.test/milo.png"
    image = FakeImageGenerator()

    await make_stage(image=image).run(
        job, JobProgress(job_store, job), 0, prior_text="", voice_id="ballad", previous_image=b"prev"
    )

    assert image.calls[0]["previous_image"] == b"prev"
    assert image.calls[0]["reference_image"] == "https://cdn.test/milo.png"
    assert image.calls[0]["scene"].startswith("brief 0")


class RecordingProgress(JobProgress):
    def __init__(self, job_store, job):
        super().__init__(job_store, job)
        self.section_fields = []

    async def update_section(self, index, *, next_status=None, **values):
        self.section_fields.append(set(values))
        return await super().update_section(index, next_status=next_status, **values)


@pytest.mark.asyncio
@pytest.mark.parametrize("concurrent", [True, False])
async def test_each_section_field_is_written_once(job_store, concurrent):
    job = planned_job(job_store)
    progress = RecordingProgress(job_store, job)

    await make_stage(concurrent=concurrent).run(job, progress, 0, prior_text="", voice_id="ballad")

    assert progress.section_fields == [{"text"}, {"image_url", "audio_url"}]
    assert job_store.job().sections[0].text == "Milo takes step 1 of 3."
