"""Production wiring for the story pipeline."""

from fablecast.config import config

from .controller import StoryPipeline
from .plan_stage import PlanStage
from .section_stage import SectionStage


def build_pipeline() -> StoryPipeline:
    """Controller backed by Claude, Replicate, OpenAI TTS and Supabase."""
    from fablecast.agents.story_writer import StoryWriter
    from fablecast.database.jobs import StoryJobService
    from fablecast.database.users import UserService
    from fablecast.media.images import ReplicateImageGenerator
    from fablecast.media.speech import OpenAISpeechSynthesizer
    from fablecast.storage import build_asset_store

    writer = StoryWriter()
    return StoryPipeline(
        job_store=StoryJobService(),
        plan_stage=PlanStage(writer),
        section_stage=SectionStage(
            text_generator=writer,
            image_generator=ReplicateImageGenerator(),
            speech_synthesizer=OpenAISpeechSynthesizer(),
            asset_store=build_asset_store(),
            concurrent_media=config.CONCURRENT_SECTION_MEDIA,
        ),
        voice_resolver=UserService(),
        default_voice_id=config.DEFAULT_VOICE_ID,
        timeout_seconds=config.PIPELINE_TIMEOUT_SECONDS,
        image_chain_enabled=config.IMAGE_CHAIN_ENABLED,
    )
