"""
Application configuration management using Pydantic Settings.

This module provides a type-safe, centralized configuration system
that loads from environment variables with sensible defaults.
"""

from typing import Literal
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# RQ kills a story task this long after the pipeline's own ceiling.
JOB_TIMEOUT_MARGIN_SECONDS = 60


class AppConfig(BaseSettings):
    """
    Application configuration loaded from environment variables.

    All settings can be overridden via .env file or environment variables.
    Settings are validated at startup using Pydantic.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # ===== API Keys =====
    ANTHROPIC_API_KEY: str | None = Field(
        default=None,
        description="Anthropic API key for Claude (title, plan, section text, topics)"
    )

    OPENAI_API_KEY: str | None = Field(
        default=None,
        description="OpenAI API key for text-to-speech narration"
    )

    REPLICATE_API_TOKEN: str | None = Field(
        default=None,
        description="Replicate API token for section illustrations"
    )

    # ===== Supabase Configuration =====
    SUPABASE_URL: str | None = Field(
        default=None,
        description="Supabase project URL"
    )

    SUPABASE_SERVICE_KEY: str | None = Field(
        default=None,
        description="Supabase service role key (server-side job and storage access, bypasses RLS)"
    )

    SUPABASE_STORAGE_BUCKET: str = Field(
        default="story-assets",
        description="Supabase Storage bucket for section images and narration"
    )

    # ===== Redis Queue =====
    REDIS_URL: str | None = Field(
        default=None,
        description="Redis URL for the RQ story queue (redis:// or rediss://)"
    )

    # ===== LLM Configuration =====
    TEXT_MODEL: str = Field(
        default="claude-sonnet-4-5-20250929",
        description="Claude model for title, plan and section text"
    )

    TOPIC_MODEL: str = Field(
        default="claude-3-5-haiku-20241022",
        description="Claude model for topic suggestions (fast and cheap)"
    )

    TEMPERATURE: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="LLM temperature for story text"
    )

    MAX_TOKENS: int = Field(
        default=1024,
        ge=100,
        le=16000,
        description="Maximum tokens per story LLM response"
    )

    # ===== Media Generation Settings =====
    IMAGE_MODEL: str = Field(
        default="black-forest-labs/flux-kontext-pro",
        description="Replicate model for section illustrations (must accept an input image for continuity)"
    )

    IMAGE_ASPECT_RATIO: str = Field(
        default="16:9",
        description="Aspect ratio requested from the image model"
    )

    IMAGE_REFERENCE_INPUT_KEY: str | None = Field(
        default=None,
        description=(
            "Model input that takes the character reference image alongside the chained "
            "previous image (e.g. a multi-image model's second image slot). Unset for "
            "single-image models, where the previous image replaces the reference."
        )
    )

    IMAGE_CHAIN_ENABLED: bool = Field(
        default=True,
        description="Pass the previous section's illustration to the next image call for visual continuity"
    )

    TTS_MODEL: str = Field(
        default="gpt-4o-mini-tts",
        description="OpenAI TTS model for section narration"
    )

    DEFAULT_VOICE_ID: str = Field(
        default="ballad",
        description="Narration voice used when neither the job nor the owner picks one"
    )

    TTS_SPEED: float = Field(
        default=0.8,
        ge=0.25,
        le=4.0,
        description="Narration speed (slightly slow for young listeners)"
    )

    # ===== Pipeline Settings =====
    PIPELINE_TIMEOUT_SECONDS: int = Field(
        default=540,
        ge=30,
        le=3600,
        description="Wall-clock ceiling for one pipeline run"
    )

    CONCURRENT_SECTION_MEDIA: bool = Field(
        default=True,
        description="Generate each section's image and audio concurrently"
    )

    @field_validator('CONCURRENT_SECTION_MEDIA', 'IMAGE_CHAIN_ENABLED', mode='before')
    @classmethod
    def parse_bool_string(cls, v):
        """Parse boolean from string values (env vars are strings)."""
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            return v.lower() in ("true", "1", "yes", "on")
        return False

    # ===== Stale Job Sweeper =====
    STALE_JOB_MINUTES: int = Field(
        default=15,
        ge=1,
        description="Minutes without progress before a non-terminal job counts as stalled"
    )

    STALE_JOB_MAX_RETRIES: int = Field(
        default=2,
        ge=0,
        le=10,
        description="How many times a stalled job is re-queued before it is marked as error"
    )

    SWEEP_INTERVAL_SECONDS: int = Field(
        default=120,
        ge=10,
        description="Interval between stale job sweeps"
    )

    @model_validator(mode="after")
    def check_stale_window(self):
        """A job still inside its run time must never look stalled to the sweeper."""
        worst_case = self.PIPELINE_TIMEOUT_SECONDS + JOB_TIMEOUT_MARGIN_SECONDS
        if self.STALE_JOB_MINUTES * 60 <= worst_case:
            raise ValueError(
                f"STALE_JOB_MINUTES ({self.STALE_JOB_MINUTES}) must exceed the longest "
                f"possible run ({worst_case}s including the RQ margin)"
            )
        return self

    # ===== Asset Storage =====
    ASSET_BACKEND: Literal["supabase", "local"] = Field(
        default="supabase",
        description="Where section assets are uploaded (supabase in prod, local in dev)"
    )

    LOCAL_ASSET_DIR: str = Field(
        default="./generated_assets",
        description="Directory for the local asset store"
    )

    LOCAL_ASSET_BASE_URL: str = Field(
        default="http://localhost:8000/assets",
        description="Public base URL the local asset directory is served from"
    )

    # ===== Application Settings =====
    ENVIRONMENT: str = Field(
        default="development",
        description="Environment mode: development or production"
    )

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    API_HOST: str = Field(
        default="0.0.0.0",
        description="API server host"
    )

    API_PORT: int = Field(
        default=8000,
        ge=1024,
        le=65535,
        description="API server port"
    )

    ALLOWED_ORIGINS: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins. Use '*' for all (dev only)."
    )

    @property
    def allowed_origins_list(self) -> list[str]:
        """Get list of allowed CORS origins."""
        if self.ALLOWED_ORIGINS == "*":
            return ["*"]
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]

    # ===== Computed Properties =====

    @property
    def supabase_configured(self) -> bool:
        """Check if Supabase is properly configured."""
        return (
            self.SUPABASE_URL is not None
            and self.SUPABASE_SERVICE_KEY is not None
        )

    @property
    def redis_configured(self) -> bool:
        """Check if the Redis queue is configured."""
        return self.REDIS_URL is not None

    @property
    def use_local_assets(self) -> bool:
        """Local asset store is used when asked for, or when Supabase is missing."""
        return self.ASSET_BACKEND == "local" or not self.supabase_configured


# Global configuration instance
# Import this in other modules: from fablecast.config import config
config = AppConfig()


if __name__ == "__main__":
    print("Configuration loaded successfully!")
    print(f"Text model: {config.TEXT_MODEL}")
    print(f"Image model: {config.IMAGE_MODEL}")
    print(f"TTS model: {config.TTS_MODEL} (default voice: {config.DEFAULT_VOICE_ID})")
    print(f"Concurrent media: {'✓' if config.CONCURRENT_SECTION_MEDIA else '✗'}")
    print(f"Supabase: {'✓' if config.supabase_configured else '✗'}")
    print(f"Redis: {'✓' if config.redis_configured else '✗'}")
