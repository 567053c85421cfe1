"""
Section narration via OpenAI text-to-speech.
"""

from typing import Any, Optional

from openai import AsyncOpenAI

from fablecast.config import config
from fablecast.pipeline.errors import GenerationError
from fablecast.utils.logging import media_logger as logger

# Sections are a few sentences; OpenAI's per-request limit is 4096 characters.
MAX_INPUT_CHARS = 4096


class OpenAISpeechSynthesizer:
    """Narrates section text and returns MP3 bytes."""

    def __init__(
        self,
        model: Optional[str] = None,
        speed: Optional[float] = None,
        client: Optional[Any] = None,
    ):
        self.model = model or config.TTS_MODEL
        self.speed = config.TTS_SPEED if speed is None else speed
        self._client = client

    @property
    def client(self):
        if self._client is None:
            if not config.OPENAI_API_KEY:
                raise GenerationError("OPENAI_API_KEY is not configured")
            self._client = AsyncOpenAI(api_key=config.OPENAI_API_KEY)
        return self._client

    async def synthesize_speech(self, text: str, voice_id: str) -> bytes:
        text = (text or "").strip()
        if not text:
            raise GenerationError("Nothing to narrate")
        if len(text) > MAX_INPUT_CHARS:
            raise GenerationError(f"Section text is {len(text)} characters, limit is {MAX_INPUT_CHARS}")

        try:
            response = await self.client.audio.speech.create(
                model=self.model,
                voice=voice_id,
                input=text,
                speed=self.speed,
                response_format="mp3",
            )
        except GenerationError:
            raise
        except Exception as e:
            error_msg = str(e)
            if "401" in error_msg or "unauthorized" in error_msg.lower():
                logger.error("OpenAI authentication failed, check OPENAI_API_KEY")
            raise GenerationError(f"OpenAI TTS failed: {error_msg}") from e

        audio = response.content
        if not audio:
            raise GenerationError("OpenAI TTS returned no audio")
        logger.debug("Synthesized narration", voice=voice_id, chars=len(text), size=len(audio))
        return audio
