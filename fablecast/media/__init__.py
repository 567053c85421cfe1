"""Image and speech generators for story sections."""

from .images import ReplicateImageGenerator
from .speech import OpenAISpeechSynthesizer

__all__ = ["ReplicateImageGenerator", "OpenAISpeechSynthesizer"]
