"""
Section illustrations via Replicate.
"""

import base64
from typing import Any, Optional

import httpx
import replicate

from fablecast.agents.prompts import build_image_prompt
from fablecast.config import config
from fablecast.pipeline.errors import GenerationError
from fablecast.utils.logging import media_logger as logger


def to_data_uri(data: bytes, mime_type: str = "image/png") -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def output_url(output: Any) -> Optional[str]:
    """Replicate returns a FileOutput, a URL string, or a list of either."""
    if isinstance(output, list):
        output = output[0] if output else None
    if output is None:
        return None
    url = getattr(output, "url", None) or str(output)
    return url or None


class ReplicateImageGenerator:
    """
    Generates one illustration per section and returns the raw image bytes.

    When a previous section image is supplied it is sent as the model's
    input image so consecutive illustrations stay consistent; otherwise the
    job's fixed character reference image (if any) is used.

    Single-image models such as flux-kontext-pro take one input image, so
    from the second section on the reference image is only carried forward
    through the chain: the first illustration was drawn from it. For models
    with a second image input, set ``reference_input_key`` (config
    ``IMAGE_REFERENCE_INPUT_KEY``) and the reference is sent there as well.
    """

    def __init__(
        self,
        model: Optional[str] = None,
        client: Optional[Any] = None,
        http_timeout: float = 60.0,
        reference_input_key: Optional[str] = None,
    ):
        self.model = model or config.IMAGE_MODEL
        self.reference_input_key = reference_input_key or config.IMAGE_REFERENCE_INPUT_KEY
        self._client = client
        self.http_timeout = http_timeout

    @property
    def client(self):
        if self._client is None:
            if not config.REPLICATE_API_TOKEN:
                raise GenerationError("REPLICATE_API_TOKEN is not configured")
            self._client = replicate.Client(api_token=config.REPLICATE_API_TOKEN)
        return self._client

    def _build_input(
        self,
        protagonist: str,
        scene: str,
        reference_image: Optional[str],
        previous_image: Optional[bytes],
    ) -> dict:
        input_params = {
            "prompt": build_image_prompt(protagonist, scene, has_previous_image=bool(previous_image)),
            "aspect_ratio": config.IMAGE_ASPECT_RATIO,
            "output_format": "png",
        }
        if previous_image:
            input_params["input_image"] = to_data_uri(previous_image)
            if reference_image and self.reference_input_key:
                input_params[self.reference_input_key] = reference_image
        elif reference_image:
            input_params["input_image"] = reference_image
        return input_params

    async def generate_image(
        self,
        protagonist: str,
        scene: str,
        reference_image: Optional[str] = None,
        previous_image: Optional[bytes] = None,
    ) -> bytes:
        input_params = self._build_input(protagonist, scene, reference_image, previous_image)
        logger.debug(
            "Generating image",
            model=self.model,
            chained=bool(previous_image),
            has_reference=bool(reference_image),
        )

        try:
            output = await self.client.async_run(self.model, input=input_params)
        except GenerationError:
            raise
        except Exception as e:
            raise GenerationError(f"Replicate run failed: {e}") from e

        url = output_url(output)
        if not url:
            raise GenerationError("No image URL returned from Replicate")

        try:
            async with httpx.AsyncClient(timeout=self.http_timeout) as http_client:
                response = await http_client.get(url)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise GenerationError(f"Failed to download image: {e}") from e

        if not response.content:
            raise GenerationError("Downloaded image was empty")
        return response.content
