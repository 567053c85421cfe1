"""
StoryWriter: Claude-backed text generation for titles, plans and section text.
"""

from typing import Any, Optional

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import HumanMessage

from fablecast.config import config
from fablecast.pipeline.errors import GenerationError
from fablecast.pipeline.models import LengthClass
from fablecast.utils.logging import pipeline_logger as logger

from .prompts import build_plan_prompt, build_section_text_prompt, build_title_prompt


def response_text(content: Any) -> str:
    """Flatten a LangChain message content (str or list of content blocks) to text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts)
    return ""


class StoryWriter:
    """
    Generates a story's title, scene plan and per-section prose.

    One Claude model for all three; a failed call raises GenerationError
    and the pipeline halts.
    """

    def __init__(
        self,
        model_name: Optional[str] = None,
        temperature: Optional[float] = None,
        llm: Optional[Any] = None,
    ):
        self.model_name = model_name or config.TEXT_MODEL
        self.temperature = config.TEMPERATURE if temperature is None else temperature
        self.llm = llm or ChatAnthropic(
            model=self.model_name,
            temperature=self.temperature,
            max_tokens=config.MAX_TOKENS,
            anthropic_api_key=config.ANTHROPIC_API_KEY,
            timeout=120.0,
        )

    async def _complete(self, prompt: str, purpose: str) -> str:
        try:
            response = await self.llm.ainvoke([HumanMessage(content=prompt)])
        except Exception as e:
            raise GenerationError(f"{purpose} request failed: {e}") from e

        text = response_text(response.content).strip()
        if not text:
            raise GenerationError(f"{purpose} response was empty")
        logger.debug("LLM response", purpose=purpose, model=self.model_name, chars=len(text))
        return text

    async def generate_title(self, protagonist: str, topic: str) -> str:
        return await self._complete(build_title_prompt(protagonist, topic), "title")

    async def generate_plan(
        self,
        protagonist: str,
        topic: str,
        length_class: LengthClass,
        section_count: int,
    ) -> str:
        """Raw model text; the plan stage does the parsing."""
        prompt = build_plan_prompt(protagonist, topic, length_class, section_count)
        return await self._complete(prompt, "plan")

    async def generate_section_text(
        self,
        protagonist: str,
        topic: str,
        brief: str,
        index: int,
        total: int,
        prior_text: str,
    ) -> str:
        prompt = build_section_text_prompt(protagonist, topic, brief, index, total, prior_text)
        return await self._complete(prompt, f"section {index} text")
