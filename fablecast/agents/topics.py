"""
TopicSuggester: nine story topic ideas for a child of a given age.
"""

import json
import re
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import HumanMessage

from fablecast.config import config
from fablecast.pipeline.errors import GenerationError
from fablecast.utils.logging import api_logger as logger

from .prompts import TOPIC_COUNT, build_topic_prompt
from .story_writer import response_text

DEFAULT_EMOJI = "✨"
TEXT_KEYS = ("text", "topic", "title")
EMOJI_KEYS = ("emojis", "emoji")


class TopicSuggestionError(GenerationError):
    """The model's topic list could not be repaired into nine valid entries."""
    pass


@dataclass
class TopicSuggestion:
    text: str
    emojis: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


def _load_json(text: str) -> Any:
    text = text.strip()
    if "```" in text:
        fenced = re.search(r"```(?:json)?\s*(.*?)\s*```", text, re.DOTALL)
        if fenced:
            text = fenced.group(1)
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    for pattern in (r"\{[\s\S]*\}", r"\[[\s\S]*\]"):
        match = re.search(pattern, text)
        if match:
            try:
                return json.loads(match.group())
            except json.JSONDecodeError:
                continue
    raise TopicSuggestionError(f"Topic response is not JSON: {text[:200]}")


def _repair_entry(entry: Any) -> Optional[TopicSuggestion]:
    if isinstance(entry, str):
        text = entry.strip()
        return TopicSuggestion(text=text, emojis=DEFAULT_EMOJI) if text else None
    if not isinstance(entry, dict):
        return None

    text = next((entry[k] for k in TEXT_KEYS if isinstance(entry.get(k), str) and entry[k].strip()), None)
    if text is None:
        return None
    emojis = DEFAULT_EMOJI
    for key in EMOJI_KEYS:
        value = entry.get(key)
        if isinstance(value, list):
            value = "".join(e for e in value if isinstance(e, str))
        if isinstance(value, str) and value.strip():
            emojis = value.strip()
            break
    return TopicSuggestion(text=text.strip(), emojis=emojis)


def parse_topics(raw: Any) -> List[TopicSuggestion]:
    """
    Validate and repair a topic list into exactly nine suggestions.

    Accepts {"topics": [...]} or a bare list, as parsed data or JSON text.
    Bare strings get a default emoji; entries without usable text are
    dropped; extras beyond nine are cut. Fewer than nine is an error.
    """
    data = _load_json(raw) if isinstance(raw, str) else raw
    if isinstance(data, dict):
        data = data.get("topics", data.get("suggestions"))
    if not isinstance(data, list):
        raise TopicSuggestionError("Topic response has no topics list")

    topics = [t for t in (_repair_entry(e) for e in data) if t is not None]
    if len(topics) < TOPIC_COUNT:
        raise TopicSuggestionError(
            f"Expected {TOPIC_COUNT} topics, got {len(topics)} usable entries"
        )
    return topics[:TOPIC_COUNT]


class TopicSuggester:
    """Asks a fast Claude model for topic ideas and validates the answer."""

    def __init__(self, llm: Optional[Any] = None):
        self.llm = llm or ChatAnthropic(
            model=config.TOPIC_MODEL,
            temperature=0.9,
            max_tokens=1024,
            anthropic_api_key=config.ANTHROPIC_API_KEY,
            timeout=60.0,
        )

    async def suggest(self, age: int, gender: str) -> List[TopicSuggestion]:
        prompt = build_topic_prompt(age, gender)
        try:
            response = await self.llm.ainvoke([HumanMessage(content=prompt)])
        except Exception as e:
            raise GenerationError(f"Topic suggestion request failed: {e}") from e

        topics = parse_topics(response_text(response.content))
        logger.info("Suggested topics", age=age, count=len(topics))
        return topics
