"""
Plan stage: title and ordered section briefs for a new story.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, List

from fablecast.utils.logging import pipeline_logger as logger

from .capabilities import StoryTextGenerator
from .errors import PlanParseError, StageFailure
from .models import Job, Section
from .progress import JobProgress
from .status import JobStatus

PLAN_LIST_KEYS = ("plan", "sections", "scenes", "briefs")
BRIEF_ITEM_KEYS = ("brief", "description", "planItem", "text")

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL)
_QUOTED_STRING = re.compile(r'"((?:[^"\\]|\\.)*)"')


@dataclass
class StoryPlan:
    title: str
    briefs: List[str]


class PlanFormatError(ValueError):
    """Raised by the parser; the stage re-raises it as a PlanParseError."""
    pass


def parse_plan_response(raw: Any) -> List[str]:
    """
    Turn a plan response into a list of briefs.

    Accepts an object with an array field, a bare array, or text containing
    either (optionally inside a ```json fence). Truncated text falls back to
    the complete string literals found in its first array. Raises
    PlanFormatError when nothing usable can be extracted.
    """
    if isinstance(raw, (dict, list)):
        return _briefs_from(raw)
    if not isinstance(raw, str) or not raw.strip():
        raise PlanFormatError("plan response was empty")

    text = raw.strip()
    for candidate in _json_candidates(text):
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        try:
            return _briefs_from(parsed)
        except PlanFormatError:
            continue

    salvaged = _salvage_truncated_array(text)
    if salvaged is not None:
        return salvaged
    raise PlanFormatError(f"could not parse plan response: {text[:200]}")


def _json_candidates(text: str) -> List[str]:
    candidates = [text]
    fenced = _FENCED_BLOCK.search(text)
    if fenced:
        candidates.append(fenced.group(1))
    for opener, closer in (("{", "}"), ("[", "]")):
        start, end = text.find(opener), text.rfind(closer)
        if start != -1 and end > start:
            candidates.append(text[start:end + 1])
    return candidates


def _briefs_from(parsed: Any) -> List[str]:
    if isinstance(parsed, dict):
        for key in PLAN_LIST_KEYS:
            if isinstance(parsed.get(key), list):
                parsed = parsed[key]
                break
        else:
            raise PlanFormatError(f"plan object has no list field (keys: {sorted(parsed)})")
    if not isinstance(parsed, list):
        raise PlanFormatError(f"plan response is a {type(parsed).__name__}, not a list")

    briefs = []
    for item in parsed:
        if isinstance(item, dict):
            item = next(
                (item[k] for k in BRIEF_ITEM_KEYS if isinstance(item.get(k), str)),
                None,
            )
        if isinstance(item, str) and item.strip():
            briefs.append(item.strip())
    return briefs


def _salvage_truncated_array(text: str) -> List[str] | None:
    start = text.find("[")
    if start == -1:
        return None
    body = text[start + 1:]
    if "{" in body:
        return None
    briefs = []
    for match in _QUOTED_STRING.finditer(body):
        try:
            value = json.loads(f'"{match.group(1)}"')
        except json.JSONDecodeError:
            continue
        if value.strip():
            briefs.append(value.strip())
    return briefs or None


def clean_title(raw: Any) -> str:
    if not isinstance(raw, str):
        return ""
    title = raw.strip().splitlines()[0] if raw.strip() else ""
    title = re.sub(r"^(title)\s*[:\-]\s*", "", title, flags=re.IGNORECASE)
    return title.strip().strip('"\'*#').strip()


class PlanStage:
    """Generates the title and the section briefs, then lays out placeholder sections."""

    def __init__(self, text_generator: StoryTextGenerator):
        self.text_generator = text_generator

    async def run(self, job: Job, progress: JobProgress) -> StoryPlan:
        status = JobStatus.planning()
        expected = job.length_class.section_count
        topic = job.effective_topic

        try:
            raw_title = await self.text_generator.generate_title(job.protagonist, topic)
        except Exception as exc:
            raise StageFailure(status, f"title generation failed: {exc}") from exc
        title = clean_title(raw_title)
        if not title:
            raise StageFailure(status, "generated title was empty")

        try:
            raw_plan = await self.text_generator.generate_plan(
                job.protagonist, topic, job.length_class, expected
            )
        except Exception as exc:
            raise StageFailure(status, f"plan generation failed: {exc}") from exc

        try:
            briefs = parse_plan_response(raw_plan)
        except PlanFormatError as exc:
            raise PlanParseError(status, str(exc)) from exc

        if not briefs:
            raise PlanParseError(status, "plan was empty (no section briefs)")
        if len(briefs) != expected:
            raise StageFailure(
                status,
                f"plan has {len(briefs)} briefs, expected {expected} for a {job.length_class.value} story",
            )

        sections = [Section.placeholder(i, brief) for i, brief in enumerate(briefs)]
        await progress.checkpoint(
            JobStatus.section_text(0),
            title=title,
            sections=[s.to_dict() for s in sections],
            error_message=None,
        )
        job.title = title
        job.sections = sections

        logger.info("Plan ready", job_id=job.id, title=title, sections=len(briefs))
        return StoryPlan(title=title, briefs=briefs)
