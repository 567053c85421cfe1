"""
Shared FastAPI dependencies.

Routes take their services through these so tests can swap them with
``app.dependency_overrides``.
"""

from typing import Any, Callable

from fablecast.agents.topics import TopicSuggester
from fablecast.database.jobs import StoryJobService


def get_job_service() -> StoryJobService:
    return StoryJobService()


def get_enqueue() -> Callable[..., Any]:
    from fablecast.queue.tasks import enqueue_story_job
    return enqueue_story_job


def get_topic_suggester() -> TopicSuggester:
    return TopicSuggester()
