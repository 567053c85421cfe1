"""
Fablecast Agents

LLM-backed generators: story text (title, plan, sections) and topic ideas.
"""

from .story_writer import StoryWriter
from .topics import TopicSuggester, TopicSuggestion, TopicSuggestionError, parse_topics

__all__ = [
    "StoryWriter",
    "TopicSuggester",
    "TopicSuggestion",
    "TopicSuggestionError",
    "parse_topics",
]
