"""
Redis queue (RQ) integration: connection, story task and runners.
"""

from .connection import (
    QUEUE_STORIES,
    get_redis_connection,
    get_story_queue,
    close_redis_connection,
    redis_health_check,
)
from .tasks import generate_story_task, enqueue_story_job

__all__ = [
    "QUEUE_STORIES",
    "get_redis_connection",
    "get_story_queue",
    "close_redis_connection",
    "redis_health_check",
    "generate_story_task",
    "enqueue_story_job",
]
