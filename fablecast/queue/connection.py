"""
Redis connection management for RQ job queue.

Provides a singleton Redis connection and the story queue.
"""

from typing import Optional
from redis import Redis
from rq import Queue

from fablecast.config import config
from fablecast.utils.logging import job_logger as logger

# Singleton connection
_redis_connection: Optional[Redis] = None

QUEUE_STORIES = "stories"


def get_redis_connection() -> Redis:
    """
    Get the Redis connection singleton.

    Raises:
        ValueError: If REDIS_URL is not configured
        ConnectionError: If Redis does not answer a ping
    """
    global _redis_connection

    if _redis_connection is None:
        redis_url = config.REDIS_URL
        if not redis_url:
            raise ValueError(
                "REDIS_URL environment variable is required for the story queue."
            )

        connection = Redis.from_url(
            redis_url,
            decode_responses=False,  # RQ needs bytes
            socket_timeout=10,
            socket_connect_timeout=10,
            retry_on_timeout=True,
            health_check_interval=30,
        )

        try:
            connection.ping()
        except Exception as e:
            raise ConnectionError(f"Failed to connect to Redis: {e}") from e

        logger.info("Redis connected", host=redis_url.split("@")[-1])
        _redis_connection = connection

    return _redis_connection


def get_story_queue() -> Queue:
    """Get the story generation queue."""
    return Queue(QUEUE_STORIES, connection=get_redis_connection())


def close_redis_connection():
    """Close the Redis connection (for cleanup)."""
    global _redis_connection
    if _redis_connection:
        _redis_connection.close()
        _redis_connection = None


def redis_health_check() -> dict:
    """Connection status plus story queue depth and failed count."""
    try:
        queue = get_story_queue()
        return {
            "status": "healthy",
            "connected": True,
            "queued": len(queue),
            "failed": queue.failed_job_registry.count,
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "connected": False,
            "error": str(e)
        }
