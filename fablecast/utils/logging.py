"""
Logging for Fablecast.

``AppLogger`` sends every record to stdlib logging and also keeps it in a
bounded in-memory ``LogBuffer``. The admin routes read that buffer to show
what a worker or the API did recently, including a per-job timeline built
from the ``job_id`` metadata the pipeline attaches to its records.
"""

import logging
from collections import Counter, deque
from datetime import datetime, timezone
from enum import Enum
from threading import Lock
from typing import Any, Callable, Dict, List, Optional


class LogLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class LogEntry:
    def __init__(
        self,
        level: LogLevel,
        message: str,
        source: str = "system",
        metadata: Optional[Dict[str, Any]] = None
    ):
        self.timestamp = datetime.now(timezone.utc)
        self.level = level
        self.message = message
        self.source = source
        self.metadata = metadata or {}

    @property
    def job_id(self) -> Optional[str]:
        return self.metadata.get("job_id")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level.value,
            "source": self.source,
            "message": self.message,
            "metadata": self.metadata,
        }


class LogBuffer:
    """Most recent ``max_size`` entries, in arrival order. Safe across threads."""

    def __init__(self, max_size: int = 1000):
        self._entries: deque = deque(maxlen=max_size)
        self._lock = Lock()

    def add(self, entry: LogEntry):
        with self._lock:
            self._entries.append(entry)

    def _select(self, keep: Callable[[LogEntry], bool]) -> List[LogEntry]:
        with self._lock:
            return [e for e in self._entries if keep(e)]

    def get_recent(
        self,
        limit: int = 100,
        level: Optional[LogLevel] = None,
        source: Optional[str] = None,
        job_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Newest first. Each filter that is given must match."""
        matches = self._select(
            lambda e: (level is None or e.level == level)
            and (source is None or e.source == source)
            and (job_id is None or e.job_id == job_id)
        )
        return [e.to_dict() for e in reversed(matches[-limit:])]

    def get_job_timeline(self, job_id: str, limit: int = 200) -> List[Dict[str, Any]]:
        """
        Entries logged for one job, oldest first.

        Pipeline checkpoints log with ``job_id`` and ``status`` metadata, so
        this reads as the run's stage-by-stage history while it is still in
        the buffer.
        """
        matches = self._select(lambda e: e.job_id == job_id)
        return [e.to_dict() for e in matches[-limit:]]

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            entries = list(self._entries)
        by_level = Counter(e.level.value for e in entries)
        return {
            "total": len(entries),
            "by_level": dict(by_level),
            "by_source": dict(Counter(e.source for e in entries)),
            "error_count": by_level[LogLevel.ERROR.value] + by_level[LogLevel.CRITICAL.value],
            "warning_count": by_level[LogLevel.WARNING.value],
        }

    def clear(self):
        with self._lock:
            self._entries.clear()


_log_buffer = LogBuffer()


def get_log_buffer() -> LogBuffer:
    return _log_buffer


class AppLogger:
    """
    Logger for one source (pipeline, media, storage, ...).

    Keyword arguments become structured metadata:

        pipeline_logger.info("Plan ready", job_id=job.id, sections=5)
    """

    def __init__(self, source: str):
        self.source = source
        self._logger = logging.getLogger(f"fablecast.{source}")

    def _log(self, level: LogLevel, message: str, metadata: Dict[str, Any], exc_info: bool = False):
        _log_buffer.add(LogEntry(level, message, self.source, metadata))
        suffix = f" | {metadata}" if metadata else ""
        self._logger.log(getattr(logging, level.name), f"{message}{suffix}", exc_info=exc_info)

    def debug(self, message: str, **metadata):
        self._log(LogLevel.DEBUG, message, metadata)

    def info(self, message: str, **metadata):
        self._log(LogLevel.INFO, message, metadata)

    def warning(self, message: str, **metadata):
        self._log(LogLevel.WARNING, message, metadata)

    def error(self, message: str, exc_info: bool = False, **metadata):
        self._log(LogLevel.ERROR, message, metadata, exc_info=exc_info)

    def critical(self, message: str, exc_info: bool = False, **metadata):
        self._log(LogLevel.CRITICAL, message, metadata, exc_info=exc_info)


def get_logger(source: str) -> AppLogger:
    return AppLogger(source)


def configure_logging(level: str = "INFO"):
    """Configure root logging once for a process entrypoint."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


pipeline_logger = AppLogger("pipeline")
job_logger = AppLogger("job_queue")
media_logger = AppLogger("media")
storage_logger = AppLogger("storage")
api_logger = AppLogger("api")
