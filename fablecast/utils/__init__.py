"""Utility modules for Fablecast."""

from fablecast.utils.logging import (
    get_logger,
    get_log_buffer,
    configure_logging,
    LogLevel,
    LogEntry,
    AppLogger,
    pipeline_logger,
    job_logger,
    media_logger,
    storage_logger,
    api_logger,
)

__all__ = [
    "get_logger",
    "get_log_buffer",
    "configure_logging",
    "LogLevel",
    "LogEntry",
    "AppLogger",
    "pipeline_logger",
    "job_logger",
    "media_logger",
    "storage_logger",
    "api_logger",
]
