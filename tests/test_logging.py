"""Tests for the in-memory log buffer."""

from fablecast.utils.logging import AppLogger, LogBuffer, LogEntry, LogLevel, get_log_buffer


def test_buffer_drops_oldest_entries():
    buffer = LogBuffer(max_size=2)
    for i in range(3):
        buffer.add(LogEntry(LogLevel.INFO, f"m{i}"))

    assert [e["message"] for e in buffer.get_recent()] == ["m2", "m1"]


def test_filters_and_stats():
    buffer = LogBuffer()
    buffer.add(LogEntry(LogLevel.INFO, "plan ready", "pipeline", {"job_id": "a"}))
    buffer.add(LogEntry(LogLevel.ERROR, "upload failed", "storage", {"job_id": "b"}))
    buffer.add(LogEntry(LogLevel.WARNING, "voice fallback", "pipeline", {"job_id": "a"}))

    assert [e["message"] for e in buffer.get_recent(level=LogLevel.ERROR)] == ["upload failed"]
    assert len(buffer.get_recent(source="pipeline")) == 2
    assert len(buffer.get_recent(job_id="a")) == 2
    assert buffer.get_recent(level=LogLevel.ERROR)[0]["metadata"] == {"job_id": "b"}

    stats = buffer.get_stats()
    assert stats["total"] == 3
    assert stats["error_count"] == 1
    assert stats["warning_count"] == 1
    assert stats["by_source"] == {"pipeline": 2, "storage": 1}

    buffer.clear()
    assert buffer.get_stats()["total"] == 0


def test_app_logger_records_metadata():
    get_log_buffer().clear()

    AppLogger("pipeline").warning("Voice lookup failed", job_id="job-9", owner_id="o")

    entry = get_log_buffer().get_recent(job_id="job-9")[0]
    assert entry["level"] == "warning"
    assert entry["source"] == "pipeline"
    assert entry["metadata"]["owner_id"] == "o"


def test_job_timeline_is_oldest_first_and_scoped():
    buffer = LogBuffer()
    buffer.add(LogEntry(LogLevel.DEBUG, "Checkpoint committed", "pipeline", {"job_id": "a", "status": "planning"}))
    buffer.add(LogEntry(LogLevel.DEBUG, "Checkpoint committed", "pipeline", {"job_id": "b", "status": "planning"}))
    buffer.add(LogEntry(LogLevel.DEBUG, "Checkpoint committed", "pipeline", {"job_id": "a", "status": "section_text[0]"}))

    timeline = buffer.get_job_timeline("a")

    assert [e["metadata"]["status"] for e in timeline] == ["planning", "section_text[0]"]
    assert buffer.get_job_timeline("a", limit=1)[0]["metadata"]["status"] == "section_text[0]"
    assert buffer.get_job_timeline("missing") == []
