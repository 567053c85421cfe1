"""
Admin API Routes

In-memory log inspection for operators.
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from fablecast.utils.logging import LogLevel, get_log_buffer, get_logger

router = APIRouter(prefix="/api/admin", tags=["admin"])
logger = get_logger("admin")


@router.get("/logs")
async def get_logs(
    limit: int = Query(100, ge=1, le=500),
    level: Optional[str] = Query(None, description="Filter by level (debug, info, warning, error, critical)"),
    source: Optional[str] = Query(None, description="Filter by source"),
    job_id: Optional[str] = Query(None, description="Only entries logged for this job"),
):
    """Get recent log entries from the in-memory buffer."""
    log_buffer = get_log_buffer()

    level_filter = None
    if level:
        try:
            level_filter = LogLevel(level.lower())
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Invalid log level: {level}")

    logs = log_buffer.get_recent(limit=limit, level=level_filter, source=source, job_id=job_id)
    return {
        "logs": logs,
        "stats": log_buffer.get_stats()
    }


@router.get("/jobs/{job_id}/timeline")
async def get_job_timeline(job_id: str, limit: int = Query(200, ge=1, le=1000)):
    """Buffered log entries for one story job, oldest first."""
    timeline = get_log_buffer().get_job_timeline(job_id, limit=limit)
    if not timeline:
        raise HTTPException(status_code=404, detail="No buffered log entries for this job")
    return {"job_id": job_id, "entries": timeline}


@router.post("/logs/clear")
async def clear_logs():
    """Clear the in-memory log buffer."""
    get_log_buffer().clear()
    logger.info("Log buffer cleared by admin")
    return {"status": "cleared"}
