"""
Stories API Routes

Story job intake and status reads.
"""

from typing import Any, Callable, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from fablecast.database.jobs import StoryJobService
from fablecast.pipeline.errors import JobStoreError
from fablecast.pipeline.models import DEFAULT_TOPIC, LengthClass, clean_optional
from fablecast.routes.dependencies import get_enqueue, get_job_service
from fablecast.utils.logging import api_logger as logger


router = APIRouter(prefix="/api/stories", tags=["stories"])


# =============================================================================
# Request / Response Models
# =============================================================================

class CreateStoryRequest(BaseModel):
    """A new story request; the job starts in status "queued"."""
    owner_id: str = Field(..., min_length=1)
    protagonist: str = Field(..., min_length=1, description="Descriptor of the main character")
    length_class: LengthClass = LengthClass.MEDIUM
    topic: Optional[str] = None
    reference_image_url: Optional[str] = None
    voice_id: Optional[str] = None


class CreateStoryResponse(BaseModel):
    job: Dict[str, Any]
    queue_job_id: Optional[str] = None
    message: str


# =============================================================================
# Routes
# =============================================================================

@router.post("", response_model=CreateStoryResponse, status_code=201)
async def create_story(
    request: CreateStoryRequest,
    job_service: StoryJobService = Depends(get_job_service),
    enqueue: Callable[..., Any] = Depends(get_enqueue),
):
    """Create a story job and enqueue exactly one pipeline run for it."""
    protagonist = request.protagonist.strip()
    if not protagonist:
        raise HTTPException(status_code=422, detail="protagonist must not be blank")

    try:
        job = await job_service.create_job(
            owner_id=request.owner_id,
            protagonist=protagonist,
            length_class=request.length_class,
            topic=clean_optional(request.topic) or DEFAULT_TOPIC,
            reference_image_url=clean_optional(request.reference_image_url),
            voice_id=clean_optional(request.voice_id),
        )
    except JobStoreError as e:
        logger.error("Failed to create story job", owner_id=request.owner_id, error=str(e))
        raise HTTPException(status_code=500, detail="Could not create story job")

    try:
        queue_job = enqueue(job.id)
    except Exception as e:
        logger.error("Failed to enqueue story job", job_id=job.id, error=str(e))
        await job_service.mark_error(job.id, f"queued: could not enqueue: {e}")
        raise HTTPException(status_code=503, detail="Story queue unavailable")

    return CreateStoryResponse(
        job=job.to_public_dict(),
        queue_job_id=getattr(queue_job, "id", None),
        message="Story generation queued",
    )


@router.get("/{job_id}")
async def get_story(
    job_id: str,
    job_service: StoryJobService = Depends(get_job_service),
):
    """Current state of a story job, including per-section progress."""
    try:
        job = await job_service.read_job(job_id)
    except JobStoreError as e:
        logger.error("Failed to read story job", job_id=job_id, error=str(e))
        raise HTTPException(status_code=500, detail="Could not read story job")

    if job is None:
        raise HTTPException(status_code=404, detail="Story not found")
    return job.to_public_dict()
