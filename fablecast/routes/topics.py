"""
Topic suggestion route.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from fablecast.agents.topics import TopicSuggester, TopicSuggestionError
from fablecast.pipeline.errors import GenerationError
from fablecast.routes.dependencies import get_topic_suggester
from fablecast.utils.logging import api_logger as logger


router = APIRouter(prefix="/api/topics", tags=["topics"])


class SuggestTopicsRequest(BaseModel):
    owner_age_years: int = Field(..., ge=1, le=18)
    owner_gender: str = Field(..., min_length=1, max_length=40)


class TopicItem(BaseModel):
    text: str
    emojis: str


class SuggestTopicsResponse(BaseModel):
    topics: List[TopicItem]


@router.post("/suggest", response_model=SuggestTopicsResponse)
async def suggest_topics(
    request: SuggestTopicsRequest,
    suggester: TopicSuggester = Depends(get_topic_suggester),
):
    """Nine story topic ideas for the given age and gender."""
    try:
        topics = await suggester.suggest(request.owner_age_years, request.owner_gender.strip())
    except TopicSuggestionError as e:
        logger.warning("Topic suggestions were malformed", error=str(e))
        raise HTTPException(status_code=502, detail="Topic suggestions were malformed")
    except GenerationError as e:
        logger.error("Topic suggestion failed", error=str(e))
        raise HTTPException(status_code=502, detail="Topic suggestion failed")

    return SuggestTopicsResponse(topics=[TopicItem(**t.to_dict()) for t in topics])
