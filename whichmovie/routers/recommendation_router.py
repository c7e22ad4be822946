from fastapi import APIRouter, Depends, Request

from ..config import EXCLUSION_CONTEXT_LIMIT
from ..dependencies import get_current_user_id, get_exclusion_ledger, get_recommendation_service
from ..limiter import limiter
from ..schemas.movie import UserMovieResponse
from ..schemas.recommendation import (
    DailyRecommendationsResponse,
    ExclusionsResponse,
    RefreshResponse,
)
from ..services.exclusion_ledger import ExclusionLedger
from ..services.recommendation_service import RecommendationService

router = APIRouter(tags=["recommendations"])


@router.get("/api/recommendations/today", response_model=DailyRecommendationsResponse)
async def get_todays_recommendations(
    generate: bool = True,
    user_id: str = Depends(get_current_user_id),
    service: RecommendationService = Depends(get_recommendation_service),
):
    """
    Today's five movies. Generated on first request of the day unless
    `generate=false`, in which case an empty response means none exist yet.
    """
    if not generate:
        batch = await service.get_todays_recommendations(user_id)
        if batch is None:
            return DailyRecommendationsResponse(user_id=user_id)
        return DailyRecommendationsResponse.from_batch(batch)

    batch, generated = await service.get_or_generate(user_id)
    return DailyRecommendationsResponse.from_batch(batch, generated=generated)


@router.post("/api/recommendations/refresh", response_model=RefreshResponse)
@limiter.limit("5/minute")  # Each refresh costs an LLM call and up to five OMDB calls
async def refresh_recommendations(
    request: Request,  # Required for limiter
    user_id: str = Depends(get_current_user_id),
    service: RecommendationService = Depends(get_recommendation_service),
):
    """Generate a new batch now, replacing today's."""
    picks = await service.generate(user_id)
    return RefreshResponse(
        user_id=user_id,
        picks=[UserMovieResponse.from_user_movie(pick) for pick in picks],
        count=len(picks),
    )


@router.get("/api/exclusions", response_model=ExclusionsResponse)
async def get_exclusions(
    user_id: str = Depends(get_current_user_id),
    ledger: ExclusionLedger = Depends(get_exclusion_ledger),
):
    """What the generator steers away from for this user"""
    excluded_ids = await ledger.excluded_ids(user_id)
    titles = await ledger.exclusion_titles(user_id, EXCLUSION_CONTEXT_LIMIT)
    return ExclusionsResponse(
        user_id=user_id,
        excluded_ids=sorted(excluded_ids),
        exclusion_titles=titles,
    )
