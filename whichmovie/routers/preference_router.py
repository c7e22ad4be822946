from fastapi import APIRouter, Depends

from ..dependencies import get_current_user_id, get_preference_service
from ..schemas.recommendation import PreferencesResponse, PreferencesUpdate
from ..services.preference_service import PreferenceService

router = APIRouter(tags=["preferences"])


@router.get("/api/preferences", response_model=PreferencesResponse)
async def get_preferences(
    user_id: str = Depends(get_current_user_id),
    service: PreferenceService = Depends(get_preference_service),
):
    preferences = await service.get_preferences(user_id)
    return PreferencesResponse.from_preferences(user_id, preferences)


@router.put("/api/preferences", response_model=PreferencesResponse)
async def update_preferences(
    body: PreferencesUpdate,
    user_id: str = Depends(get_current_user_id),
    service: PreferenceService = Depends(get_preference_service),
):
    """Replace the user's profile and mark onboarding as completed"""
    preferences = await service.update_preferences(user_id, body.to_preferences())
    return PreferencesResponse.from_preferences(user_id, preferences)
