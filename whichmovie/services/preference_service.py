import logging

from ..core.security import require_user_id
from ..exceptions import MissingPreferencesError
from ..models.recommendation import UserPreferences
from ..repositories.profile_repository import ProfileRepository

logger = logging.getLogger(__name__)

INCOMPLETE_PREFERENCES_MESSAGE = "Preferences incomplete: choose at least one genre and one platform."


class PreferenceService:
    def __init__(self, profile_repo: ProfileRepository):
        self.profile_repo = profile_repo

    async def get_preferences(self, user_id: str) -> UserPreferences:
        require_user_id(user_id)
        preferences = await self.profile_repo.get_preferences(user_id)
        return preferences or UserPreferences()

    async def require_preferences(self, user_id: str) -> UserPreferences:
        """Preferences complete enough to generate recommendations."""
        preferences = await self.get_preferences(user_id)
        if not preferences.can_generate:
            if preferences.has_completed_onboarding:
                raise MissingPreferencesError(INCOMPLETE_PREFERENCES_MESSAGE)
            raise MissingPreferencesError()
        return preferences

    async def update_preferences(self, user_id: str, preferences: UserPreferences) -> UserPreferences:
        require_user_id(user_id)
        # Saving a profile is what completes onboarding
        preferences = preferences.model_copy(update={"has_completed_onboarding": True})
        await self.profile_repo.save_preferences(user_id, preferences)
        logger.info(
            "Preferences updated",
            extra={
                "user_id": user_id,
                "genres": len(preferences.favorite_genres),
                "platforms": len(preferences.favorite_platforms),
            },
        )
        return preferences
