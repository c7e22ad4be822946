import json
import logging
from typing import List, Optional, Type, TypeVar
from asyncpg import Pool

from ..models.movie import MovieGenre, StreamingPlatform
from ..models.recommendation import MoodPreference, UserPreferences, WatchingFrequency
from .schema import load_json

logger = logging.getLogger(__name__)

E = TypeVar("E")


def _known_values(raw, enum_cls: Type[E]) -> List[E]:
    values = []
    for item in load_json(raw) or []:
        try:
            values.append(enum_cls(item))
        except ValueError:
            logger.warning("Ignoring unknown preference value", extra={"value": item})
    return values


def _known_value(raw, enum_cls: Type[E], default: E) -> E:
    try:
        return enum_cls(raw)
    except ValueError:
        logger.warning("Ignoring unknown preference value", extra={"value": raw})
        return default


class ProfileRepository:
    def __init__(self, db: Pool):
        self.db = db

    async def get_preferences(self, user_id: str) -> Optional[UserPreferences]:
        query = """
            SELECT favorite_genres, favorite_actors, favorite_platforms,
                   movie_watching_frequency, movie_mood_preference, has_completed_onboarding
            FROM user_profiles
            WHERE user_id = $1
        """
        row = await self.db.fetchrow(query, user_id)
        if not row:
            return None

        return UserPreferences(
            favorite_genres=_known_values(row['favorite_genres'], MovieGenre),
            favorite_actors=load_json(row['favorite_actors']) or [],
            favorite_platforms=_known_values(row['favorite_platforms'], StreamingPlatform),
            movie_watching_frequency=_known_value(
                row['movie_watching_frequency'], WatchingFrequency, WatchingFrequency.WEEKLY
            ),
            movie_mood_preference=_known_value(
                row['movie_mood_preference'], MoodPreference, MoodPreference.DISCOVER
            ),
            has_completed_onboarding=bool(row['has_completed_onboarding']),
        )

    async def save_preferences(self, user_id: str, preferences: UserPreferences) -> None:
        query = """
            INSERT INTO user_profiles (
                user_id, favorite_genres, favorite_actors, favorite_platforms,
                movie_watching_frequency, movie_mood_preference, has_completed_onboarding, updated_at
            )
            VALUES ($1, $2::jsonb, $3::jsonb, $4::jsonb, $5, $6, $7, NOW())
            ON CONFLICT (user_id) DO UPDATE SET
                favorite_genres = EXCLUDED.favorite_genres,
                favorite_actors = EXCLUDED.favorite_actors,
                favorite_platforms = EXCLUDED.favorite_platforms,
                movie_watching_frequency = EXCLUDED.movie_watching_frequency,
                movie_mood_preference = EXCLUDED.movie_mood_preference,
                has_completed_onboarding = user_profiles.has_completed_onboarding
                    OR EXCLUDED.has_completed_onboarding,
                updated_at = NOW()
        """
        await self.db.execute(
            query,
            user_id,
            json.dumps([g.value for g in preferences.favorite_genres]),
            json.dumps(preferences.favorite_actors),
            json.dumps([p.value for p in preferences.favorite_platforms]),
            preferences.movie_watching_frequency.value,
            preferences.movie_mood_preference.value,
            preferences.has_completed_onboarding,
        )
