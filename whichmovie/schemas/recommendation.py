from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.movie import MovieGenre, StreamingPlatform
from ..models.recommendation import DailyRecommendations, MoodPreference, UserPreferences, WatchingFrequency
from .movie import MovieItem, UserMovieResponse


class PreferencesUpdate(BaseModel):
    """Input from the onboarding / settings screens"""
    favorite_genres: List[MovieGenre] = Field(default_factory=list, max_length=len(MovieGenre))
    favorite_actors: List[str] = Field(default_factory=list, max_length=20)
    favorite_platforms: List[StreamingPlatform] = Field(
        default_factory=list, max_length=len(StreamingPlatform)
    )
    movie_watching_frequency: WatchingFrequency = WatchingFrequency.WEEKLY
    movie_mood_preference: MoodPreference = MoodPreference.DISCOVER

    def to_preferences(self) -> UserPreferences:
        actors = [actor.strip() for actor in self.favorite_actors if actor.strip()]
        return UserPreferences(
            favorite_genres=list(dict.fromkeys(self.favorite_genres)),
            favorite_actors=list(dict.fromkeys(actors)),
            favorite_platforms=list(dict.fromkeys(self.favorite_platforms)),
            movie_watching_frequency=self.movie_watching_frequency,
            movie_mood_preference=self.movie_mood_preference,
        )


class PreferencesResponse(BaseModel):
    user_id: str
    favorite_genres: List[MovieGenre]
    favorite_actors: List[str]
    favorite_platforms: List[StreamingPlatform]
    movie_watching_frequency: WatchingFrequency
    movie_mood_preference: MoodPreference
    has_completed_onboarding: bool
    can_generate: bool

    @classmethod
    def from_preferences(cls, user_id: str, preferences: UserPreferences) -> "PreferencesResponse":
        return cls(user_id=user_id, can_generate=preferences.can_generate, **preferences.model_dump())


class DailyRecommendationsResponse(BaseModel):
    """API response for today's batch"""
    user_id: str
    day: Optional[date] = None
    generated_at: Optional[datetime] = None
    generated: bool = False
    movies: List[MovieItem] = []

    @classmethod
    def from_batch(cls, batch: DailyRecommendations, generated: bool = False) -> "DailyRecommendationsResponse":
        return cls(
            user_id=batch.user_id,
            day=batch.day,
            generated_at=batch.generated_at,
            generated=generated,
            movies=[MovieItem.from_movie(movie) for movie in batch.movies],
        )


class RefreshResponse(BaseModel):
    user_id: str
    picks: List[UserMovieResponse]
    count: int


class ExclusionsResponse(BaseModel):
    user_id: str
    excluded_ids: List[str]
    exclusion_titles: List[str]
