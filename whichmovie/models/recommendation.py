from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from .movie import Movie, MovieGenre, StreamingPlatform


class WatchingFrequency(str, Enum):
    DAILY = "daily"
    TWO_THREE_TIMES_WEEK = "2-3_times_week"
    WEEKLY = "weekly"
    OCCASIONALLY = "occasionally"


class MoodPreference(str, Enum):
    DISCOVER = "discover"
    FAMILIAR = "familiar"
    BOTH = "both"


class UserPreferences(BaseModel):
    favorite_genres: List[MovieGenre] = Field(default_factory=list)
    favorite_actors: List[str] = Field(default_factory=list)
    favorite_platforms: List[StreamingPlatform] = Field(default_factory=list)
    movie_watching_frequency: WatchingFrequency = WatchingFrequency.WEEKLY
    movie_mood_preference: MoodPreference = MoodPreference.DISCOVER
    # Stays set once the profile has been saved, even if the lists are later emptied
    has_completed_onboarding: bool = False

    @property
    def can_generate(self) -> bool:
        return bool(self.favorite_genres) and bool(self.favorite_platforms)


class DailyRecommendations(BaseModel):
    """One generated batch; at most one per user per calendar day"""
    user_id: str
    day: date
    movies: List[Movie]
    generated_at: datetime


class SeenMovie(BaseModel):
    user_id: str
    movie_id: str
    title: str
    poster_url: Optional[str] = None
    seen_at: datetime

    @classmethod
    def from_movie(cls, movie: Movie, user_id: str, now: datetime) -> "SeenMovie":
        return cls(
            user_id=user_id,
            movie_id=movie.movie_id,
            title=movie.title,
            poster_url=movie.poster_url,
            seen_at=now,
        )
