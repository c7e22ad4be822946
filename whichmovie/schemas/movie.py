from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel

from ..models.movie import Movie
from ..models.user_movie import MovieTag, UserMovie


class MovieItem(BaseModel):
    """Single movie in a response"""
    movie_id: str
    title: str
    overview: Optional[str] = None
    poster_url: Optional[str] = None
    release_date: Optional[date] = None
    year: Optional[int] = None
    genres: List[str] = []
    runtime_minutes: Optional[int] = None
    imdb_rating: Optional[float] = None
    streaming_platforms: List[str] = []
    director: Optional[str] = None
    actors: List[str] = []
    rated: Optional[str] = None
    awards: Optional[str] = None
    imdb_id: Optional[str] = None
    recommendation_reason: Optional[str] = None

    @classmethod
    def from_movie(cls, movie: Movie) -> "MovieItem":
        return cls(movie_id=movie.movie_id, **movie.model_dump())


class UserMovieResponse(BaseModel):
    """A movie in the user's collection with its interaction flags"""
    movie_id: str
    movie: MovieItem
    tags: List[MovieTag]

    is_current_pick: bool
    is_in_history: bool
    is_liked: bool
    is_disliked: bool
    is_favorite: bool
    is_seen: bool
    is_to_watch: bool
    is_selected_for_tonight: bool

    recommended_at: Optional[datetime] = None
    liked_at: Optional[datetime] = None
    disliked_at: Optional[datetime] = None
    favorite_at: Optional[datetime] = None
    seen_at: Optional[datetime] = None
    to_watch_at: Optional[datetime] = None
    selected_for_tonight_at: Optional[datetime] = None
    last_updated: datetime

    @classmethod
    def from_user_movie(cls, user_movie: UserMovie) -> "UserMovieResponse":
        data = user_movie.model_dump(exclude={"user_id", "movie", "current_picks_since"})
        return cls(
            movie_id=user_movie.movie_id,
            movie=MovieItem.from_movie(user_movie.movie),
            tags=user_movie.active_tags,
            **data,
        )


class UserMovieListResponse(BaseModel):
    tag: MovieTag
    movies: List[UserMovieResponse]
    count: int


class TonightResponse(BaseModel):
    selection: Optional[UserMovieResponse] = None


class CleanupResponse(BaseModel):
    keep_count: int
    deleted: int
    updated: int
