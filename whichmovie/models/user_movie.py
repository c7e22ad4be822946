from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional

from pydantic import BaseModel

from .movie import Movie


class MovieTag(str, Enum):
    ALL = "all"
    CURRENT_PICKS = "current_picks"
    HISTORY = "history"
    LIKED = "liked"
    DISLIKED = "disliked"
    FAVORITES = "favorites"
    SEEN = "seen"
    TO_WATCH = "to_watch"
    TONIGHT = "tonight"


class UserMovie(BaseModel):
    """
    A movie in one user's collection plus that user's interaction state.

    State transitions take the current time explicitly so that callers
    control the clock.
    """
    user_id: str
    movie: Movie

    is_current_pick: bool = False
    is_in_history: bool = False
    is_liked: bool = False
    is_disliked: bool = False
    is_favorite: bool = False
    is_seen: bool = False
    is_to_watch: bool = False
    is_selected_for_tonight: bool = False

    recommended_at: Optional[datetime] = None
    current_picks_since: Optional[datetime] = None
    liked_at: Optional[datetime] = None
    disliked_at: Optional[datetime] = None
    favorite_at: Optional[datetime] = None
    seen_at: Optional[datetime] = None
    to_watch_at: Optional[datetime] = None
    selected_for_tonight_at: Optional[datetime] = None
    last_updated: datetime

    @classmethod
    def create(cls, user_id: str, movie: Movie, now: datetime) -> "UserMovie":
        return cls(user_id=user_id, movie=movie, last_updated=now)

    @property
    def movie_id(self) -> str:
        return self.movie.movie_id

    @property
    def has_other_interactions(self) -> bool:
        # Anything besides being recommended keeps the document alive
        return (
            self.is_liked
            or self.is_disliked
            or self.is_favorite
            or self.is_seen
            or self.is_to_watch
            or self.is_selected_for_tonight
        )

    @property
    def active_tags(self) -> List[MovieTag]:
        flags = [
            (self.is_current_pick, MovieTag.CURRENT_PICKS),
            (self.is_in_history, MovieTag.HISTORY),
            (self.is_liked, MovieTag.LIKED),
            (self.is_disliked, MovieTag.DISLIKED),
            (self.is_favorite, MovieTag.FAVORITES),
            (self.is_seen, MovieTag.SEEN),
            (self.is_to_watch, MovieTag.TO_WATCH),
            (self.is_selected_for_tonight, MovieTag.TONIGHT),
        ]
        return [MovieTag.ALL] + [tag for active, tag in flags if active]

    def has_tag(self, tag: MovieTag) -> bool:
        return tag in self.active_tags

    def mark_as_current_pick(self, now: datetime) -> None:
        # Current picks are also part of the history
        self.is_current_pick = True
        self.current_picks_since = now
        self.recommended_at = self.recommended_at or now
        self.is_in_history = True
        self.last_updated = now

    def remove_from_current_picks(self, now: datetime) -> None:
        self.is_current_pick = False
        self.current_picks_since = None
        self.last_updated = now

    def mark_as_liked(self, now: datetime) -> None:
        self.is_liked = True
        self.liked_at = now
        self.is_disliked = False
        self.disliked_at = None
        self.last_updated = now

    def mark_as_disliked(self, now: datetime) -> None:
        self.is_disliked = True
        self.disliked_at = now
        self.is_liked = False
        self.liked_at = None
        self.last_updated = now

    def toggle_favorite(self, now: datetime) -> None:
        self.is_favorite = not self.is_favorite
        self.favorite_at = now if self.is_favorite else None
        self.last_updated = now

    def mark_as_seen(self, now: datetime) -> None:
        self.is_seen = True
        self.seen_at = now
        self.last_updated = now

    def add_to_watchlist(self, now: datetime) -> None:
        self.is_to_watch = True
        self.to_watch_at = now
        self.last_updated = now

    def remove_from_watchlist(self, now: datetime) -> None:
        self.is_to_watch = False
        self.to_watch_at = None
        self.last_updated = now

    def select_for_tonight(self, now: datetime) -> None:
        self.is_selected_for_tonight = True
        self.selected_for_tonight_at = now
        self.last_updated = now

    def deselect_for_tonight(self, now: datetime) -> None:
        self.is_selected_for_tonight = False
        self.selected_for_tonight_at = None
        self.last_updated = now

    def remove_from_history(self, now: datetime) -> None:
        self.is_in_history = False
        self.recommended_at = None
        self.last_updated = now


def filter_by_tag(movies: Iterable[UserMovie], tag: Optional[MovieTag]) -> List[UserMovie]:
    if tag is None or tag == MovieTag.ALL:
        return list(movies)
    return [m for m in movies if m.has_tag(tag)]


def history_only(movies: Iterable[UserMovie]) -> List[UserMovie]:
    """History entries that are not part of the current batch."""
    return [m for m in movies if m.is_in_history and not m.is_current_pick]


def sort_by_recommendation(movies: Iterable[UserMovie]) -> List[UserMovie]:
    """Most recently recommended first; never-recommended entries last."""
    return sorted(
        movies,
        key=lambda m: m.recommended_at.timestamp() if m.recommended_at else float("-inf"),
        reverse=True,
    )
