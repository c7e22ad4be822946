import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from ..core.clock import Clock
from ..models.user_movie import UserMovie

logger = logging.getLogger(__name__)


@dataclass
class _UserEntry:
    movies: Dict[str, UserMovie] = field(default_factory=dict)
    last_fetch: Optional[datetime] = None
    # Set once the whole collection was loaded; single puts only cache individual movies
    complete: bool = False


@dataclass
class CacheStats:
    total_users: int
    total_movies: int
    valid_caches: int
    hits: int
    misses: int

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


class UserMovieCache:
    """
    Per-user, per-process read-through cache in front of the user_movies table.

    A user's entries are all valid or all stale: the TTL runs from the last
    fetch or write for that user, and an expired user cache is purged on the
    next read. The database stays the source of truth; callers invalidate the
    user's cache after bulk mutations.

    Not safe for use from several event loops or threads.
    """

    def __init__(self, clock: Clock, ttl_s: float = 300.0, max_entries: int = 1000):
        self._clock = clock
        self._ttl = timedelta(seconds=ttl_s)
        self._max_entries = max_entries
        self._users: Dict[str, _UserEntry] = {}
        self._hits = 0
        self._misses = 0

    # Reads

    def get(self, user_id: str, movie_id: str) -> Optional[UserMovie]:
        entry = self._valid_entry(user_id)
        movie = entry.movies.get(movie_id) if entry else None
        self._track(movie is not None)
        return movie

    def get_all(self, user_id: str) -> Optional[List[UserMovie]]:
        entry = self._valid_entry(user_id)
        if entry is not None and not entry.complete:
            entry = None
        self._track(entry is not None)
        if entry is None:
            return None
        return list(entry.movies.values())

    # Writes

    def put(self, user_movie: UserMovie) -> None:
        entry = self._users.setdefault(user_movie.user_id, _UserEntry())
        entry.movies.pop(user_movie.movie_id, None)
        entry.movies[user_movie.movie_id] = user_movie
        self._enforce_limit(user_movie.user_id, entry)
        entry.last_fetch = self._clock.now()

    def put_many(self, user_id: str, user_movies: List[UserMovie], append: bool = False) -> None:
        entry = self._users.get(user_id)
        if entry is None or not append:
            entry = _UserEntry(complete=not append)
            self._users[user_id] = entry

        for user_movie in user_movies:
            entry.movies.pop(user_movie.movie_id, None)
            entry.movies[user_movie.movie_id] = user_movie

        self._enforce_limit(user_id, entry)
        entry.last_fetch = self._clock.now()
        logger.debug("Cached user movies", extra={"user_id": user_id, "count": len(user_movies)})

    def remove(self, user_id: str, movie_id: str) -> None:
        entry = self._users.get(user_id)
        if entry is not None:
            entry.movies.pop(movie_id, None)

    def invalidate(self, user_id: str) -> None:
        self._users.pop(user_id, None)
        logger.debug("Cache invalidated", extra={"user_id": user_id})

    def invalidate_all(self) -> None:
        self._users.clear()

    def stats(self) -> CacheStats:
        now = self._clock.now()
        valid = sum(
            1 for entry in self._users.values()
            if entry.last_fetch is not None and now - entry.last_fetch < self._ttl
        )
        return CacheStats(
            total_users=len(self._users),
            total_movies=sum(len(entry.movies) for entry in self._users.values()),
            valid_caches=valid,
            hits=self._hits,
            misses=self._misses,
        )

    # Internals

    def _valid_entry(self, user_id: str) -> Optional[_UserEntry]:
        entry = self._users.get(user_id)
        if entry is None or entry.last_fetch is None:
            return None

        if self._clock.now() - entry.last_fetch >= self._ttl:
            logger.debug("Cache expired", extra={"user_id": user_id})
            self.invalidate(user_id)
            return None
        return entry

    def _enforce_limit(self, user_id: str, entry: _UserEntry) -> None:
        if len(entry.movies) <= self._max_entries:
            return

        # Keep the most recently updated movies
        newest = sorted(entry.movies.values(), key=lambda m: m.last_updated, reverse=True)
        entry.movies = {m.movie_id: m for m in newest[:self._max_entries]}
        logger.info(
            "Cache trimmed",
            extra={"user_id": user_id, "count": len(entry.movies)},
        )

    def _track(self, hit: bool) -> None:
        if hit:
            self._hits += 1
        else:
            self._misses += 1
