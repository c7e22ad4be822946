import logging
from collections import defaultdict
from typing import Callable, List, Optional

from ..core.clock import Clock
from ..core.security import require_user_id
from ..exceptions import UserMovieNotFoundError
from ..models.movie import Movie
from ..models.recommendation import SeenMovie
from ..models.user_movie import MovieTag, UserMovie, filter_by_tag
from ..repositories.seen_movie_repository import SeenMovieRepository
from ..repositories.user_movie_repository import UserMovieRepository
from .user_movie_cache import UserMovieCache

logger = logging.getLogger(__name__)


class UserMovieService:
    def __init__(
        self,
        user_movie_repo: UserMovieRepository,
        seen_repo: SeenMovieRepository,
        cache: UserMovieCache,
        clock: Clock,
    ):
        self.user_movie_repo = user_movie_repo
        self.seen_repo = seen_repo
        self.cache = cache
        self.clock = clock

    # CRUD

    async def get_user_movie(self, user_id: str, movie_id: str) -> Optional[UserMovie]:
        require_user_id(user_id)
        cached = self.cache.get(user_id, movie_id)
        if cached is not None:
            return cached

        user_movie = await self.user_movie_repo.get(user_id, movie_id)
        if user_movie is not None:
            self.cache.put(user_movie)
        return user_movie

    async def save_user_movie(self, user_movie: UserMovie) -> None:
        await self.user_movie_repo.upsert(user_movie)
        self.cache.put(user_movie)

    async def update_user_movie(self, user_movie: UserMovie) -> None:
        user_movie.last_updated = self.clock.now()
        await self.save_user_movie(user_movie)

    async def delete_user_movie(self, user_id: str, movie_id: str) -> None:
        await self.user_movie_repo.delete(user_id, movie_id)
        self.cache.remove(user_id, movie_id)
        logger.info("User movie deleted", extra={"user_id": user_id, "movie_id": movie_id})

    # Bulk

    async def get_user_movies(self, user_id: str, tag: Optional[MovieTag] = None) -> List[UserMovie]:
        require_user_id(user_id)
        user_movies = self.cache.get_all(user_id)
        if user_movies is None:
            user_movies = await self.user_movie_repo.list_for_user(user_id)
            self.cache.put_many(user_id, user_movies)
        return filter_by_tag(user_movies, tag)

    async def save_user_movies(self, user_movies: List[UserMovie]) -> None:
        if not user_movies:
            return
        await self.user_movie_repo.upsert_many(user_movies)

        by_user = defaultdict(list)
        for user_movie in user_movies:
            by_user[user_movie.user_id].append(user_movie)
        for user_id, movies in by_user.items():
            self.cache.put_many(user_id, movies, append=True)

    # Interactions

    async def update_interaction(
        self, user_id: str, movie_id: str, update: Callable[[UserMovie], None]
    ) -> UserMovie:
        user_movie = await self.get_user_movie(user_id, movie_id)
        if user_movie is None:
            raise UserMovieNotFoundError()

        # Cached instances are shared; mutate a copy until the write succeeds
        user_movie = user_movie.model_copy(deep=True)
        update(user_movie)
        await self.update_user_movie(user_movie)
        return user_movie

    async def like(self, user_id: str, movie_id: str) -> UserMovie:
        return await self.update_interaction(user_id, movie_id, lambda m: m.mark_as_liked(self.clock.now()))

    async def dislike(self, user_id: str, movie_id: str) -> UserMovie:
        return await self.update_interaction(user_id, movie_id, lambda m: m.mark_as_disliked(self.clock.now()))

    async def toggle_favorite(self, user_id: str, movie_id: str) -> UserMovie:
        return await self.update_interaction(user_id, movie_id, lambda m: m.toggle_favorite(self.clock.now()))

    async def add_to_watchlist(self, user_id: str, movie_id: str) -> UserMovie:
        return await self.update_interaction(user_id, movie_id, lambda m: m.add_to_watchlist(self.clock.now()))

    async def remove_from_watchlist(self, user_id: str, movie_id: str) -> UserMovie:
        return await self.update_interaction(user_id, movie_id, lambda m: m.remove_from_watchlist(self.clock.now()))

    async def mark_as_seen(self, user_id: str, movie_id: str) -> UserMovie:
        """Flag the movie as seen and record it in the seen list used for exclusions."""
        now = self.clock.now()
        user_movie = await self.update_interaction(user_id, movie_id, lambda m: m.mark_as_seen(now))
        await self.seen_repo.mark_seen(SeenMovie.from_movie(user_movie.movie, user_id, now))
        logger.info("Movie marked as seen", extra={"user_id": user_id, "movie_id": movie_id})
        return user_movie

    # Current picks

    async def get_current_picks(self, user_id: str) -> List[UserMovie]:
        picks = await self.get_user_movies(user_id, MovieTag.CURRENT_PICKS)
        return sorted(
            picks,
            key=lambda m: m.current_picks_since.timestamp() if m.current_picks_since else float("-inf"),
            reverse=True,
        )

    async def clear_current_picks(self, user_id: str) -> None:
        now = self.clock.now()
        picks = [p.model_copy(deep=True) for p in await self.get_current_picks(user_id)]
        for pick in picks:
            pick.remove_from_current_picks(now)

        if picks:
            await self.save_user_movies(picks)
            logger.info("Cleared current picks", extra={"user_id": user_id, "count": len(picks)})
        self.cache.invalidate(user_id)

    async def set_current_picks(self, user_id: str, movies: List[Movie]) -> List[UserMovie]:
        """Replace the current batch; previous picks stay in the history."""
        await self.clear_current_picks(user_id)

        now = self.clock.now()
        new_picks = []
        for movie in movies:
            user_movie = await self.get_user_movie(user_id, movie.movie_id)
            if user_movie is None:
                user_movie = UserMovie.create(user_id, movie, now)
            else:
                # Keep interaction flags, refresh the metadata
                user_movie = user_movie.model_copy(update={"movie": movie}, deep=True)
            user_movie.mark_as_current_pick(now)
            new_picks.append(user_movie)

        await self.save_user_movies(new_picks)
        self.cache.invalidate(user_id)
        logger.info("Set current picks", extra={"user_id": user_id, "count": len(new_picks)})
        return new_picks

    # Tonight selection

    async def get_tonight_selection(self, user_id: str) -> Optional[UserMovie]:
        selected = await self.get_user_movies(user_id, MovieTag.TONIGHT)
        return selected[0] if selected else None

    async def clear_tonight_selection(self, user_id: str) -> None:
        now = self.clock.now()
        for selected in await self.get_user_movies(user_id, MovieTag.TONIGHT):
            await self.update_interaction(user_id, selected.movie_id, lambda m: m.deselect_for_tonight(now))

    async def set_tonight_selection(self, user_id: str, movie_id: str) -> UserMovie:
        # An unknown target must leave the current selection untouched
        if await self.get_user_movie(user_id, movie_id) is None:
            raise UserMovieNotFoundError()
        await self.clear_tonight_selection(user_id)
        return await self.update_interaction(
            user_id, movie_id, lambda m: m.select_for_tonight(self.clock.now())
        )
