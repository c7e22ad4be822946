import logging
from datetime import timedelta
from typing import List, Set

from ..core.clock import Clock
from ..models.user_movie import history_only, sort_by_recommendation
from ..repositories.daily_recommendation_repository import DailyRecommendationRepository
from ..repositories.seen_movie_repository import SeenMovieRepository
from .user_movie_service import UserMovieService

logger = logging.getLogger(__name__)


class ExclusionLedger:
    """
    What a user has already seen or been recommended.

    Lookups never raise: each source is read independently and a failing
    source contributes nothing, so a missing index or a transient database
    error does not block generation.
    """

    def __init__(
        self,
        seen_repo: SeenMovieRepository,
        daily_repo: DailyRecommendationRepository,
        user_movie_service: UserMovieService,
        clock: Clock,
        window_days: int = 7,
    ):
        self.seen_repo = seen_repo
        self.daily_repo = daily_repo
        self.user_movie_service = user_movie_service
        self.clock = clock
        self.window_days = window_days

    async def excluded_ids(self, user_id: str) -> Set[str]:
        seen_ids: Set[str] = set()
        recent_ids: Set[str] = set()

        try:
            seen_ids = {seen.movie_id for seen in await self.seen_repo.list_for_user(user_id)}
        except Exception:
            logger.warning("Could not load seen movies", extra={"user_id": user_id}, exc_info=True)

        try:
            since = self.clock.today() - timedelta(days=self.window_days)
            recent_ids = set(await self.daily_repo.get_recent_movie_ids(user_id, since))
        except Exception:
            logger.warning("Could not load recent recommendations", extra={"user_id": user_id}, exc_info=True)

        return seen_ids | recent_ids

    async def exclusion_titles(self, user_id: str, limit: int = 30) -> List[str]:
        """
        Titles the suggestion prompt should steer away from: liked, disliked
        and history entries (most recently updated first) followed by seen
        movies, without duplicates, capped at `limit`.
        """
        titles: List[str] = []

        try:
            user_movies = await self.user_movie_service.get_user_movies(user_id)
            for user_movie in sorted(user_movies, key=lambda m: m.last_updated, reverse=True):
                if user_movie.is_liked or user_movie.is_disliked or user_movie.is_in_history:
                    titles.append(user_movie.movie.title)
        except Exception:
            logger.warning("Could not load user movies", extra={"user_id": user_id}, exc_info=True)

        try:
            titles.extend(seen.title for seen in await self.seen_repo.list_for_user(user_id))
        except Exception:
            logger.warning("Could not load seen movies", extra={"user_id": user_id}, exc_info=True)

        unique = []
        keys = set()
        for title in titles:
            key = title.strip().lower()
            if key and key not in keys:
                keys.add(key)
                unique.append(title)
        return unique[:limit]

    async def cleanup_history(self, user_id: str, keep_count: int = 50) -> dict:
        """
        Keep the `keep_count` most recently recommended history entries.

        Older entries with no other interaction are deleted; the rest only
        lose their history flag so likes, favorites and seen marks survive.
        """
        history = sort_by_recommendation(history_only(await self.user_movie_service.get_user_movies(user_id)))
        if len(history) <= keep_count:
            return {"deleted": 0, "updated": 0}

        now = self.clock.now()
        beyond_cutoff = history[keep_count:]
        to_delete = [m for m in beyond_cutoff if not m.has_other_interactions]
        to_update = []
        for user_movie in beyond_cutoff:
            if user_movie.has_other_interactions:
                user_movie = user_movie.model_copy(deep=True)
                user_movie.remove_from_history(now)
                to_update.append(user_movie)

        for user_movie in to_delete:
            await self.user_movie_service.delete_user_movie(user_id, user_movie.movie_id)
        await self.user_movie_service.save_user_movies(to_update)
        self.user_movie_service.cache.invalidate(user_id)

        logger.info(
            "History cleanup completed",
            extra={"user_id": user_id, "deleted": len(to_delete), "updated": len(to_update)},
        )
        return {"deleted": len(to_delete), "updated": len(to_update)}
