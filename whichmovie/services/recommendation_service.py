import time
import asyncio
import logging
from datetime import datetime, time as dt_time, timedelta
from typing import Dict, List, Optional, Tuple
import redis.asyncio as redis
from redis.exceptions import RedisError

from ..config import EXCLUSION_CONTEXT_LIMIT, MAX_GENERATION_ATTEMPTS, RECOMMENDATIONS_PER_DAY
from ..core.clock import Clock
from ..core.retry import ConstantBackoff
from ..core.security import require_user_id
from ..exceptions import ExternalServiceError, GenerationFailedError, InvalidResponseError
from ..models.movie import Movie, MovieStub, dedupe_by_title
from ..models.recommendation import DailyRecommendations, UserPreferences
from ..models.user_movie import UserMovie
from ..repositories.daily_recommendation_repository import DailyRecommendationRepository
from .exclusion_ledger import ExclusionLedger
from .metadata_client import MetadataClient
from .preference_service import PreferenceService
from .suggestion_client import SuggestionClient
from .user_movie_service import UserMovieService

logger = logging.getLogger(__name__)


class RecommendationService:
    def __init__(
        self,
        preference_service: PreferenceService,
        ledger: ExclusionLedger,
        suggestion_client: SuggestionClient,
        metadata_client: MetadataClient,
        daily_repo: DailyRecommendationRepository,
        user_movie_service: UserMovieService,
        redis_client: redis.Redis,
        clock: Clock,
        backoff: Optional[ConstantBackoff] = None,
        max_attempts: int = MAX_GENERATION_ATTEMPTS,
        batch_size: int = RECOMMENDATIONS_PER_DAY,
        exclusion_limit: int = EXCLUSION_CONTEXT_LIMIT,
        generation_locks: Optional[Dict[str, asyncio.Lock]] = None,
    ):
        self.preference_service = preference_service
        self.ledger = ledger
        self.suggestion_client = suggestion_client
        self.metadata_client = metadata_client
        self.daily_repo = daily_repo
        self.user_movie_service = user_movie_service
        self.redis_client = redis_client
        self.clock = clock
        self.backoff = backoff or ConstantBackoff()
        self.max_attempts = max_attempts
        self.batch_size = batch_size
        self.exclusion_limit = exclusion_limit
        # Shared across requests so one user never has two generations in flight
        self.generation_locks = generation_locks if generation_locks is not None else {}

    async def generate(self, user_id: str) -> List[UserMovie]:
        """
        Generate today's recommendations for a user.

        Strategy:
        1. Require genres + platforms (MissingPreferencesError, no network call)
        2. Collect titles to steer the model away from
        3. Ask the LLM for a batch, enrich each stub via OMDB, dedupe by title;
           retry the whole batch on failure
        4. Persist the day's batch and make it the user's current picks
        """
        _, picks = await self._generate_batch(user_id)
        return picks

    async def get_todays_recommendations(self, user_id: str) -> Optional[DailyRecommendations]:
        require_user_id(user_id)
        day = self.clock.today()

        # 1. Check L1 (Redis)
        cache_key = self._cache_key(user_id, day)
        try:
            cached = await self.redis_client.get(cache_key)
        except RedisError:
            logger.warning("Redis read failed", extra={"user_id": user_id}, exc_info=True)
            cached = None
        if cached:
            return DailyRecommendations.model_validate_json(cached)

        # 2. Fall back to the document store
        batch = await self.daily_repo.get(user_id, day)
        if batch is not None:
            await self._cache_batch(batch)
        return batch

    async def should_generate(self, user_id: str) -> bool:
        return await self.get_todays_recommendations(user_id) is None

    async def get_or_generate(self, user_id: str) -> Tuple[DailyRecommendations, bool]:
        """Today's batch, generating it first if needed. Second value tells whether it was generated."""
        batch = await self.get_todays_recommendations(user_id)
        if batch is not None:
            return batch, False
        async with self._lock_for(user_id):
            # Another request may have generated it while this one waited
            batch = await self.get_todays_recommendations(user_id)
            if batch is not None:
                return batch, False
            batch, _ = await self._build_batch(user_id)
        return batch, True

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        return self.generation_locks.setdefault(user_id, asyncio.Lock())

    async def _generate_batch(self, user_id: str) -> Tuple[DailyRecommendations, List[UserMovie]]:
        require_user_id(user_id)
        async with self._lock_for(user_id):
            return await self._build_batch(user_id)

    async def _build_batch(self, user_id: str) -> Tuple[DailyRecommendations, List[UserMovie]]:
        start_time = time.time()
        logger.info("Starting daily recommendations generation", extra={"user_id": user_id})

        preferences = await self.preference_service.require_preferences(user_id)
        exclusions = await self.ledger.exclusion_titles(user_id, self.exclusion_limit)

        movies = await self._generate_movies(user_id, preferences, exclusions)

        batch = DailyRecommendations(
            user_id=user_id,
            day=self.clock.today(),
            movies=movies,
            generated_at=self.clock.now(),
        )
        await self.daily_repo.save(batch)
        await self._cache_batch(batch)
        picks = await self.user_movie_service.set_current_picks(user_id, movies)

        logger.info(
            "Daily recommendations generated",
            extra={
                "user_id": user_id,
                "count": len(picks),
                "computation_time_ms": int((time.time() - start_time) * 1000),
            },
        )
        return batch, picks

    async def _generate_movies(
        self, user_id: str, preferences: UserPreferences, exclusions: List[str]
    ) -> List[Movie]:
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                stubs = await self.suggestion_client.suggest_movies(
                    platforms=[p.value for p in preferences.favorite_platforms],
                    genres=[g.value for g in preferences.favorite_genres],
                    actors=preferences.favorite_actors,
                    exclusions=exclusions,
                    count=self.batch_size,
                )
                if not stubs:
                    raise InvalidResponseError("Suggestion list is empty")

                # Sequential: one OMDB request in flight per user
                enriched = [await self._enrich(stub) for stub in stubs]
                return dedupe_by_title(enriched)[:self.batch_size]

            except ExternalServiceError as e:
                last_error = e
                logger.warning(
                    f"Generation attempt failed: {e}",
                    extra={"user_id": user_id, "attempt": attempt, "max_attempts": self.max_attempts},
                )

            if attempt < self.max_attempts:
                await self.backoff.wait(attempt)

        logger.error(
            "All generation attempts failed",
            extra={"user_id": user_id, "attempts": self.max_attempts},
        )
        raise GenerationFailedError(last_error)

    async def _enrich(self, stub: MovieStub) -> Movie:
        try:
            return await self.metadata_client.enrich(stub)
        except ExternalServiceError as e:
            logger.warning(
                f"OMDB enrichment failed, using suggestion data only: {e}",
                extra={"title": stub.title},
            )
            return Movie.from_stub(stub)

    async def _cache_batch(self, batch: DailyRecommendations) -> None:
        # Valid until the end of the batch's day
        end_of_day = datetime.combine(batch.day + timedelta(days=1), dt_time.min, tzinfo=self.clock.now().tzinfo)
        ttl = max(int((end_of_day - self.clock.now()).total_seconds()), 1)
        try:
            await self.redis_client.setex(
                self._cache_key(batch.user_id, batch.day), ttl, batch.model_dump_json()
            )
        except RedisError:
            logger.warning("Redis write failed", extra={"user_id": batch.user_id}, exc_info=True)

    @staticmethod
    def _cache_key(user_id: str, day) -> str:
        return f"daily_recs:{user_id}:{day.isoformat()}"
