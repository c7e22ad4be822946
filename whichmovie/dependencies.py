import asyncio
from typing import Dict, Optional

import asyncpg
import httpx
import redis.asyncio as redis
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer

from .config import (
    CACHE_MAX_ENTRIES,
    CACHE_TTL_SECONDS,
    RECENT_RECOMMENDATION_DAYS,
    RETRY_DELAY_SECONDS,
    settings,
)
from .core.clock import Clock, SystemClock
from .core.retry import ConstantBackoff
from .core.security import decode_user_id
from .exceptions import AuthenticationRequiredError
from .repositories.daily_recommendation_repository import DailyRecommendationRepository
from .repositories.profile_repository import ProfileRepository
from .repositories.seen_movie_repository import SeenMovieRepository
from .repositories.user_movie_repository import UserMovieRepository
from .services.exclusion_ledger import ExclusionLedger
from .services.metadata_client import MetadataClient
from .services.preference_service import PreferenceService
from .services.recommendation_service import RecommendationService
from .services.suggestion_client import SuggestionClient
from .services.user_movie_cache import UserMovieCache
from .services.user_movie_service import UserMovieService


# Global state for connections
class AppState:
    pg_pool: asyncpg.Pool = None
    redis_client: redis.Redis = None
    http_client: httpx.AsyncClient = None
    clock: Clock = SystemClock()
    user_movie_cache: UserMovieCache = None
    generation_locks: Dict[str, asyncio.Lock] = None


state = AppState()
state.user_movie_cache = UserMovieCache(state.clock, CACHE_TTL_SECONDS, CACHE_MAX_ENTRIES)
state.generation_locks = {}


async def init_resources():
    """Initialize all resources"""
    state.pg_pool = await asyncpg.create_pool(
        settings.POSTGRES_DSN,
        min_size=2,
        max_size=10,
        command_timeout=60
    )

    state.redis_client = redis.from_url(
        settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True
    )

    # Per-request timeouts are set by each client
    state.http_client = httpx.AsyncClient()


async def close_resources():
    """Close all resources"""
    if state.http_client:
        await state.http_client.aclose()
    if state.redis_client:
        await state.redis_client.aclose()
    if state.pg_pool:
        await state.pg_pool.close()


# Dependencies
async def get_db_pool() -> asyncpg.Pool:
    return state.pg_pool


async def get_redis() -> redis.Redis:
    return state.redis_client


async def get_http_client() -> httpx.AsyncClient:
    return state.http_client


def get_cache() -> UserMovieCache:
    return state.user_movie_cache


def get_clock() -> Clock:
    return state.clock


# Auth Dependencies
# Tokens are issued by the identity provider; this service only verifies them.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/token", auto_error=False)


async def get_current_user_id(token: Optional[str] = Depends(oauth2_scheme)) -> str:
    if not token:
        raise AuthenticationRequiredError()
    return decode_user_id(token)


# Services
async def get_user_movie_service(
    db=Depends(get_db_pool),
    cache: UserMovieCache = Depends(get_cache),
    clock: Clock = Depends(get_clock),
) -> UserMovieService:
    return UserMovieService(UserMovieRepository(db), SeenMovieRepository(db), cache, clock)


async def get_preference_service(db=Depends(get_db_pool)) -> PreferenceService:
    return PreferenceService(ProfileRepository(db))


async def get_exclusion_ledger(
    db=Depends(get_db_pool),
    user_movie_service: UserMovieService = Depends(get_user_movie_service),
    clock: Clock = Depends(get_clock),
) -> ExclusionLedger:
    return ExclusionLedger(
        SeenMovieRepository(db),
        DailyRecommendationRepository(db),
        user_movie_service,
        clock,
        window_days=RECENT_RECOMMENDATION_DAYS,
    )


async def get_recommendation_service(
    db=Depends(get_db_pool),
    redis_client=Depends(get_redis),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    clock: Clock = Depends(get_clock),
    preference_service: PreferenceService = Depends(get_preference_service),
    ledger: ExclusionLedger = Depends(get_exclusion_ledger),
    user_movie_service: UserMovieService = Depends(get_user_movie_service),
) -> RecommendationService:
    suggestion_client = SuggestionClient(
        http_client,
        api_key=settings.OPENAI_API_KEY,
        api_url=settings.OPENAI_API_URL,
        model=settings.OPENAI_MODEL,
        temperature=settings.OPENAI_TEMPERATURE,
        timeout_s=settings.OPENAI_TIMEOUT_SECONDS,
    )
    metadata_client = MetadataClient(
        http_client,
        api_key=settings.OMDB_API_KEY,
        base_url=settings.OMDB_API_URL,
        timeout_s=settings.OMDB_TIMEOUT_SECONDS,
    )
    return RecommendationService(
        preference_service,
        ledger,
        suggestion_client,
        metadata_client,
        DailyRecommendationRepository(db),
        user_movie_service,
        redis_client,
        clock,
        backoff=ConstantBackoff(RETRY_DELAY_SECONDS),
        generation_locks=state.generation_locks,
    )
