from fastapi import APIRouter, Depends

from ..dependencies import get_cache
from ..services.user_movie_cache import UserMovieCache

router = APIRouter(tags=["metrics"])


@router.get("/api/metrics")
async def get_metrics(cache: UserMovieCache = Depends(get_cache)):
    """Get process metrics"""
    stats = cache.stats()
    return {
        "user_movie_cache": {
            "total_users": stats.total_users,
            "total_movies": stats.total_movies,
            "valid_caches": stats.valid_caches,
            "hits": stats.hits,
            "misses": stats.misses,
            "hit_rate": round(stats.hit_rate, 4),
        }
    }
