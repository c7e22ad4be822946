from fastapi import APIRouter, Depends, Query

from ..config import HISTORY_KEEP_COUNT
from ..dependencies import get_current_user_id, get_exclusion_ledger, get_user_movie_service
from ..exceptions import UserMovieNotFoundError
from ..models.user_movie import MovieTag
from ..schemas.movie import (
    CleanupResponse,
    TonightResponse,
    UserMovieListResponse,
    UserMovieResponse,
)
from ..services.exclusion_ledger import ExclusionLedger
from ..services.user_movie_service import UserMovieService

router = APIRouter(prefix="/api/movies", tags=["movies"])


@router.get("", response_model=UserMovieListResponse)
async def list_movies(
    tag: MovieTag = MovieTag.ALL,
    user_id: str = Depends(get_current_user_id),
    service: UserMovieService = Depends(get_user_movie_service),
):
    """Browse the user's collection, filtered by tag"""
    movies = await service.get_user_movies(user_id, tag)
    movies = sorted(movies, key=lambda m: m.last_updated, reverse=True)
    return UserMovieListResponse(
        tag=tag,
        movies=[UserMovieResponse.from_user_movie(m) for m in movies],
        count=len(movies),
    )


# Fixed paths come before /{movie_id}

@router.get("/tonight", response_model=TonightResponse)
async def get_tonight(
    user_id: str = Depends(get_current_user_id),
    service: UserMovieService = Depends(get_user_movie_service),
):
    selection = await service.get_tonight_selection(user_id)
    return TonightResponse(selection=UserMovieResponse.from_user_movie(selection) if selection else None)


@router.delete("/tonight", response_model=TonightResponse)
async def clear_tonight(
    user_id: str = Depends(get_current_user_id),
    service: UserMovieService = Depends(get_user_movie_service),
):
    await service.clear_tonight_selection(user_id)
    return TonightResponse()


@router.post("/cleanup", response_model=CleanupResponse)
async def cleanup_history(
    keep_count: int = Query(HISTORY_KEEP_COUNT, ge=0, le=1000),
    user_id: str = Depends(get_current_user_id),
    ledger: ExclusionLedger = Depends(get_exclusion_ledger),
):
    """Trim the recommendation history to the `keep_count` most recent entries"""
    result = await ledger.cleanup_history(user_id, keep_count)
    return CleanupResponse(keep_count=keep_count, **result)


@router.get("/{movie_id}", response_model=UserMovieResponse)
async def get_movie(
    movie_id: str,
    user_id: str = Depends(get_current_user_id),
    service: UserMovieService = Depends(get_user_movie_service),
):
    user_movie = await service.get_user_movie(user_id, movie_id)
    if user_movie is None:
        raise UserMovieNotFoundError()
    return UserMovieResponse.from_user_movie(user_movie)


@router.post("/{movie_id}/like", response_model=UserMovieResponse)
async def like_movie(
    movie_id: str,
    user_id: str = Depends(get_current_user_id),
    service: UserMovieService = Depends(get_user_movie_service),
):
    return UserMovieResponse.from_user_movie(await service.like(user_id, movie_id))


@router.post("/{movie_id}/dislike", response_model=UserMovieResponse)
async def dislike_movie(
    movie_id: str,
    user_id: str = Depends(get_current_user_id),
    service: UserMovieService = Depends(get_user_movie_service),
):
    return UserMovieResponse.from_user_movie(await service.dislike(user_id, movie_id))


@router.post("/{movie_id}/favorite", response_model=UserMovieResponse)
async def toggle_favorite(
    movie_id: str,
    user_id: str = Depends(get_current_user_id),
    service: UserMovieService = Depends(get_user_movie_service),
):
    """Toggle: a second call removes the favorite"""
    return UserMovieResponse.from_user_movie(await service.toggle_favorite(user_id, movie_id))


@router.post("/{movie_id}/seen", response_model=UserMovieResponse)
async def mark_seen(
    movie_id: str,
    user_id: str = Depends(get_current_user_id),
    service: UserMovieService = Depends(get_user_movie_service),
):
    return UserMovieResponse.from_user_movie(await service.mark_as_seen(user_id, movie_id))


@router.post("/{movie_id}/watchlist", response_model=UserMovieResponse)
async def add_to_watchlist(
    movie_id: str,
    user_id: str = Depends(get_current_user_id),
    service: UserMovieService = Depends(get_user_movie_service),
):
    return UserMovieResponse.from_user_movie(await service.add_to_watchlist(user_id, movie_id))


@router.delete("/{movie_id}/watchlist", response_model=UserMovieResponse)
async def remove_from_watchlist(
    movie_id: str,
    user_id: str = Depends(get_current_user_id),
    service: UserMovieService = Depends(get_user_movie_service),
):
    return UserMovieResponse.from_user_movie(await service.remove_from_watchlist(user_id, movie_id))


@router.post("/{movie_id}/tonight", response_model=UserMovieResponse)
async def select_for_tonight(
    movie_id: str,
    user_id: str = Depends(get_current_user_id),
    service: UserMovieService = Depends(get_user_movie_service),
):
    """Pick this movie for tonight; any previous pick is deselected"""
    return UserMovieResponse.from_user_movie(await service.set_tonight_selection(user_id, movie_id))
