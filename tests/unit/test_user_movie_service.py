import pytest
from unittest.mock import AsyncMock

from whichmovie.exceptions import AuthenticationRequiredError, UserMovieNotFoundError
from whichmovie.models.movie import Movie
from whichmovie.models.user_movie import MovieTag, UserMovie
from whichmovie.repositories.seen_movie_repository import SeenMovieRepository
from whichmovie.repositories.user_movie_repository import UserMovieRepository
from whichmovie.services.user_movie_service import UserMovieService


@pytest.fixture
def mock_user_movie_repo():
    repo = AsyncMock(spec=UserMovieRepository)
    repo.get.return_value = None
    repo.list_for_user.return_value = []
    return repo


@pytest.fixture
def mock_seen_repo():
    return AsyncMock(spec=SeenMovieRepository)


@pytest.fixture
def service(mock_user_movie_repo, mock_seen_repo, cache, clock):
    return UserMovieService(mock_user_movie_repo, mock_seen_repo, cache, clock)


def stored(clock, title, **flags):
    return UserMovie.create("u1", Movie(title=title), clock.now()).model_copy(update=flags)


@pytest.mark.asyncio
async def test_get_user_movie_reads_through_cache(service, mock_user_movie_repo, clock):
    mock_user_movie_repo.get.return_value = stored(clock, "Heat")

    first = await service.get_user_movie("u1", "heat")
    second = await service.get_user_movie("u1", "heat")

    assert first.movie.title == second.movie.title == "Heat"
    mock_user_movie_repo.get.assert_called_once_with("u1", "heat")


@pytest.mark.asyncio
async def test_get_user_movies_filters_by_tag(service, mock_user_movie_repo, clock):
    mock_user_movie_repo.list_for_user.return_value = [
        stored(clock, "Heat", is_liked=True),
        stored(clock, "Ronin"),
    ]

    liked = await service.get_user_movies("u1", MovieTag.LIKED)
    everything = await service.get_user_movies("u1")

    assert [m.movie.title for m in liked] == ["Heat"]
    assert len(everything) == 2
    mock_user_movie_repo.list_for_user.assert_called_once_with("u1")


@pytest.mark.asyncio
async def test_empty_user_id_is_rejected(service):
    with pytest.raises(AuthenticationRequiredError):
        await service.get_user_movies("")


@pytest.mark.asyncio
async def test_like_unknown_movie_raises(service):
    with pytest.raises(UserMovieNotFoundError):
        await service.like("u1", "nope")


@pytest.mark.asyncio
async def test_like_persists_and_updates_cache(service, mock_user_movie_repo, clock):
    mock_user_movie_repo.get.return_value = stored(clock, "Heat", is_disliked=True)
    clock.advance(minutes=5)

    liked = await service.like("u1", "heat")

    assert liked.is_liked and not liked.is_disliked
    assert liked.last_updated == clock.now()
    saved = mock_user_movie_repo.upsert.call_args.args[0]
    assert saved.is_liked
    assert (await service.get_user_movie("u1", "heat")).is_liked


@pytest.mark.asyncio
async def test_failed_write_leaves_cached_copy_untouched(service, mock_user_movie_repo, clock):
    mock_user_movie_repo.get.return_value = stored(clock, "Heat")
    await service.get_user_movie("u1", "heat")
    mock_user_movie_repo.upsert.side_effect = RuntimeError("db down")

    with pytest.raises(RuntimeError):
        await service.toggle_favorite("u1", "heat")

    assert not (await service.get_user_movie("u1", "heat")).is_favorite


@pytest.mark.asyncio
async def test_mark_as_seen_records_seen_movie(service, mock_user_movie_repo, mock_seen_repo, clock):
    mock_user_movie_repo.get.return_value = stored(clock, "Heat")

    seen = await service.mark_as_seen("u1", "heat")

    assert seen.is_seen
    recorded = mock_seen_repo.mark_seen.call_args.args[0]
    assert recorded.movie_id == "heat"
    assert recorded.title == "Heat"


@pytest.mark.asyncio
async def test_set_current_picks_replaces_previous_batch(service, mock_user_movie_repo, clock):
    old_pick = stored(clock, "Heat")
    old_pick.mark_as_current_pick(clock.now())
    liked = stored(clock, "Ronin", is_liked=True)
    mock_user_movie_repo.list_for_user.return_value = [old_pick, liked]
    mock_user_movie_repo.get.side_effect = lambda user_id, movie_id: {"ronin": liked}.get(movie_id)
    clock.advance(days=1)

    picks = await service.set_current_picks("u1", [Movie(title="Ronin", year=1998), Movie(title="Alien")])

    assert [p.movie.title for p in picks] == ["Ronin", "Alien"]
    assert all(p.is_current_pick and p.is_in_history for p in picks)
    # Existing interactions survive, metadata is refreshed
    assert picks[0].is_liked
    assert picks[0].movie.year == 1998

    cleared = mock_user_movie_repo.upsert_many.call_args_list[0].args[0]
    assert [m.movie.title for m in cleared] == ["Heat"]
    assert not cleared[0].is_current_pick
    assert cleared[0].is_in_history


@pytest.mark.asyncio
async def test_set_tonight_selection_deselects_previous(service, mock_user_movie_repo, clock):
    heat = stored(clock, "Heat", is_selected_for_tonight=True)
    ronin = stored(clock, "Ronin")
    mock_user_movie_repo.list_for_user.return_value = [heat, ronin]
    mock_user_movie_repo.get.side_effect = lambda user_id, movie_id: {"heat": heat, "ronin": ronin}.get(movie_id)

    selected = await service.set_tonight_selection("u1", "ronin")

    assert selected.is_selected_for_tonight
    tonight = await service.get_tonight_selection("u1")
    assert tonight.movie_id == "ronin"
    assert not (await service.get_user_movie("u1", "heat")).is_selected_for_tonight


@pytest.mark.asyncio
async def test_set_tonight_selection_unknown_movie_keeps_current_pick(service, mock_user_movie_repo, clock):
    heat = stored(clock, "Heat", is_selected_for_tonight=True)
    mock_user_movie_repo.list_for_user.return_value = [heat]

    with pytest.raises(UserMovieNotFoundError):
        await service.set_tonight_selection("u1", "does-not-exist")

    mock_user_movie_repo.upsert.assert_not_called()
    mock_user_movie_repo.upsert_many.assert_not_called()
    tonight = await service.get_tonight_selection("u1")
    assert tonight.movie_id == "heat"


@pytest.mark.asyncio
async def test_delete_user_movie(service, mock_user_movie_repo, clock):
    mock_user_movie_repo.list_for_user.return_value = [stored(clock, "Heat")]
    await service.get_user_movies("u1")

    await service.delete_user_movie("u1", "heat")

    mock_user_movie_repo.delete.assert_called_once_with("u1", "heat")
    assert await service.get_user_movies("u1") == []
