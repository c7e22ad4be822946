from datetime import datetime, timezone

import pytest
from httpx import AsyncClient
from unittest.mock import AsyncMock

from whichmovie.models.movie import Movie
from whichmovie.models.user_movie import UserMovie

NOW = datetime(2026, 3, 14, 20, 0, tzinfo=timezone.utc)


def stored_row(title, **flags):
    user_movie = UserMovie.create("user-1", Movie(title=title), NOW).model_copy(update=flags)
    return {"data": user_movie.model_dump_json()}


@pytest.mark.asyncio
async def test_unknown_movie_is_404(client: AsyncClient, auth_headers):
    response = await client.get("/api/movies/nope", headers=auth_headers)

    assert response.status_code == 404
    assert response.json()["error"] == "UserMovieNotFoundError"


@pytest.mark.asyncio
async def test_like_unknown_movie_is_404(client: AsyncClient, auth_headers):
    response = await client.post("/api/movies/nope/like", headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_like_then_list_liked(client: AsyncClient, auth_headers, mock_db_pool: AsyncMock):
    mock_db_pool.fetchrow.return_value = stored_row("Heat", is_disliked=True)

    response = await client.post("/api/movies/heat/like", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["is_liked"] is True
    assert body["is_disliked"] is False
    assert "liked" in body["tags"]
    mock_db_pool.execute.assert_called_once()

    mock_db_pool.fetch.return_value = [stored_row("Heat", is_liked=True), stored_row("Ronin")]
    response = await client.get("/api/movies?tag=liked", headers=auth_headers)
    body = response.json()
    assert body["count"] == 1
    assert body["movies"][0]["movie"]["title"] == "Heat"


@pytest.mark.asyncio
async def test_favorite_toggles(client: AsyncClient, auth_headers, mock_db_pool: AsyncMock):
    mock_db_pool.fetchrow.return_value = stored_row("Heat")

    first = await client.post("/api/movies/heat/favorite", headers=auth_headers)
    second = await client.post("/api/movies/heat/favorite", headers=auth_headers)

    assert first.json()["is_favorite"] is True
    assert second.json()["is_favorite"] is False


@pytest.mark.asyncio
async def test_watchlist_add_and_remove(client: AsyncClient, auth_headers, mock_db_pool: AsyncMock):
    mock_db_pool.fetchrow.return_value = stored_row("Heat")

    added = await client.post("/api/movies/heat/watchlist", headers=auth_headers)
    removed = await client.delete("/api/movies/heat/watchlist", headers=auth_headers)

    assert added.json()["is_to_watch"] is True
    assert removed.json()["is_to_watch"] is False


@pytest.mark.asyncio
async def test_tonight_selection(client: AsyncClient, auth_headers, mock_db_pool: AsyncMock):
    mock_db_pool.fetch.return_value = [stored_row("Heat"), stored_row("Ronin")]

    response = await client.get("/api/movies/tonight", headers=auth_headers)
    assert response.json() == {"selection": None}

    response = await client.post("/api/movies/ronin/tonight", headers=auth_headers)
    assert response.json()["is_selected_for_tonight"] is True

    response = await client.get("/api/movies/tonight", headers=auth_headers)
    assert response.json()["selection"]["movie_id"] == "ronin"

    response = await client.delete("/api/movies/tonight", headers=auth_headers)
    assert response.json() == {"selection": None}
    response = await client.get("/api/movies/tonight", headers=auth_headers)
    assert response.json() == {"selection": None}


@pytest.mark.asyncio
async def test_select_unknown_movie_for_tonight_keeps_selection(
    client: AsyncClient, auth_headers, mock_db_pool: AsyncMock
):
    mock_db_pool.fetch.return_value = [stored_row("Heat", is_selected_for_tonight=True)]

    response = await client.post("/api/movies/nope/tonight", headers=auth_headers)

    assert response.status_code == 404
    mock_db_pool.execute.assert_not_called()
    response = await client.get("/api/movies/tonight", headers=auth_headers)
    assert response.json()["selection"]["movie_id"] == "heat"


@pytest.mark.asyncio
async def test_mark_seen_records_seen_movie(client: AsyncClient, auth_headers, mock_db_pool: AsyncMock):
    mock_db_pool.fetchrow.return_value = stored_row("Heat")

    response = await client.post("/api/movies/heat/seen", headers=auth_headers)

    assert response.json()["is_seen"] is True
    queries = [call.args[0] for call in mock_db_pool.execute.call_args_list]
    assert any("INSERT INTO seen_movies" in q for q in queries)


@pytest.mark.asyncio
async def test_cleanup(client: AsyncClient, auth_headers):
    response = await client.post("/api/movies/cleanup?keep_count=10", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {"keep_count": 10, "deleted": 0, "updated": 0}


@pytest.mark.asyncio
async def test_invalid_query_values_are_422(client: AsyncClient, auth_headers):
    response = await client.get("/api/movies?tag=watched", headers=auth_headers)
    assert response.status_code == 422

    response = await client.post("/api/movies/cleanup?keep_count=-1", headers=auth_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_metrics_report_cache_stats(client: AsyncClient, auth_headers, mock_db_pool: AsyncMock):
    mock_db_pool.fetch.return_value = [stored_row("Heat")]
    await client.get("/api/movies", headers=auth_headers)
    await client.get("/api/movies", headers=auth_headers)

    response = await client.get("/api/metrics")

    stats = response.json()["user_movie_cache"]
    assert stats["total_users"] == 1
    assert stats["total_movies"] == 1
    assert stats["hits"] == 1
    assert stats["misses"] == 1
