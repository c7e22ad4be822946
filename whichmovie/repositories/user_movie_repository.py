from typing import List, Optional
from asyncpg import Pool

from ..models.user_movie import UserMovie
from .schema import load_json

UPSERT_QUERY = """
    INSERT INTO user_movies (user_id, movie_id, data, last_updated)
    VALUES ($1, $2, $3::jsonb, $4)
    ON CONFLICT (user_id, movie_id) DO UPDATE SET
        data = EXCLUDED.data,
        last_updated = EXCLUDED.last_updated
"""


def _row_to_user_movie(row) -> UserMovie:
    return UserMovie.model_validate(load_json(row['data']))


def _upsert_args(user_movie: UserMovie) -> tuple:
    return (
        user_movie.user_id,
        user_movie.movie_id,
        user_movie.model_dump_json(),
        user_movie.last_updated,
    )


class UserMovieRepository:
    """userMovies/{user_id}/movies/{movie_id} documents"""

    def __init__(self, db: Pool):
        self.db = db

    async def get(self, user_id: str, movie_id: str) -> Optional[UserMovie]:
        query = "SELECT data FROM user_movies WHERE user_id = $1 AND movie_id = $2"
        row = await self.db.fetchrow(query, user_id, movie_id)
        return _row_to_user_movie(row) if row else None

    async def list_for_user(self, user_id: str) -> List[UserMovie]:
        query = """
            SELECT data
            FROM user_movies
            WHERE user_id = $1
            ORDER BY last_updated DESC
        """
        rows = await self.db.fetch(query, user_id)
        return [_row_to_user_movie(row) for row in rows]

    async def upsert(self, user_movie: UserMovie) -> None:
        await self.db.execute(UPSERT_QUERY, *_upsert_args(user_movie))

    async def upsert_many(self, user_movies: List[UserMovie]) -> None:
        if not user_movies:
            return
        async with self.db.acquire() as conn:
            async with conn.transaction():
                await conn.executemany(UPSERT_QUERY, [_upsert_args(m) for m in user_movies])

    async def delete(self, user_id: str, movie_id: str) -> None:
        query = "DELETE FROM user_movies WHERE user_id = $1 AND movie_id = $2"
        await self.db.execute(query, user_id, movie_id)
