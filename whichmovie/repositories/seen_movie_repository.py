from typing import List
from asyncpg import Pool

from ..models.recommendation import SeenMovie


class SeenMovieRepository:
    def __init__(self, db: Pool):
        self.db = db

    async def mark_seen(self, seen: SeenMovie) -> None:
        query = """
            INSERT INTO seen_movies (user_id, movie_id, title, poster_url, seen_at)
            VALUES ($1, $2, $3, $4, $5)
            ON CONFLICT (user_id, movie_id) DO UPDATE SET seen_at = EXCLUDED.seen_at
        """
        await self.db.execute(
            query,
            seen.user_id,
            seen.movie_id,
            seen.title,
            seen.poster_url,
            seen.seen_at,
        )

    async def list_for_user(self, user_id: str) -> List[SeenMovie]:
        query = """
            SELECT user_id, movie_id, title, poster_url, seen_at
            FROM seen_movies
            WHERE user_id = $1
            ORDER BY seen_at DESC
        """
        rows = await self.db.fetch(query, user_id)
        return [SeenMovie(**dict(row)) for row in rows]
