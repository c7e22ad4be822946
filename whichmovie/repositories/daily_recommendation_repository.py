import json
from datetime import date
from typing import List, Optional
from asyncpg import Pool

from ..models.movie import Movie
from ..models.recommendation import DailyRecommendations
from .schema import load_json


class DailyRecommendationRepository:
    def __init__(self, db: Pool):
        self.db = db

    async def save(self, batch: DailyRecommendations) -> None:
        """Store the batch for its day, replacing any batch already generated that day"""
        query = """
            INSERT INTO daily_recommendations (user_id, day, movies, generated_at)
            VALUES ($1, $2, $3::jsonb, $4)
            ON CONFLICT (user_id, day) DO UPDATE SET
                movies = EXCLUDED.movies,
                generated_at = EXCLUDED.generated_at
        """
        await self.db.execute(
            query,
            batch.user_id,
            batch.day,
            json.dumps([m.model_dump(mode="json") for m in batch.movies]),
            batch.generated_at,
        )

    async def get(self, user_id: str, day: date) -> Optional[DailyRecommendations]:
        query = """
            SELECT user_id, day, movies, generated_at
            FROM daily_recommendations
            WHERE user_id = $1 AND day = $2
        """
        row = await self.db.fetchrow(query, user_id, day)
        if not row:
            return None
        return DailyRecommendations(
            user_id=row['user_id'],
            day=row['day'],
            movies=[Movie.model_validate(m) for m in load_json(row['movies'])],
            generated_at=row['generated_at'],
        )

    async def get_recent_movie_ids(self, user_id: str, since: date) -> List[str]:
        query = """
            SELECT movies
            FROM daily_recommendations
            WHERE user_id = $1 AND day >= $2
            ORDER BY day DESC
        """
        rows = await self.db.fetch(query, user_id, since)
        movie_ids = []
        for row in rows:
            for raw in load_json(row['movies']):
                movie_ids.append(Movie.model_validate(raw).movie_id)
        return movie_ids
