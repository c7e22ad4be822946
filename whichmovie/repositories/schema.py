import json
from typing import Any

from asyncpg import Pool

# One table per document collection; each document body is stored as JSONB
SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS user_profiles (
        user_id VARCHAR(128) PRIMARY KEY,
        favorite_genres JSONB NOT NULL DEFAULT '[]',
        favorite_actors JSONB NOT NULL DEFAULT '[]',
        favorite_platforms JSONB NOT NULL DEFAULT '[]',
        movie_watching_frequency VARCHAR(32) NOT NULL DEFAULT 'weekly',
        movie_mood_preference VARCHAR(32) NOT NULL DEFAULT 'discover',
        has_completed_onboarding BOOLEAN NOT NULL DEFAULT FALSE,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS daily_recommendations (
        user_id VARCHAR(128) NOT NULL,
        day DATE NOT NULL,
        movies JSONB NOT NULL,
        generated_at TIMESTAMPTZ NOT NULL,
        PRIMARY KEY (user_id, day)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_movies (
        user_id VARCHAR(128) NOT NULL,
        movie_id VARCHAR(512) NOT NULL,
        data JSONB NOT NULL,
        last_updated TIMESTAMPTZ NOT NULL,
        PRIMARY KEY (user_id, movie_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS seen_movies (
        user_id VARCHAR(128) NOT NULL,
        movie_id VARCHAR(512) NOT NULL,
        title VARCHAR(512) NOT NULL,
        poster_url TEXT,
        seen_at TIMESTAMPTZ NOT NULL,
        PRIMARY KEY (user_id, movie_id)
    )
    """,
    # Profiles created before onboarding details were stored
    "ALTER TABLE user_profiles ADD COLUMN IF NOT EXISTS movie_watching_frequency VARCHAR(32) NOT NULL DEFAULT 'weekly'",
    "ALTER TABLE user_profiles ADD COLUMN IF NOT EXISTS movie_mood_preference VARCHAR(32) NOT NULL DEFAULT 'discover'",
    "ALTER TABLE user_profiles ADD COLUMN IF NOT EXISTS has_completed_onboarding BOOLEAN NOT NULL DEFAULT FALSE",
    "CREATE INDEX IF NOT EXISTS idx_user_movies_updated ON user_movies (user_id, last_updated DESC)",
    "CREATE INDEX IF NOT EXISTS idx_seen_movies_seen_at ON seen_movies (user_id, seen_at DESC)",
]


async def create_schema(db: Pool) -> None:
    async with db.acquire() as conn:
        async with conn.transaction():
            for statement in SCHEMA_STATEMENTS:
                await conn.execute(statement)


def load_json(value: Any) -> Any:
    # asyncpg returns JSONB as text unless a type codec is registered
    return json.loads(value) if isinstance(value, str) else value
