import asyncio
from datetime import datetime, timezone

import asyncpg

from .config import settings
from .core.security import create_access_token
from .models.movie import Movie, MovieGenre, StreamingPlatform
from .models.recommendation import MoodPreference, SeenMovie, UserPreferences, WatchingFrequency
from .repositories.profile_repository import ProfileRepository
from .repositories.schema import create_schema
from .repositories.seen_movie_repository import SeenMovieRepository

DEMO_USER = "user_demo_1"

DEMO_PREFERENCES = UserPreferences(
    favorite_genres=[MovieGenre.SCIENCE_FICTION, MovieGenre.THRILLER, MovieGenre.DRAMA],
    favorite_actors=["Cillian Murphy", "Florence Pugh"],
    favorite_platforms=[StreamingPlatform.NETFLIX, StreamingPlatform.PRIME_VIDEO],
    movie_watching_frequency=WatchingFrequency.TWO_THREE_TIMES_WEEK,
    movie_mood_preference=MoodPreference.BOTH,
    has_completed_onboarding=True,
)

# Already watched, so the generator steers away from them
SEEN_MOVIES = [
    Movie(
        title="Inception",
        year=2010,
        imdb_id="tt1375666",
        poster_url="https://m.media-amazon.com/images/M/MV5BMjAxMzY3NjcxNF5BMl5BanBnXkFtZTcwNTI5OTM0Mw@@._V1_SX300.jpg",
    ),
    Movie(
        title="Interstellar",
        year=2014,
        imdb_id="tt0816692",
        poster_url="https://m.media-amazon.com/images/M/MV5BZjdkOTU3MDktN2IxOS00OGEyLWFmMjktY2FiMmZkNWIyODZiXkEyXkFqcGdeQXVyMTMxODk2OTU@._V1_SX300.jpg",
    ),
    Movie(title="The Matrix", year=1999, imdb_id="tt0133093"),
]


async def seed_data():
    print("🌱 Starting data seeding...")

    pool = await asyncpg.create_pool(settings.POSTGRES_DSN, min_size=1, max_size=2)
    try:
        # 1. Schema
        print("🔧 Creating schema...")
        await create_schema(pool)

        # 2. Demo profile
        print("👤 Creating demo user preferences...")
        await ProfileRepository(pool).save_preferences(DEMO_USER, DEMO_PREFERENCES)

        # 3. Seen movies
        now = datetime.now(timezone.utc)
        seen_repo = SeenMovieRepository(pool)
        for movie in SEEN_MOVIES:
            await seen_repo.mark_seen(SeenMovie.from_movie(movie, DEMO_USER, now))
        print(f"✅ Marked {len(SEEN_MOVIES)} movies as seen")
    finally:
        await pool.close()

    print("🔑 Demo bearer token:")
    print(create_access_token(DEMO_USER))
    print("🌱 Seeding complete!")


def main():
    asyncio.run(seed_data())


if __name__ == "__main__":
    main()
