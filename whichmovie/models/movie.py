from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class MovieGenre(str, Enum):
    ACTION = "Action"
    ADVENTURE = "Adventure"
    ANIMATION = "Animation"
    COMEDY = "Comedy"
    CRIME = "Crime"
    DOCUMENTARY = "Documentary"
    DRAMA = "Drama"
    FAMILY = "Family"
    FANTASY = "Fantasy"
    HORROR = "Horror"
    MYSTERY = "Mystery"
    ROMANCE = "Romance"
    SCIENCE_FICTION = "Science Fiction"
    THRILLER = "Thriller"
    WESTERN = "Western"


class StreamingPlatform(str, Enum):
    NETFLIX = "Netflix"
    PRIME_VIDEO = "Prime Video"
    APPLE_TV = "Apple TV+"
    DISNEY_PLUS = "Disney+"
    PARAMOUNT_PLUS = "Paramount+"
    CANAL_PLUS = "Canal+"
    MAX = "Max"


def normalize_title(title: str) -> str:
    """Lowercase, single-spaced title usable as a document key."""
    return " ".join(title.lower().split()).replace("/", "-")


class MovieStub(BaseModel):
    """Movie as suggested by the LLM, before OMDB enrichment"""
    title: str = Field(..., min_length=1)
    genres: List[str] = Field(default_factory=list)
    poster_url: Optional[str] = None
    platforms: List[str] = Field(default_factory=list)
    recommendation_reason: Optional[str] = None


class Movie(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    overview: Optional[str] = None
    poster_url: Optional[str] = None
    release_date: Optional[date] = None
    year: Optional[int] = None
    genres: List[str] = Field(default_factory=list)
    runtime_minutes: Optional[int] = None
    imdb_rating: Optional[float] = None
    streaming_platforms: List[str] = Field(default_factory=list)
    director: Optional[str] = None
    actors: List[str] = Field(default_factory=list)
    rated: Optional[str] = None
    awards: Optional[str] = None
    imdb_id: Optional[str] = None
    recommendation_reason: Optional[str] = None

    @property
    def movie_id(self) -> str:
        return self.imdb_id or normalize_title(self.title)

    @property
    def title_key(self) -> str:
        return normalize_title(self.title)

    @classmethod
    def from_stub(cls, stub: MovieStub) -> "Movie":
        return cls(
            title=stub.title.strip(),
            poster_url=stub.poster_url or None,
            genres=stub.genres,
            streaming_platforms=stub.platforms,
            recommendation_reason=stub.recommendation_reason,
        )


def dedupe_by_title(movies: List[Movie]) -> List[Movie]:
    """Drop case-insensitive title repeats, keeping the first occurrence."""
    seen = set()
    unique = []
    for movie in movies:
        key = movie.title_key
        if key in seen:
            continue
        seen.add(key)
        unique.append(movie)
    return unique
