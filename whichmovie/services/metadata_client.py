import logging
import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import httpx

from ..exceptions import (
    ExternalServiceError,
    InvalidResponseError,
    NotFoundError,
    UpstreamTimeoutError,
)
from ..models.movie import Movie, MovieStub

logger = logging.getLogger(__name__)

_RUNTIME_RE = re.compile(r"(?P<minutes>\d+)\s*min", re.IGNORECASE)


def _value(raw: Dict[str, Any], key: str) -> Optional[str]:
    # OMDB uses the literal string "N/A" for unknown fields
    value = raw.get(key)
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value or value.upper() == "N/A":
        return None
    return value


def _split(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def parse_runtime(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    m = _RUNTIME_RE.search(value)
    if not m:
        return None
    minutes = int(m.group("minutes"))
    return minutes if minutes > 0 else None


def parse_rating(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        rating = float(value)
    except ValueError:
        return None
    return rating if 0 <= rating <= 10 else None


def parse_year(value: Optional[str]) -> Optional[int]:
    # Series come back as ranges such as "2011–2019"
    if not value or len(value) < 4 or not value[:4].isdigit():
        return None
    return int(value[:4])


def parse_release_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return datetime.strptime(value, "%d %b %Y").date()
    except ValueError:
        return None


def movie_from_omdb(raw: Dict[str, Any], stub: Optional[MovieStub] = None) -> Movie:
    """
    Build a Movie from an OMDB payload.

    Genres and platforms suggested alongside the stub win over OMDB's, since
    OMDB knows nothing about streaming availability.
    """
    title = _value(raw, "Title") or (stub.title if stub else None)
    if not title:
        raise InvalidResponseError("OMDB response has no title")

    genres = stub.genres if stub and stub.genres else _split(_value(raw, "Genre"))
    return Movie(
        title=title,
        overview=_value(raw, "Plot"),
        poster_url=_value(raw, "Poster") or (stub.poster_url if stub else None),
        release_date=parse_release_date(_value(raw, "Released")),
        year=parse_year(_value(raw, "Year")),
        genres=genres,
        runtime_minutes=parse_runtime(_value(raw, "Runtime")),
        imdb_rating=parse_rating(_value(raw, "imdbRating")),
        streaming_platforms=stub.platforms if stub else [],
        director=_value(raw, "Director"),
        actors=_split(_value(raw, "Actors")),
        rated=_value(raw, "Rated"),
        awards=_value(raw, "Awards"),
        imdb_id=_value(raw, "imdbID"),
        recommendation_reason=stub.recommendation_reason if stub else None,
    )


class MetadataClient:
    """OMDB lookups by title or IMDB id"""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: str,
        base_url: str = "https://www.omdbapi.com/",
        timeout_s: float = 15.0,
    ):
        self.http_client = http_client
        self.api_key = api_key
        self.base_url = base_url
        self.timeout_s = timeout_s

    async def get_by_title(self, title: str) -> Dict[str, Any]:
        return await self._lookup({"t": title, "type": "movie", "plot": "full"})

    async def get_by_imdb_id(self, imdb_id: str) -> Dict[str, Any]:
        return await self._lookup({"i": imdb_id, "plot": "full"})

    async def enrich(self, stub: MovieStub) -> Movie:
        raw = await self.get_by_title(stub.title)
        return movie_from_omdb(raw, stub)

    async def _lookup(self, params: Dict[str, str]) -> Dict[str, Any]:
        if not self.api_key:
            raise ExternalServiceError("OMDB_API_KEY is not configured")

        try:
            resp = await self.http_client.get(
                self.base_url,
                params={"apikey": self.api_key, **params},
                timeout=self.timeout_s,
            )
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError("OMDB request timed out") from e
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"OMDB request failed: {type(e).__name__}") from e

        if resp.status_code >= 400:
            raise ExternalServiceError(f"OMDB returned HTTP {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as e:
            raise InvalidResponseError("OMDB response is not JSON") from e

        if not isinstance(data, dict):
            raise InvalidResponseError("OMDB response is not a JSON object")

        if data.get("Response") == "False":
            error = data.get("Error") or "Movie not found!"
            if "not found" in error.lower():
                raise NotFoundError(error)
            raise InvalidResponseError(f"OMDB error: {error}")

        return data
