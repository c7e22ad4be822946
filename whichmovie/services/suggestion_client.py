import json
import logging
from typing import List, Optional, Sequence

import httpx
from pydantic import ValidationError

from ..exceptions import ExternalServiceError, InvalidResponseError, UpstreamTimeoutError
from ..models.movie import MovieStub

logger = logging.getLogger(__name__)

REFUSAL_MARKERS = ("i'm unable", "i can't", "i'm sorry")

PROMPT_TEMPLATE = """You are an AI movie recommender. Suggest {count} different movies I could watch tonight.

They must be available on: {platforms}.
Matching one or more of these genres: {genres}.
{actors_line}{exclusions_line}
Respond ONLY with a JSON array of {count} objects in the following format:

[
  {{
    "title": "...",
    "genres": ["...", "..."],
    "poster_url": "https://valid.image.url/of/poster.jpg",
    "platforms": ["..."],
    "recommendation_reason": "One sentence explaining why this movie fits my taste."
  }}
]

The "poster_url" must be a valid public link to an actual image of the movie poster.
Do not write placeholder values."""


def build_prompt(
    platforms: Sequence[str],
    genres: Sequence[str],
    actors: Sequence[str] = (),
    exclusions: Sequence[str] = (),
    count: int = 5,
) -> str:
    actors_line = f"Favorite actors: {', '.join(actors)}.\n" if actors else ""
    exclusions_line = (
        f"Do not suggest any of these movies: {'; '.join(exclusions)}.\n" if exclusions else ""
    )
    return PROMPT_TEMPLATE.format(
        count=count,
        platforms=", ".join(platforms),
        genres=", ".join(genres),
        actors_line=actors_line,
        exclusions_line=exclusions_line,
    )


def extract_json_array(content: str) -> str:
    """Text between the first '[' and the last ']' of free-form model output."""
    start = content.find("[")
    end = content.rfind("]")
    if start == -1 or end == -1 or end < start:
        raise InvalidResponseError("No JSON array found in model output")
    return content[start:end + 1]


def parse_suggestions(content: str) -> List[MovieStub]:
    try:
        array_text = extract_json_array(content)
    except InvalidResponseError:
        lowered = content.lower()
        if any(marker in lowered for marker in REFUSAL_MARKERS):
            raise InvalidResponseError("Model refused to suggest movies")
        raise

    try:
        payload = json.loads(array_text)
    except json.JSONDecodeError as e:
        raise InvalidResponseError(f"Model output is not valid JSON: {e}") from e

    if not isinstance(payload, list):
        raise InvalidResponseError("Model output is not a JSON array")

    try:
        return [MovieStub.model_validate(item) for item in payload]
    except ValidationError as e:
        raise InvalidResponseError(f"Unexpected suggestion shape: {e.error_count()} errors") from e


class SuggestionClient:
    """OpenAI chat-completions wrapper returning movie stubs"""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: str,
        api_url: str = "https://api.openai.com/v1/chat/completions",
        model: str = "gpt-4o",
        temperature: float = 1.0,
        timeout_s: float = 30.0,
    ):
        self.http_client = http_client
        self.api_key = api_key
        self.api_url = api_url
        self.model = model
        self.temperature = temperature
        self.timeout_s = timeout_s

    async def suggest_movies(
        self,
        platforms: Sequence[str],
        genres: Sequence[str],
        actors: Sequence[str] = (),
        exclusions: Sequence[str] = (),
        count: int = 5,
    ) -> List[MovieStub]:
        prompt = build_prompt(platforms, genres, actors, exclusions, count)
        content = await self._complete(prompt)
        stubs = parse_suggestions(content)
        logger.info("Suggestions received", extra={"count": len(stubs)})
        return stubs

    async def _complete(self, prompt: str) -> str:
        if not self.api_key:
            raise ExternalServiceError("OPENAI_API_KEY is not configured")

        body = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
        }
        try:
            resp = await self.http_client.post(
                self.api_url,
                json=body,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout_s,
            )
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError("OpenAI request timed out") from e
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"OpenAI request failed: {e}") from e

        if resp.status_code >= 400:
            raise ExternalServiceError(f"OpenAI returned HTTP {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as e:
            raise InvalidResponseError("OpenAI response is not JSON") from e

        content: Optional[str] = None
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            pass
        if not isinstance(content, str) or not content.strip():
            raise InvalidResponseError("OpenAI response has no message content")

        logger.debug("OpenAI content", extra={"content": content})
        return content
