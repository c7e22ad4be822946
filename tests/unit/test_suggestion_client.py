import json

import httpx
import pytest

from whichmovie.exceptions import ExternalServiceError, InvalidResponseError, UpstreamTimeoutError
from whichmovie.services.suggestion_client import (
    SuggestionClient,
    build_prompt,
    extract_json_array,
    parse_suggestions,
)

SUGGESTIONS = [
    {
        "title": "Heat",
        "genres": ["Crime", "Thriller"],
        "poster_url": "https://example.com/heat.jpg",
        "platforms": ["Netflix"],
        "recommendation_reason": "A tense heist classic.",
    },
    {
        "title": "Arrival",
        "genres": ["Science Fiction"],
        "poster_url": "https://example.com/arrival.jpg",
        "platforms": ["Prime Video"],
        "recommendation_reason": "Thoughtful first-contact story.",
    },
]


def completion(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def make_client(handler, api_key="sk-test"):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SuggestionClient(http_client, api_key=api_key, api_url="https://llm.test/v1/chat/completions")


def test_extract_json_array_ignores_surrounding_text():
    content = "Sure! Here you go:\n```json\n[{\"title\": \"Heat\"}]\n```\nEnjoy!"
    assert json.loads(extract_json_array(content)) == [{"title": "Heat"}]
    assert extract_json_array("xx [1, 2] yy") == "[1, 2]"


def test_parse_suggestions_from_fenced_output():
    content = "Here are my picks:\n```json\n" + json.dumps(SUGGESTIONS) + "\n```"
    stubs = parse_suggestions(content)
    assert [s.title for s in stubs] == ["Heat", "Arrival"]
    assert stubs[1].platforms == ["Prime Video"]


@pytest.mark.parametrize("content", [
    "I'm sorry, but I can't help with that.",
    "No movies today.",
    "[not json]",
    '{"title": "Heat"}',
    '[{"genres": ["Drama"]}]',
])
def test_parse_suggestions_rejects_bad_output(content):
    with pytest.raises(InvalidResponseError):
        parse_suggestions(content)


def test_refusal_is_reported_as_such():
    with pytest.raises(InvalidResponseError, match="refused"):
        parse_suggestions("I'm unable to recommend movies right now.")


def test_build_prompt_lists_preferences_and_exclusions():
    prompt = build_prompt(
        platforms=["Netflix", "Max"],
        genres=["Drama"],
        actors=["Florence Pugh"],
        exclusions=["Heat", "Ronin"],
        count=5,
    )
    assert "Suggest 5 different movies" in prompt
    assert "available on: Netflix, Max" in prompt
    assert "Florence Pugh" in prompt
    assert "Do not suggest any of these movies: Heat; Ronin" in prompt


def test_build_prompt_without_optional_lines():
    prompt = build_prompt(platforms=["Netflix"], genres=["Drama"])
    assert "Favorite actors" not in prompt
    assert "Do not suggest" not in prompt


@pytest.mark.asyncio
async def test_suggest_movies_posts_chat_completion():
    captured = {}

    def handler(request: httpx.Request):
        captured["auth"] = request.headers["Authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json=completion(json.dumps(SUGGESTIONS)))

    client = make_client(handler)
    stubs = await client.suggest_movies(["Netflix"], ["Crime"], count=2)

    assert [s.title for s in stubs] == ["Heat", "Arrival"]
    assert captured["auth"] == "Bearer sk-test"
    assert captured["body"]["model"] == "gpt-4o"
    assert captured["body"]["temperature"] == 1.0
    assert "Crime" in captured["body"]["messages"][0]["content"]


@pytest.mark.asyncio
async def test_http_error_status_is_external_error():
    client = make_client(lambda request: httpx.Response(500, text="boom"))
    with pytest.raises(ExternalServiceError):
        await client.suggest_movies(["Netflix"], ["Crime"])


@pytest.mark.asyncio
async def test_timeout_is_reported():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    client = make_client(handler)
    with pytest.raises(UpstreamTimeoutError):
        await client.suggest_movies(["Netflix"], ["Crime"])


@pytest.mark.asyncio
async def test_missing_content_is_invalid_response():
    client = make_client(lambda request: httpx.Response(200, json={"choices": []}))
    with pytest.raises(InvalidResponseError):
        await client.suggest_movies(["Netflix"], ["Crime"])


@pytest.mark.asyncio
async def test_missing_api_key_makes_no_request():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json=completion("[]"))

    client = make_client(handler, api_key="")
    with pytest.raises(ExternalServiceError):
        await client.suggest_movies(["Netflix"], ["Crime"])
    assert calls == []
