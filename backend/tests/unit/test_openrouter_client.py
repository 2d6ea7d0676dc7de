"""Unit tests for the OpenRouterClient."""

import json

import httpx
import pytest

from app.infrastructure.openrouter.openrouter_client import OpenRouterClient
from app.domain.entities import ChatMessage
from app.domain.exceptions import ChatProviderError


# ── Helpers ──


def _mock_openrouter_response(
    content: str = '{"isRelevant": true}',
    model: str = "anthropic/claude-haiku-4.5",
    prompt_tokens: int = 10,
    completion_tokens: int = 5,
    total_tokens: int = 15,
    cost: float | None = 0.00014,
) -> dict:
    """Build a mock OpenRouter JSON response."""
    return {
        "id": "chatcmpl-test123",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
        "model": model,
        "usage": {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "total_tokens": total_tokens,
            **({
                "cost": cost,
            } if cost is not None else {}),
        },
    }


def _make_mock_transport(
    response_data: dict | None = None,
    status_code: int = 200,
    error_data: dict | None = None,
    requests: list[httpx.Request] | None = None,
) -> httpx.MockTransport:
    """Create a mock transport that returns a fixed response."""

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        if error_data:
            return httpx.Response(status_code, json=error_data)
        return httpx.Response(status_code, json=response_data or {})

    return httpx.MockTransport(handler)


async def _no_sleep(_seconds: float) -> None:
    return None


def _client(transport: httpx.MockTransport, **kwargs) -> OpenRouterClient:
    return OpenRouterClient(
        api_key="test-key",
        http_client=httpx.AsyncClient(transport=transport),
        sleep=_no_sleep,
        **kwargs,
    )


async def _ask(client: OpenRouterClient):
    return await client.complete(
        messages=[ChatMessage(role="user", content="Hi")],
        model="anthropic/claude-haiku-4.5",
    )


# ── Tests ──


@pytest.mark.asyncio
async def test_complete_parses_response():
    """Non-streaming call correctly parses OpenRouter JSON response."""
    response_data = _mock_openrouter_response(content='{"confidence": 0.9}')
    client = _client(_make_mock_transport(response_data))

    result = await client.complete(
        messages=[ChatMessage(role="user", content="Evaluate this URL")],
        model="anthropic/claude-haiku-4.5",
    )

    assert result.content == '{"confidence": 0.9}'
    assert result.model == "anthropic/claude-haiku-4.5"
    assert result.usage.prompt_tokens == 10
    assert result.usage.completion_tokens == 5
    assert result.usage.total_tokens == 15
    assert result.usage.cost == 0.00014
    assert result.provider == "openrouter"


@pytest.mark.asyncio
async def test_complete_sends_payload_and_headers():
    """Temperature and max_tokens are forwarded; auth and app headers are set."""
    requests: list[httpx.Request] = []
    client = _client(
        _make_mock_transport(_mock_openrouter_response(), requests=requests),
        app_name="Source Pipeline Tests",
    )

    await client.complete(
        messages=[ChatMessage(role="user", content="Hi")],
        model="anthropic/claude-haiku-4.5",
        temperature=0.0,
        max_tokens=1024,
    )

    request = requests[0]
    body = json.loads(request.content)
    assert request.url.path == "/api/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer test-key"
    assert request.headers["X-Title"] == "Source Pipeline Tests"
    assert body["temperature"] == 0.0
    assert body["max_tokens"] == 1024
    assert body["messages"] == [{"role": "user", "content": "Hi"}]


@pytest.mark.asyncio
async def test_rate_limit_is_retried_then_raised():
    requests: list[httpx.Request] = []
    error_data = {"error": {"code": 429, "message": "Rate limit exceeded"}}
    client = _client(
        _make_mock_transport(error_data=error_data, status_code=429, requests=requests),
        max_retries=2,
    )

    with pytest.raises(ChatProviderError) as exc_info:
        await _ask(client)

    assert len(requests) == 3
    assert exc_info.value.status_code == 429
    assert "Rate limit" in exc_info.value.message


@pytest.mark.asyncio
async def test_transient_failure_recovers():
    replies = iter(
        [
            httpx.Response(503, json={"error": {"code": 503, "message": "busy"}}),
            httpx.Response(200, json=_mock_openrouter_response(content="ok")),
        ]
    )
    client = _client(httpx.MockTransport(lambda request: next(replies)))

    result = await _ask(client)
    assert result.content == "ok"


@pytest.mark.asyncio
async def test_client_error_is_not_retried():
    requests: list[httpx.Request] = []
    error_data = {"error": {"code": 401, "message": "No auth credentials found"}}
    client = _client(_make_mock_transport(error_data=error_data, status_code=401, requests=requests))

    with pytest.raises(ChatProviderError) as exc_info:
        await _ask(client)

    assert len(requests) == 1
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_complete_error_in_200_body():
    """An error object inside a 200 response is raised with its own code."""
    client = _client(
        _make_mock_transport({"error": {"code": 502, "message": "Upstream down"}}),
        max_retries=0,
    )

    with pytest.raises(ChatProviderError) as exc_info:
        await _ask(client)

    assert exc_info.value.status_code == 502


@pytest.mark.asyncio
async def test_non_numeric_error_code_is_a_provider_error():
    client = _client(
        _make_mock_transport({"error": {"code": "upstream_error", "message": "Provider returned error"}}),
        max_retries=0,
    )

    with pytest.raises(ChatProviderError, match="Provider returned error") as exc_info:
        await _ask(client)

    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_complete_without_choices():
    client = _client(_make_mock_transport({"choices": [], "model": "x"}))

    with pytest.raises(ChatProviderError, match="No choices"):
        await _ask(client)


@pytest.mark.asyncio
async def test_transport_error_maps_to_503():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(httpx.MockTransport(handler), max_retries=0)

    with pytest.raises(ChatProviderError) as exc_info:
        await _ask(client)

    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_provider_name():
    """Provider name is correctly reported."""
    client = OpenRouterClient(api_key="test-key")
    assert client.provider_name == "openrouter"
