"""OpenRouter chat completions adapter used for discovery evaluation.

Rate limits, upstream 5xx and transport failures are retried with jittered
exponential backoff; every other error surfaces as ``ChatProviderError``.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from app.application.interfaces.chat_provider import ChatProvider
from app.domain.entities import ChatCompletionResult, ChatMessage, TokenUsage
from app.domain.exceptions import ChatProviderError

logger = logging.getLogger(__name__)

PROVIDER_NAME = "openrouter"

RETRYABLE_STATUSES = frozenset({408, 429, 500, 502, 503, 504})


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, ChatProviderError) and exc.status_code in RETRYABLE_STATUSES


class OpenRouterClient(ChatProvider):
    """Calls ``POST {base_url}/chat/completions`` and maps the reply to domain types.

    Pass ``http_client`` to share a pooled client (or a MockTransport in
    tests); otherwise a client is opened per call.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://openrouter.ai/api/v1",
        app_name: str = "Source Pipeline",
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 60.0,
        max_retries: int = 2,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._api_key = api_key
        self._endpoint = f"{base_url.rstrip('/')}/chat/completions"
        self._app_name = app_name
        self._http_client = http_client
        self._timeout = timeout_seconds
        self._max_retries = max_retries
        self._sleep = sleep

    @property
    def provider_name(self) -> str:
        return PROVIDER_NAME

    async def complete(
        self,
        messages: list[ChatMessage],
        model: str,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ChatCompletionResult:
        body: dict[str, Any] = {
            "model": model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
        }
        if temperature is not None:
            body["temperature"] = temperature
        if max_tokens is not None:
            body["max_tokens"] = max_tokens

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_retries + 1),
            wait=wait_exponential_jitter(initial=1, max=20),
            retry=retry_if_exception(_is_retryable),
            sleep=self._sleep,
            reraise=True,
        )

        client = self._http_client or httpx.AsyncClient(timeout=self._timeout)
        try:
            async for attempt in retrying:
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        logger.info(
                            "Retrying OpenRouter call for %s (attempt %d)",
                            model,
                            attempt.retry_state.attempt_number,
                        )
                    data = await self._post(client, body)
        finally:
            if self._http_client is None:
                await client.aclose()

        result = _to_result(data)
        logger.debug(
            "OpenRouter %s: %d prompt / %d completion tokens",
            result.model,
            result.usage.prompt_tokens,
            result.usage.completion_tokens,
        )
        return result

    async def _post(self, client: httpx.AsyncClient, body: dict[str, Any]) -> dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "X-Title": self._app_name,
        }
        try:
            response = await client.post(self._endpoint, headers=headers, json=body)
        except httpx.TimeoutException as exc:
            raise ChatProviderError(PROVIDER_NAME, 408, f"Request timed out: {exc}") from exc
        except httpx.TransportError as exc:
            raise ChatProviderError(PROVIDER_NAME, 503, f"Transport error: {exc}") from exc

        try:
            data = response.json()
        except ValueError:
            data = {}

        # OpenRouter can report upstream failures inside a 200 body.
        error = data.get("error") if isinstance(data, dict) else None
        if response.status_code != 200 or error:
            error = error or {}
            status_code = (
                _error_status(error.get("code")) if response.status_code == 200 else response.status_code
            )
            message = error.get("message") or response.text or "Unknown error"
            logger.warning("OpenRouter request failed (%s): %s", status_code, message)
            raise ChatProviderError(PROVIDER_NAME, status_code, message)
        return data


def _error_status(code: Any) -> int:
    """HTTP-like status from an in-body error code; missing or non-numeric codes map to 500."""
    try:
        return int(code)
    except (TypeError, ValueError):
        return 500


def _to_result(data: dict[str, Any]) -> ChatCompletionResult:
    choices = data.get("choices") or []
    if not choices:
        raise ChatProviderError(PROVIDER_NAME, 500, "No choices in response")

    choice = choices[0]
    usage = data.get("usage") or {}
    return ChatCompletionResult(
        model=data.get("model", ""),
        content=(choice.get("message") or {}).get("content") or "",
        finish_reason=choice.get("finish_reason") or "stop",
        usage=TokenUsage(
            prompt_tokens=usage.get("prompt_tokens", 0),
            completion_tokens=usage.get("completion_tokens", 0),
            total_tokens=usage.get("total_tokens", 0),
            cost=usage.get("cost"),
        ),
        provider=PROVIDER_NAME,
    )
