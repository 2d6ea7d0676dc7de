"""HTTP content fetcher — GET with bounded, jittered exponential retries.

Transport errors, timeouts and the statuses in ``RETRYABLE_STATUSES`` are
retried; any other non-2xx response fails at once.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

import httpx
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from app.application.interfaces.content_fetcher import ContentFetcher, FetchedContent
from app.domain.exceptions import FetchError

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = frozenset({408, 429, 500, 502, 503, 504})

_USER_AGENT = "SourcePipeline/1.0 (+document ingestion)"


class _RetryableStatus(Exception):
    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}")


class HttpContentFetcher(ContentFetcher):
    """Fetch documents over HTTP(S).

    Usage:
        fetcher = HttpContentFetcher(max_retries=3, timeout_seconds=60)
        fetched = await fetcher.fetch("https://www.usopc.org/bylaws.pdf")
    """

    def __init__(
        self,
        *,
        max_retries: int = 3,
        initial_delay_seconds: float = 1.0,
        max_delay_seconds: float = 30.0,
        timeout_seconds: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._max_retries = max_retries
        self._initial_delay = initial_delay_seconds
        self._max_delay = max_delay_seconds
        self._timeout = timeout_seconds
        self._http_client = http_client
        self._sleep = sleep

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is not None:
            return self._http_client
        return httpx.AsyncClient(
            timeout=self._timeout,
            follow_redirects=True,
            headers={"User-Agent": _USER_AGENT},
        )

    async def fetch(self, url: str) -> FetchedContent:
        client = await self._get_client()
        should_close = self._http_client is None
        attempts = 0

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_retries + 1),
            wait=wait_exponential_jitter(initial=self._initial_delay, max=self._max_delay),
            retry=retry_if_exception_type((httpx.TransportError, _RetryableStatus)),
            sleep=self._sleep,
            reraise=False,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    if attempts > 1:
                        logger.info("Retrying %s (attempt %d)", url, attempts)
                    response = await client.get(url, timeout=self._timeout)
                    if response.status_code in RETRYABLE_STATUSES:
                        raise _RetryableStatus(response.status_code)
                    if not response.is_success:
                        raise FetchError(
                            url,
                            f"HTTP {response.status_code}",
                            attempts=attempts,
                            status_code=response.status_code,
                        )
        except RetryError as exc:
            cause = exc.last_attempt.exception()
            status_code = cause.status_code if isinstance(cause, _RetryableStatus) else None
            logger.warning("Giving up on %s after %d attempts: %s", url, attempts, cause)
            raise FetchError(url, str(cause), attempts=attempts, status_code=status_code) from cause
        finally:
            if should_close:
                await client.aclose()

        return FetchedContent(
            url=str(response.url),
            content=response.content,
            content_type=response.headers.get("content-type", ""),
            status_code=response.status_code,
        )
