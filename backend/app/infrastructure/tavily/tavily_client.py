"""Tavily API client — implements the WebDiscoveryProvider interface.

Endpoints used:
    POST /map     {"url", "limit"}                              → {"results": [url, ...]}
    POST /search  {"query", "max_results", "include_domains"}   → {"results": [{url, title, content, score}]}
"""

import logging
from typing import Any

import httpx

from app.application.interfaces.web_discovery_provider import SearchHit, WebDiscoveryProvider
from app.domain.exceptions import SearchProviderError

logger = logging.getLogger(__name__)


class TavilyClient(WebDiscoveryProvider):
    """Infrastructure adapter — connects to the Tavily search and map API.

    Pass ``http_client`` to reuse a pooled client (or a MockTransport in
    tests); otherwise a short-lived client is created per request.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.tavily.com",
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 30.0,
    ):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._http_client = http_client
        self._timeout = timeout_seconds

    @property
    def provider_name(self) -> str:
        return "tavily"

    def _get_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is not None:
            return self._http_client
        return httpx.AsyncClient(timeout=self._timeout)

    async def map_site(self, url: str, *, limit: int = 20) -> list[str]:
        data = await self._post("/map", {"url": url, "limit": limit})
        results = data.get("results") or []
        urls: list[str] = []
        for item in results:
            # Older responses return objects instead of bare URLs.
            if isinstance(item, str):
                urls.append(item)
            elif isinstance(item, dict) and item.get("url"):
                urls.append(item["url"])
        logger.info("Tavily map %s returned %d URLs", url, len(urls))
        return urls[:limit]

    async def search(
        self,
        query: str,
        *,
        max_results: int = 10,
        include_domains: list[str] | None = None,
    ) -> list[SearchHit]:
        payload: dict[str, Any] = {"query": query, "max_results": max_results}
        if include_domains:
            payload["include_domains"] = include_domains

        data = await self._post("/search", payload)
        hits = [
            SearchHit(
                url=item["url"],
                title=item.get("title"),
                content=item.get("content"),
                score=item.get("score"),
            )
            for item in data.get("results") or []
            if item.get("url")
        ]
        logger.info("Tavily search %r returned %d results", query, len(hits))
        return hits

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        client = await self._get_client()
        should_close = self._http_client is None

        try:
            try:
                response = await client.post(
                    f"{self._base_url}{path}", headers=self._get_headers(), json=payload
                )
            except httpx.TimeoutException as exc:
                raise SearchProviderError(self.provider_name, 408, f"Request timed out: {exc}") from exc
            except httpx.TransportError as exc:
                raise SearchProviderError(self.provider_name, 503, f"Transport error: {exc}") from exc

            if response.status_code != 200:
                self._raise_provider_error(response)
            return response.json()
        finally:
            if should_close:
                await client.aclose()

    def _raise_provider_error(self, response: httpx.Response) -> None:
        try:
            body = response.json()
            detail = body.get("detail") or body.get("error") or response.text
            message = detail.get("error", str(detail)) if isinstance(detail, dict) else str(detail)
        except ValueError:
            message = response.text

        logger.warning("Tavily request failed (%d): %s", response.status_code, message)
        raise SearchProviderError(self.provider_name, response.status_code, message)
