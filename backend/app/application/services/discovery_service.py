"""Discovery service — finds candidate document URLs via site mapping and search.

All provider calls go through one shared circuit breaker and are metered by
the cost tracker. Upstream errors are logged and re-raised so the caller can
record a failed discovery step.
"""

import logging
from dataclasses import dataclass
from urllib.parse import unquote, urlsplit

from app.application.interfaces import SearchHit, WebDiscoveryProvider
from app.application.services.circuit_breaker import CircuitBreaker, CircuitBreakerMetrics
from app.application.services.cost_tracker import CostTracker
from app.domain.entities.discovered_source import DiscoveryMethod
from app.domain.entities.usage_metric import TrackedService
from app.domain.exceptions import BudgetExceededError
from app.domain.url_identity import generate_id, normalize_url

logger = logging.getLogger(__name__)


@dataclass
class DiscoveredUrl:
    """One candidate URL, normalized, with where it came from."""

    url: str
    title: str
    method: DiscoveryMethod
    discovered_from: str


def title_from_url(url: str) -> str:
    """Human-readable title from the last path segment, falling back to the host."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url

    segments = [s for s in parts.path.split("/") if s]
    if not segments:
        return parts.hostname or url

    title = unquote(segments[-1]).replace("-", " ").replace("_", " ")
    stem, dot, _ = title.rpartition(".")
    if dot and stem:
        title = stem
    return title.strip() or (parts.hostname or url)


class DiscoveryService:
    """Map and search discovery behind a circuit breaker.

    Usage:
        service = DiscoveryService(tavily_client, breaker, cost_tracker)
        found = await service.discover_from_map("usaswimming.org", limit=20)
    """

    def __init__(
        self,
        provider: WebDiscoveryProvider,
        circuit_breaker: CircuitBreaker,
        cost_tracker: CostTracker,
    ):
        self._provider = provider
        self._breaker = circuit_breaker
        self._cost = cost_tracker

    async def discover_from_map(self, domain: str, limit: int = 20) -> list[DiscoveredUrl]:
        """Map ``https://{domain}`` and return its normalized, de-duplicated URLs."""
        logger.info("Discovering from map: %s (limit=%d)", domain, limit)
        await self._ensure_budget()

        try:
            raw_urls = await self._breaker.execute(
                lambda: self._provider.map_site(f"https://{domain}", limit=limit)
            )
        except Exception as exc:
            logger.error("Error discovering from map %s: %s", domain, exc)
            raise
        await self._cost.track_tavily_call("map")

        results: list[DiscoveredUrl] = []
        seen: set[str] = set()
        for raw in raw_urls:
            url = normalize_url(raw)
            if url in seen:
                continue
            seen.add(url)
            results.append(
                DiscoveredUrl(
                    url=url,
                    title=title_from_url(url),
                    method=DiscoveryMethod.MAP,
                    discovered_from=domain,
                )
            )

        logger.info("Discovered %d URLs from %s", len(results), domain)
        return results

    async def discover_from_search(
        self,
        query: str,
        limit: int = 10,
        include_domains: list[str] | None = None,
    ) -> list[DiscoveredUrl]:
        """Keyword search, optionally restricted to *include_domains*."""
        logger.info(
            "Discovering from search: %r (limit=%d, domains=%s)", query, limit, include_domains
        )
        await self._ensure_budget()

        try:
            hits: list[SearchHit] = await self._breaker.execute(
                lambda: self._provider.search(
                    query, max_results=limit, include_domains=include_domains
                )
            )
        except Exception as exc:
            logger.error("Error discovering from search %r: %s", query, exc)
            raise
        await self._cost.track_tavily_call("search")

        results: list[DiscoveredUrl] = []
        seen: set[str] = set()
        for hit in hits:
            url = normalize_url(hit.url)
            if url in seen:
                continue
            seen.add(url)
            results.append(
                DiscoveredUrl(
                    url=url,
                    title=hit.title or title_from_url(url),
                    method=DiscoveryMethod.SEARCH,
                    discovered_from=query,
                )
            )

        logger.info("Discovered %d URLs from search %r", len(results), query)
        return results

    @staticmethod
    def generate_id(url: str) -> str:
        return generate_id(url)

    def get_circuit_breaker_metrics(self) -> CircuitBreakerMetrics:
        return self._breaker.get_metrics()

    async def _ensure_budget(self) -> None:
        status = await self._cost.check_budget(TrackedService.TAVILY)
        if not status.within_budget:
            logger.warning(
                "Tavily budget exhausted (%.0f/%.0f credits) — skipping call",
                status.usage,
                status.budget,
            )
            raise BudgetExceededError([TrackedService.TAVILY.value])
