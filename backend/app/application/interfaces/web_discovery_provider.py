"""Abstract interface (port) for web search and site-mapping APIs."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class SearchHit:
    """One result of a keyword search."""

    url: str
    title: str | None = None
    content: str | None = None
    score: float | None = None


class WebDiscoveryProvider(ABC):
    """Port — what discovery needs from a search/crawl provider (e.g. Tavily)."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique name identifying this provider."""
        ...

    @abstractmethod
    async def map_site(self, url: str, *, limit: int = 20) -> list[str]:
        """Return URLs found by mapping the site rooted at *url*.

        Raises:
            SearchProviderError: If the provider returns an error.
        """
        ...

    @abstractmethod
    async def search(
        self,
        query: str,
        *,
        max_results: int = 10,
        include_domains: list[str] | None = None,
    ) -> list[SearchHit]:
        """Run a keyword search, optionally restricted to *include_domains*.

        Raises:
            SearchProviderError: If the provider returns an error.
        """
        ...
