"""Abstract interface (port) for fetching remote document content."""

import hashlib
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class FetchedContent:
    """Raw body of a fetched document."""

    url: str
    content: bytes
    content_type: str = ""
    status_code: int = 200

    @property
    def content_hash(self) -> str:
        """sha256 hex digest of the body, used for change detection."""
        return hashlib.sha256(self.content).hexdigest()

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")


class ContentFetcher(ABC):
    """Port — fetch a URL with bounded retries and a timeout."""

    @abstractmethod
    async def fetch(self, url: str) -> FetchedContent:
        """Fetch *url*.

        Raises:
            FetchError: After all retries are exhausted, or immediately on a
                non-retryable status.
        """
        ...
