"""Abstract repository interface (port) for discovered sources."""

from abc import ABC, abstractmethod
from datetime import datetime

from app.domain.entities.discovered_source import DiscoveredSource, DiscoveryStatus


class DiscoveredSourceRepository(ABC):
    """Port for discovery persistence — implemented in the infrastructure layer."""

    @abstractmethod
    async def get_by_id(self, discovery_id: str) -> DiscoveredSource | None:
        """Retrieve a single discovery by ID."""
        ...

    @abstractmethod
    async def exists(self, discovery_id: str) -> bool:
        """Check whether a discovery with this ID has been recorded."""
        ...

    @abstractmethod
    async def list_discoveries(
        self,
        *,
        status: DiscoveryStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[DiscoveredSource]:
        """List discoveries, newest discovered first, optionally filtered by status."""
        ...

    @abstractmethod
    async def get_approved_since(self, since: datetime) -> list[DiscoveredSource]:
        """Approved discoveries reviewed at or after *since*, newest first."""
        ...

    @abstractmethod
    async def create(self, discovery: DiscoveredSource) -> DiscoveredSource:
        """Persist a new discovery. Raises DuplicateEntityError if the ID exists."""
        ...

    @abstractmethod
    async def update(self, discovery: DiscoveredSource) -> DiscoveredSource:
        """Persist changes to an existing discovery."""
        ...

    @abstractmethod
    async def delete(self, discovery_id: str) -> bool:
        """Delete a discovery by ID. Returns True if deleted."""
        ...
