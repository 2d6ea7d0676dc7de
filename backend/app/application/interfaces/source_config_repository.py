"""Abstract repository interface (port) for catalog sources."""

from abc import ABC, abstractmethod

from app.domain.entities.source_config import SourceConfig


class SourceConfigRepository(ABC):
    """Port for catalog persistence.

    Two implementations exist: a database-backed one and a flat-file one,
    selected at startup by the ``catalog_backend`` setting.
    """

    @abstractmethod
    async def get_by_id(self, source_id: str) -> SourceConfig | None:
        """Retrieve a single source by ID."""
        ...

    @abstractmethod
    async def get_all(self) -> list[SourceConfig]:
        """Retrieve all sources, enabled and disabled."""
        ...

    @abstractmethod
    async def get_all_enabled(self) -> list[SourceConfig]:
        """Retrieve enabled sources, highest priority first."""
        ...

    @abstractmethod
    async def get_by_ngb(self, ngb_id: str) -> list[SourceConfig]:
        """Retrieve sources belonging to one organization."""
        ...

    @abstractmethod
    async def create(self, source: SourceConfig) -> SourceConfig:
        """Persist a new source. Raises DuplicateEntityError if the ID exists."""
        ...

    @abstractmethod
    async def update(self, source: SourceConfig) -> SourceConfig:
        """Persist changes to an existing source. Raises EntityNotFoundError if missing."""
        ...

    @abstractmethod
    async def delete(self, source_id: str) -> bool:
        """Delete a source by ID. Returns True if deleted."""
        ...

    @abstractmethod
    async def mark_success(
        self,
        source_id: str,
        content_hash: str,
        *,
        storage_key: str | None = None,
        storage_version_id: str | None = None,
    ) -> None:
        """Record a successful ingestion and reset the failure counter."""
        ...

    @abstractmethod
    async def mark_failure(self, source_id: str, error: str) -> None:
        """Increment the failure counter and store the error message."""
        ...
