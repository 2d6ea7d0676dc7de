"""Abstract repository interface (port) for document chunks."""

from abc import ABC, abstractmethod
from typing import Any

from app.domain.entities.document_chunk import DocumentChunk


class ChunkRepository(ABC):
    """Port for chunk persistence keyed by (source_id, position)."""

    @abstractmethod
    async def replace_for_source(self, source_id: str, chunks: list[DocumentChunk]) -> int:
        """Delete every chunk of a source, then store *chunks*.

        Safe to re-apply: a repeated run produces the same final state.
        Returns the number of chunks stored.
        """
        ...

    @abstractmethod
    async def delete_by_source(self, source_id: str) -> int:
        """Delete all chunks of a source. Returns the count of deleted rows."""
        ...

    @abstractmethod
    async def update_metadata_by_source(
        self,
        source_id: str,
        metadata_patch: dict[str, Any],
        columns: dict[str, Any],
    ) -> int:
        """Merge *metadata_patch* into each chunk's metadata and set denormalized columns.

        Returns the number of chunks touched.
        """
        ...

    @abstractmethod
    async def count_by_source(self, source_id: str) -> int:
        """Number of chunks stored for a source."""
        ...

    @abstractmethod
    async def get_by_source(self, source_id: str) -> list[DocumentChunk]:
        """All chunks of a source ordered by position."""
        ...
