"""Abstract interfaces (ports) for the ingestion job queue and status log."""

from abc import ABC, abstractmethod

from app.domain.entities.ingestion import IngestionJob, IngestionStatusEntry


class IngestionQueue(ABC):
    """Durable FIFO queue of ingestion jobs.

    Jobs sharing a group key (the source id) are handed out in enqueue order
    and never concurrently, so work for one source cannot interleave.
    Delivery is at-least-once.
    """

    @abstractmethod
    async def enqueue(self, job: IngestionJob) -> IngestionJob:
        """Append a job and return it with its generated ID."""
        ...

    @abstractmethod
    async def claim_next(self, limit: int = 5) -> list[IngestionJob]:
        """Claim the oldest queued job of up to *limit* idle groups and mark them processing."""
        ...

    @abstractmethod
    async def mark_completed(self, job: IngestionJob) -> None:
        """Mark a claimed job as done."""
        ...

    @abstractmethod
    async def mark_failed(self, job: IngestionJob, error: str) -> None:
        """Mark a claimed job as failed."""
        ...


class IngestionStatusRepository(ABC):
    """Append-only log of ingestion attempts per source."""

    @abstractmethod
    async def record_started(self, source_id: str, source_url: str) -> IngestionStatusEntry:
        """Append an ``ingesting`` entry."""
        ...

    @abstractmethod
    async def record_completed(
        self, source_id: str, content_hash: str, chunks_count: int
    ) -> None:
        """Close the latest ``ingesting`` entry of a source as completed."""
        ...

    @abstractmethod
    async def record_failed(self, source_id: str, error: str) -> None:
        """Close the latest ``ingesting`` entry of a source as failed."""
        ...

    @abstractmethod
    async def get_last_content_hash(self, source_id: str) -> str | None:
        """Content hash of the most recent completed ingestion."""
        ...

    @abstractmethod
    async def list_recent(self, source_id: str, limit: int = 20) -> list[IngestionStatusEntry]:
        """Most recent entries for a source, newest first."""
        ...
