"""Domain entities for ingestion jobs and the ingestion status log."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class JobStatus(str, Enum):
    """Lifecycle states of a queued ingestion job."""

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class IngestionState(str, Enum):
    """States recorded in the append-only ingestion status log."""

    INGESTING = "ingesting"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class IngestionJob:
    """A fetch job for one catalog source.

    ``source`` is the catalog snapshot taken when the job was enqueued (see
    ``SourceConfig.to_message_payload``). Jobs sharing a ``group_key`` are
    delivered in enqueue order, one at a time.
    """

    source: dict[str, Any]
    content_hash: str
    triggered_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: str | None = None
    status: JobStatus = JobStatus.QUEUED
    attempts: int = 0
    error_message: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def source_id(self) -> str:
        return self.source["id"]

    @property
    def group_key(self) -> str:
        return self.source["id"]

    def to_message(self) -> dict[str, Any]:
        """Wire format consumed by the ingestion worker."""
        return {
            "source": dict(self.source),
            "contentHash": self.content_hash,
            "triggeredAt": self.triggered_at.isoformat(),
        }

    def mark_processing(self) -> None:
        self.status = JobStatus.PROCESSING
        self.attempts += 1
        self.started_at = datetime.now(timezone.utc)

    def mark_completed(self) -> None:
        self.status = JobStatus.COMPLETED
        self.error_message = None
        self.completed_at = datetime.now(timezone.utc)

    def mark_failed(self, error: str) -> None:
        self.status = JobStatus.FAILED
        self.error_message = error
        self.completed_at = datetime.now(timezone.utc)


@dataclass
class IngestionStatusEntry:
    """One ingestion attempt for a source, as recorded in the status log."""

    source_id: str
    source_url: str
    status: IngestionState = IngestionState.INGESTING
    content_hash: str | None = None
    chunks_count: int | None = None
    error_message: str | None = None
    id: int | None = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: datetime | None = None
