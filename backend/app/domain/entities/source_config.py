"""Domain entity for catalog sources — documents the system actively ingests."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class SourceFormat(str, Enum):
    """Content format of a catalog source."""

    PDF = "pdf"
    HTML = "html"
    TEXT = "text"


class Priority(str, Enum):
    """Ingestion priority of a catalog source."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class AuthorityLevel(str, Enum):
    """Authority of a document, declared most authoritative first."""

    LAW = "law"
    INTERNATIONAL_RULE = "international_rule"
    USOPC_GOVERNANCE = "usopc_governance"
    USOPC_POLICY_PROCEDURE = "usopc_policy_procedure"
    INDEPENDENT_OFFICE = "independent_office"
    ANTI_DOPING_NATIONAL = "anti_doping_national"
    NGB_POLICY_PROCEDURE = "ngb_policy_procedure"
    GAMES_EVENT_SPECIFIC = "games_event_specific"
    EDUCATIONAL_GUIDANCE = "educational_guidance"


AUTHORITY_LEVELS: tuple[str, ...] = tuple(level.value for level in AuthorityLevel)


def authority_rank(level: str | None) -> int:
    """Position of *level* in the authority order; unknown levels rank last."""
    try:
        return AUTHORITY_LEVELS.index(level)  # type: ignore[arg-type]
    except ValueError:
        return len(AUTHORITY_LEVELS)


# Failures after which the coordinator stops fetching a source until reset.
MAX_CONSECUTIVE_FAILURES = 3


@dataclass
class SourceConfig:
    """A document tracked for (re-)ingestion.

    Created by promoting an approved discovery or by direct admin input.
    Ingestion bookkeeping (``last_*`` fields and the failure counter) is
    maintained through ``mark_success`` / ``mark_failure``.
    """

    id: str
    title: str
    url: str
    document_type: str = "Unknown"
    topic_domains: list[str] = field(default_factory=list)
    format: SourceFormat = SourceFormat.HTML
    ngb_id: str | None = None
    priority: Priority = Priority.MEDIUM
    description: str = ""
    authority_level: str = AuthorityLevel.EDUCATIONAL_GUIDANCE.value
    enabled: bool = True
    last_ingested_at: datetime | None = None
    last_content_hash: str | None = None
    consecutive_failures: int = 0
    last_error: str | None = None
    storage_key: str | None = None
    storage_version_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_backed_off(self) -> bool:
        """True once repeated failures require a manual reset."""
        return self.consecutive_failures >= MAX_CONSECUTIVE_FAILURES

    def mark_success(
        self,
        content_hash: str,
        *,
        storage_key: str | None = None,
        storage_version_id: str | None = None,
    ) -> None:
        """Record a successful ingestion and clear the failure counter.

        Blob locators are replaced only when a new one is given.
        """
        now = datetime.now(timezone.utc)
        self.last_content_hash = content_hash
        self.last_ingested_at = now
        self.consecutive_failures = 0
        self.last_error = None
        if storage_key is not None:
            self.storage_key = storage_key
            self.storage_version_id = storage_version_id
        self.updated_at = now

    def mark_failure(self, error: str) -> None:
        """Record a failed fetch or ingestion attempt."""
        self.consecutive_failures += 1
        self.last_error = error
        self.updated_at = datetime.now(timezone.utc)

    def to_message_payload(self) -> dict[str, Any]:
        """Source block of the ingestion job message (camelCase wire format)."""
        return {
            "id": self.id,
            "title": self.title,
            "documentType": self.document_type,
            "topicDomains": list(self.topic_domains),
            "url": self.url,
            "format": self.format.value,
            "ngbId": self.ngb_id,
            "priority": self.priority.value,
            "description": self.description,
            "authorityLevel": self.authority_level,
        }
