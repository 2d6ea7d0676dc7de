"""Domain entity for discovered sources — candidate documents awaiting review."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from app.domain.exceptions import InvalidStatusTransitionError


class DiscoveryMethod(str, Enum):
    """How a candidate URL was found."""

    MAP = "map"
    SEARCH = "search"
    MANUAL = "manual"
    AGENT = "agent"


class DiscoveryStatus(str, Enum):
    """Lifecycle states of a discovered source."""

    PENDING_METADATA = "pending_metadata"
    PENDING_CONTENT = "pending_content"
    APPROVED = "approved"
    REJECTED = "rejected"


# Metadata confidence below which a discovery is rejected without content evaluation.
METADATA_RELEVANCE_THRESHOLD = 0.5

METADATA_WEIGHT = 0.3
CONTENT_WEIGHT = 0.7


def combined_confidence(metadata_confidence: float, content_confidence: float) -> float:
    """Weighted blend of the two evaluation stages."""
    return METADATA_WEIGHT * metadata_confidence + CONTENT_WEIGHT * content_confidence


@dataclass
class DiscoveredSource:
    """A candidate document found by map or search discovery.

    Status flow::

        pending_metadata ──▶ pending_content ──▶ approved
                │                   │               ▲
                └──────────▶ rejected ──────────────┘

    Evaluation only records scores; approval and rejection of evaluated
    content are reviewer actions. ``source_config_id`` links the discovery
    to the catalog entry it was promoted into and is set at most once.
    """

    id: str
    url: str
    title: str
    discovery_method: DiscoveryMethod
    discovered_from: str | None = None
    discovered_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: DiscoveryStatus = DiscoveryStatus.PENDING_METADATA

    metadata_confidence: float | None = None
    content_confidence: float | None = None
    combined_confidence: float | None = None

    document_type: str | None = None
    topic_domains: list[str] = field(default_factory=list)
    format: str | None = None
    ngb_id: str | None = None
    priority: str | None = None
    description: str | None = None
    authority_level: str | None = None

    metadata_reasoning: str | None = None
    content_reasoning: str | None = None

    reviewed_at: datetime | None = None
    reviewed_by: str | None = None
    rejection_reason: str | None = None
    source_config_id: str | None = None

    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    # ── Evaluation ───────────────────────────────────────────────────

    def mark_metadata_evaluated(
        self,
        *,
        is_relevant: bool,
        confidence: float,
        reasoning: str,
        suggested_topic_domains: list[str],
        preliminary_document_type: str,
    ) -> None:
        """Record the metadata stage and advance or reject."""
        self.metadata_confidence = confidence
        self.metadata_reasoning = reasoning
        self.topic_domains = list(suggested_topic_domains)
        self.document_type = preliminary_document_type

        if is_relevant and confidence >= METADATA_RELEVANCE_THRESHOLD:
            self.status = DiscoveryStatus.PENDING_CONTENT
        else:
            self.status = DiscoveryStatus.REJECTED
            self.rejection_reason = reasoning
        self._touch()

    def mark_content_evaluated(
        self,
        *,
        content_confidence: float,
        reasoning: str,
        document_type: str,
        topic_domains: list[str],
        authority_level: str,
        priority: str,
        description: str,
        ngb_id: str | None,
        format: str,
    ) -> None:
        """Record the content stage; the status is left for a reviewer."""
        if self.status != DiscoveryStatus.PENDING_CONTENT:
            raise InvalidStatusTransitionError(
                self.id, self.status.value, "content_evaluated"
            )
        self.content_confidence = content_confidence
        if self.metadata_confidence is not None:
            self.combined_confidence = combined_confidence(
                self.metadata_confidence, content_confidence
            )
        self.content_reasoning = reasoning
        self.document_type = document_type
        self.topic_domains = list(topic_domains)
        self.authority_level = authority_level
        self.priority = priority
        self.description = description
        self.ngb_id = ngb_id
        self.format = format
        self._touch()

    # ── Review ───────────────────────────────────────────────────────

    def approve(self, reviewed_by: str) -> None:
        """Reviewer approval; also allowed for previously rejected discoveries."""
        self.status = DiscoveryStatus.APPROVED
        self.reviewed_at = datetime.now(timezone.utc)
        self.reviewed_by = reviewed_by
        self.rejection_reason = None
        self._touch()

    def reject(self, reviewed_by: str, reason: str) -> None:
        """Reviewer rejection; approved discoveries cannot be rejected."""
        if self.status == DiscoveryStatus.APPROVED:
            raise InvalidStatusTransitionError(
                self.id, self.status.value, DiscoveryStatus.REJECTED.value
            )
        self.status = DiscoveryStatus.REJECTED
        self.reviewed_at = datetime.now(timezone.utc)
        self.reviewed_by = reviewed_by
        self.rejection_reason = reason
        self._touch()

    def link_to_source_config(self, source_config_id: str) -> None:
        """Link to the catalog entry created on promotion (one-way)."""
        if self.source_config_id is not None and self.source_config_id != source_config_id:
            raise InvalidStatusTransitionError(
                self.id, f"linked:{self.source_config_id}", f"linked:{source_config_id}"
            )
        self.source_config_id = source_config_id
        self._touch()

    def _touch(self) -> None:
        self.updated_at = datetime.now(timezone.utc)
