"""Domain entity for document chunks — the unit stored and retrieved."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass
class AlternativeSource:
    """A near-duplicate chunk folded into a cluster representative."""

    document_title: str | None
    section_title: str | None
    source_url: str | None
    authority_level: str | None
    score: float


@dataclass
class DocumentChunk:
    """A span of text from a catalog document.

    Storage identity is ``(source_id, position)``. ``metadata`` carries the
    denormalized catalog fields (``documentTitle``, ``authorityLevel``,
    ``documentType``, ``topicDomains``, ``ngbId``, ``sourceUrl``,
    ``sectionTitle``) so retrieval results can be attributed without a join.
    """

    source_id: str
    position: int
    content: str
    score: float = 0.0
    metadata: dict[str, Any] = field(default_factory=dict)
    alternative_sources: list[AlternativeSource] = field(default_factory=list)
    id: int | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def document_title(self) -> str | None:
        return self.metadata.get("documentTitle")

    @property
    def authority_level(self) -> str | None:
        return self.metadata.get("authorityLevel")

    @property
    def section_title(self) -> str | None:
        return self.metadata.get("sectionTitle")

    @property
    def source_url(self) -> str | None:
        return self.metadata.get("sourceUrl")
