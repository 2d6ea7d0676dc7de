"""Pydantic schemas for the source catalog API."""

from typing import Any

from pydantic import BaseModel, Field

from app.domain.entities.ingestion import IngestionState, JobStatus
from app.application.services.source_service import BulkCreateStatus, SourceBulkAction
from app.domain.entities.source_config import AuthorityLevel, Priority, SourceFormat


class CreateSourceRequest(BaseModel):
    """Request body for adding a catalog entry."""

    title: str = Field(min_length=1, max_length=500)
    url: str = Field(pattern=r"^https?://\S+$")
    document_type: str = "Unknown"
    topic_domains: list[str] = Field(default_factory=list)
    format: SourceFormat = SourceFormat.HTML
    ngb_id: str | None = None
    priority: Priority = Priority.MEDIUM
    description: str = ""
    authority_level: AuthorityLevel = AuthorityLevel.EDUCATIONAL_GUIDANCE
    enabled: bool = True
    id: str | None = None


class UpdateSourceRequest(BaseModel):
    """Partial update; only the fields present in the body are applied."""

    title: str | None = Field(default=None, min_length=1, max_length=500)
    url: str | None = Field(default=None, pattern=r"^https?://\S+$")
    document_type: str | None = None
    topic_domains: list[str] | None = None
    format: SourceFormat | None = None
    ngb_id: str | None = None
    priority: Priority | None = None
    description: str | None = None
    authority_level: AuthorityLevel | None = None
    enabled: bool | None = None

    def changes(self) -> dict[str, Any]:
        """Fields explicitly set by the client, as plain values.

        ``ngb_id`` is the only field that can be cleared with ``null``.
        """
        data = self.model_dump(mode="json", exclude_unset=True)
        return {k: v for k, v in data.items() if v is not None or k == "ngb_id"}


class SourceResponse(BaseModel):
    """Catalog entry representation returned to clients."""

    id: str
    title: str
    url: str
    document_type: str
    topic_domains: list[str]
    format: SourceFormat
    ngb_id: str | None = None
    priority: Priority
    description: str
    authority_level: str
    enabled: bool
    last_ingested_at: str | None = None
    last_content_hash: str | None = None
    consecutive_failures: int
    last_error: str | None = None
    created_at: str
    updated_at: str


class UpdateSourceResponse(BaseModel):
    source: SourceResponse
    actions: dict[str, Any] = Field(default_factory=dict)


class DeleteSourceResponse(BaseModel):
    id: str
    chunks_deleted: int


class IngestionJobResponse(BaseModel):
    id: str | None = None
    source_id: str
    status: JobStatus
    content_hash: str
    triggered_at: str


class IngestionStatusResponse(BaseModel):
    id: int | None = None
    source_id: str
    source_url: str
    status: IngestionState
    content_hash: str | None = None
    chunks_count: int | None = None
    error_message: str | None = None
    started_at: str
    completed_at: str | None = None


class BulkSourceActionRequest(BaseModel):
    """Request body for ``POST /sources/bulk``."""

    action: SourceBulkAction
    ids: list[str] = Field(min_length=1, max_length=500)


class BulkSourceActionResponse(BaseModel):
    action: SourceBulkAction
    succeeded: int
    failed: int


class BulkCreateSourcesRequest(BaseModel):
    sources: list[CreateSourceRequest] = Field(min_length=1, max_length=500)


class BulkCreateResultResponse(BaseModel):
    id: str
    title: str
    status: BulkCreateStatus
    error: str | None = None


class BulkCreateSourcesResponse(BaseModel):
    results: list[BulkCreateResultResponse]
