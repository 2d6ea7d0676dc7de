"""Pydantic schemas for the discovery review API."""

from pydantic import BaseModel, Field

from app.application.services.discovery_review_service import PromotionStatus, ReviewAction
from app.domain.entities.discovered_source import DiscoveryMethod, DiscoveryStatus


class DiscoveryResponse(BaseModel):
    """Discovered source representation returned to clients."""

    id: str
    url: str
    title: str
    discovery_method: DiscoveryMethod
    discovered_from: str | None = None
    discovered_at: str
    status: DiscoveryStatus
    metadata_confidence: float | None = None
    content_confidence: float | None = None
    combined_confidence: float | None = None
    document_type: str | None = None
    topic_domains: list[str] = Field(default_factory=list)
    format: str | None = None
    ngb_id: str | None = None
    priority: str | None = None
    description: str | None = None
    authority_level: str | None = None
    metadata_reasoning: str | None = None
    content_reasoning: str | None = None
    reviewed_at: str | None = None
    reviewed_by: str | None = None
    rejection_reason: str | None = None
    source_config_id: str | None = None
    created_at: str
    updated_at: str


class DiscoveryListResponse(BaseModel):
    discoveries: list[DiscoveryResponse]
    count: int
    has_more: bool


class DiscoveryActionRequest(BaseModel):
    """Request body for ``PATCH /discoveries/{id}``."""

    action: ReviewAction
    reason: str | None = None


class BulkDiscoveryActionRequest(BaseModel):
    """Request body for ``POST /discoveries/bulk``.

    ``ids`` may be omitted only for ``send_to_sources``, which then promotes
    every approved discovery.
    """

    action: ReviewAction
    ids: list[str] | None = Field(default=None, max_length=500)
    reason: str | None = None


class PromotionResultResponse(BaseModel):
    discovery_id: str
    status: PromotionStatus
    source_config_id: str | None = None
    error: str | None = None


class DiscoveryActionResponse(BaseModel):
    """Outcome of a single-item action.

    ``discovery`` is set for approve / reject, ``promotion`` for send_to_sources.
    """

    discovery: DiscoveryResponse | None = None
    promotion: PromotionResultResponse | None = None


class BulkReviewResponse(BaseModel):
    action: ReviewAction
    succeeded: int
    failed: int


class BulkPromotionResponse(BaseModel):
    action: ReviewAction = ReviewAction.SEND_TO_SOURCES
    created: int
    already_linked: int
    duplicate_url: int
    not_approved: int
    failed: int
    results: list[PromotionResultResponse]
