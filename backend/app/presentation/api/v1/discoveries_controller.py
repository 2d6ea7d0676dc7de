"""Discoveries API controller — review queue for discovered sources."""

import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Query

from app.application.schemas.discovery import (
    BulkDiscoveryActionRequest,
    BulkPromotionResponse,
    BulkReviewResponse,
    DiscoveryActionRequest,
    DiscoveryActionResponse,
    DiscoveryListResponse,
    DiscoveryResponse,
    PromotionResultResponse,
)
from app.application.services.discovery_review_service import (
    DiscoveryReviewService,
    PromotionResult,
    ReviewAction,
)
from app.domain.entities.discovered_source import DiscoveredSource, DiscoveryStatus
from app.domain.exceptions import EntityNotFoundError, InvalidStatusTransitionError
from app.infrastructure.dependencies import get_discovery_review_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/discoveries", tags=["Discoveries"])

DEFAULT_REVIEWER = "admin"


# ── Helpers ──────────────────────────────────────────────────────────


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def _discovery_to_response(d: DiscoveredSource) -> DiscoveryResponse:
    """Map a DiscoveredSource domain entity to its API response."""
    return DiscoveryResponse(
        id=d.id,
        url=d.url,
        title=d.title,
        discovery_method=d.discovery_method,
        discovered_from=d.discovered_from,
        discovered_at=d.discovered_at.isoformat(),
        status=d.status,
        metadata_confidence=d.metadata_confidence,
        content_confidence=d.content_confidence,
        combined_confidence=d.combined_confidence,
        document_type=d.document_type,
        topic_domains=d.topic_domains,
        format=d.format,
        ngb_id=d.ngb_id,
        priority=d.priority,
        description=d.description,
        authority_level=d.authority_level,
        metadata_reasoning=d.metadata_reasoning,
        content_reasoning=d.content_reasoning,
        reviewed_at=_iso(d.reviewed_at),
        reviewed_by=d.reviewed_by,
        rejection_reason=d.rejection_reason,
        source_config_id=d.source_config_id,
        created_at=d.created_at.isoformat(),
        updated_at=d.updated_at.isoformat(),
    )


def _promotion_to_response(result: PromotionResult) -> PromotionResultResponse:
    return PromotionResultResponse(
        discovery_id=result.discovery_id,
        status=result.status,
        source_config_id=result.source_config_id,
        error=result.error,
    )


# ── Queries ──────────────────────────────────────────────────────────


@router.get("/", response_model=DiscoveryListResponse)
async def list_discoveries(
    status: DiscoveryStatus | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    service: DiscoveryReviewService = Depends(get_discovery_review_service),
) -> DiscoveryListResponse:
    """List discoveries, newest first, optionally filtered by status."""
    discoveries, has_more = await service.list_discoveries(status=status, limit=limit, offset=offset)
    return DiscoveryListResponse(
        discoveries=[_discovery_to_response(d) for d in discoveries],
        count=len(discoveries),
        has_more=has_more,
    )


@router.get("/{discovery_id}", response_model=DiscoveryResponse)
async def get_discovery(
    discovery_id: str,
    service: DiscoveryReviewService = Depends(get_discovery_review_service),
) -> DiscoveryResponse:
    try:
        discovery = await service.get_discovery(discovery_id)
    except EntityNotFoundError:
        raise HTTPException(status_code=404, detail="Discovery not found")
    return _discovery_to_response(discovery)


# ── Reviewer actions ─────────────────────────────────────────────────


@router.patch("/{discovery_id}", response_model=DiscoveryActionResponse)
async def review_discovery(
    discovery_id: str,
    request: DiscoveryActionRequest,
    reviewed_by: str = Header(default=DEFAULT_REVIEWER, alias="X-Reviewed-By"),
    service: DiscoveryReviewService = Depends(get_discovery_review_service),
) -> DiscoveryActionResponse:
    """Approve, reject, or promote a single discovery."""
    try:
        if request.action == ReviewAction.APPROVE:
            discovery = await service.approve(discovery_id, reviewed_by)
            return DiscoveryActionResponse(discovery=_discovery_to_response(discovery))
        if request.action == ReviewAction.REJECT:
            discovery = await service.reject(discovery_id, reviewed_by, request.reason or "")
            return DiscoveryActionResponse(discovery=_discovery_to_response(discovery))
        result = await service.send_to_sources(discovery_id)
        return DiscoveryActionResponse(promotion=_promotion_to_response(result))
    except EntityNotFoundError:
        raise HTTPException(status_code=404, detail="Discovery not found")
    except (ValueError, InvalidStatusTransitionError) as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/bulk", response_model=BulkReviewResponse | BulkPromotionResponse)
async def bulk_review(
    request: BulkDiscoveryActionRequest,
    reviewed_by: str = Header(default=DEFAULT_REVIEWER, alias="X-Reviewed-By"),
    service: DiscoveryReviewService = Depends(get_discovery_review_service),
) -> BulkReviewResponse | BulkPromotionResponse:
    """Apply one action to many discoveries and return per-outcome counts."""
    if request.action == ReviewAction.SEND_TO_SOURCES:
        tally = await service.bulk_send_to_sources(request.ids)
        return BulkPromotionResponse(
            created=tally.created,
            already_linked=tally.already_linked,
            duplicate_url=tally.duplicate_url,
            not_approved=tally.not_approved,
            failed=tally.failed,
            results=[_promotion_to_response(r) for r in tally.results],
        )

    try:
        tally = await service.bulk_review(
            request.action, request.ids or [], reviewed_by, request.reason
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return BulkReviewResponse(action=request.action, succeeded=tally.succeeded, failed=tally.failed)
