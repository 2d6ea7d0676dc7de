"""Sources API controller — catalog CRUD, bulk actions and manual re-ingestion."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.application.interfaces import IngestionStatusRepository
from app.application.schemas.source import (
    BulkCreateResultResponse,
    BulkCreateSourcesRequest,
    BulkCreateSourcesResponse,
    BulkSourceActionRequest,
    BulkSourceActionResponse,
    CreateSourceRequest,
    DeleteSourceResponse,
    IngestionJobResponse,
    IngestionStatusResponse,
    SourceResponse,
    UpdateSourceRequest,
    UpdateSourceResponse,
)
from app.application.services.source_service import SourceService
from app.domain.entities.ingestion import IngestionJob, IngestionStatusEntry
from app.domain.entities.source_config import SourceConfig
from app.domain.exceptions import DuplicateEntityError, EntityNotFoundError
from app.infrastructure.dependencies import get_ingestion_status_repository, get_source_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sources", tags=["Sources"])


# ── Helpers ──────────────────────────────────────────────────────────


def _source_to_response(source: SourceConfig) -> SourceResponse:
    """Map a SourceConfig domain entity to its API response."""
    return SourceResponse(
        id=source.id,
        title=source.title,
        url=source.url,
        document_type=source.document_type,
        topic_domains=source.topic_domains,
        format=source.format,
        ngb_id=source.ngb_id,
        priority=source.priority,
        description=source.description,
        authority_level=source.authority_level,
        enabled=source.enabled,
        last_ingested_at=source.last_ingested_at.isoformat() if source.last_ingested_at else None,
        last_content_hash=source.last_content_hash,
        consecutive_failures=source.consecutive_failures,
        last_error=source.last_error,
        created_at=source.created_at.isoformat(),
        updated_at=source.updated_at.isoformat(),
    )


def _job_to_response(job: IngestionJob) -> IngestionJobResponse:
    return IngestionJobResponse(
        id=job.id,
        source_id=job.source_id,
        status=job.status,
        content_hash=job.content_hash,
        triggered_at=job.triggered_at.isoformat(),
    )


def _status_to_response(entry: IngestionStatusEntry) -> IngestionStatusResponse:
    return IngestionStatusResponse(
        id=entry.id,
        source_id=entry.source_id,
        source_url=entry.source_url,
        status=entry.status,
        content_hash=entry.content_hash,
        chunks_count=entry.chunks_count,
        error_message=entry.error_message,
        started_at=entry.started_at.isoformat(),
        completed_at=entry.completed_at.isoformat() if entry.completed_at else None,
    )


# ── Catalog CRUD ─────────────────────────────────────────────────────


@router.post("/", response_model=SourceResponse, status_code=status.HTTP_201_CREATED)
async def create_source(
    request: CreateSourceRequest,
    service: SourceService = Depends(get_source_service),
) -> SourceResponse:
    """Add a source to the catalog."""
    try:
        source = await service.create_source(
            title=request.title,
            url=request.url,
            document_type=request.document_type,
            topic_domains=request.topic_domains,
            format=request.format.value,
            ngb_id=request.ngb_id,
            priority=request.priority.value,
            description=request.description,
            authority_level=request.authority_level.value,
            enabled=request.enabled,
            source_id=request.id,
        )
    except DuplicateEntityError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _source_to_response(source)


@router.get("/", response_model=list[SourceResponse])
async def list_sources(
    enabled: bool = False,
    ngb_id: str | None = None,
    service: SourceService = Depends(get_source_service),
) -> list[SourceResponse]:
    """List catalog sources, optionally only enabled ones or one organization's."""
    sources = await service.list_sources(enabled_only=enabled, ngb_id=ngb_id)
    return [_source_to_response(s) for s in sources]


@router.get("/{source_id}", response_model=SourceResponse)
async def get_source(
    source_id: str,
    service: SourceService = Depends(get_source_service),
) -> SourceResponse:
    try:
        source = await service.get_source(source_id)
    except EntityNotFoundError:
        raise HTTPException(status_code=404, detail="Source not found")
    return _source_to_response(source)


@router.patch("/{source_id}", response_model=UpdateSourceResponse)
async def update_source(
    source_id: str,
    request: UpdateSourceRequest,
    service: SourceService = Depends(get_source_service),
) -> UpdateSourceResponse:
    """Update a source; URL or format changes drop its chunks and re-queue ingestion."""
    try:
        result = await service.update_source(source_id, request.changes())
    except EntityNotFoundError:
        raise HTTPException(status_code=404, detail="Source not found")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return UpdateSourceResponse(source=_source_to_response(result.source), actions=result.actions)


@router.delete("/{source_id}", response_model=DeleteSourceResponse)
async def delete_source(
    source_id: str,
    service: SourceService = Depends(get_source_service),
) -> DeleteSourceResponse:
    """Delete a source and all of its chunks."""
    try:
        chunks_deleted = await service.delete_source(source_id)
    except EntityNotFoundError:
        raise HTTPException(status_code=404, detail="Source not found")
    return DeleteSourceResponse(id=source_id, chunks_deleted=chunks_deleted)


# ── Bulk ─────────────────────────────────────────────────────────────


@router.post("/bulk", response_model=BulkSourceActionResponse)
async def bulk_action(
    request: BulkSourceActionRequest,
    service: SourceService = Depends(get_source_service),
) -> BulkSourceActionResponse:
    """Enable, disable or queue ingestion for many sources; returns per-outcome counts."""
    try:
        tally = await service.bulk_action(request.action, request.ids)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=501, detail=str(e))
    return BulkSourceActionResponse(
        action=request.action, succeeded=tally.succeeded, failed=tally.failed
    )


@router.post(
    "/bulk-create",
    response_model=BulkCreateSourcesResponse,
    status_code=status.HTTP_201_CREATED,
)
async def bulk_create(
    request: BulkCreateSourcesRequest,
    service: SourceService = Depends(get_source_service),
) -> BulkCreateSourcesResponse:
    """Create many sources; duplicates and failures are reported per entry."""
    results = await service.bulk_create(
        [
            {
                "title": item.title,
                "url": item.url,
                "document_type": item.document_type,
                "topic_domains": item.topic_domains,
                "format": item.format.value,
                "ngb_id": item.ngb_id,
                "priority": item.priority.value,
                "description": item.description,
                "authority_level": item.authority_level.value,
                "enabled": item.enabled,
                "source_id": item.id,
            }
            for item in request.sources
        ]
    )
    return BulkCreateSourcesResponse(
        results=[
            BulkCreateResultResponse(id=r.id, title=r.title, status=r.status, error=r.error)
            for r in results
        ]
    )


# ── Ingestion ────────────────────────────────────────────────────────


@router.post(
    "/{source_id}/ingest",
    response_model=IngestionJobResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def trigger_ingestion(
    source_id: str,
    service: SourceService = Depends(get_source_service),
) -> IngestionJobResponse:
    """Queue a manual re-ingestion, bypassing the unchanged-content check."""
    try:
        job = await service.trigger_ingestion(source_id)
    except EntityNotFoundError:
        raise HTTPException(status_code=404, detail="Source not found")
    return _job_to_response(job)


@router.get("/{source_id}/ingestions", response_model=list[IngestionStatusResponse])
async def list_ingestions(
    source_id: str,
    limit: int = Query(default=20, ge=1, le=100),
    status_repo: IngestionStatusRepository = Depends(get_ingestion_status_repository),
) -> list[IngestionStatusResponse]:
    """Recent ingestion attempts for a source, newest first."""
    entries = await status_repo.list_recent(source_id, limit)
    return [_status_to_response(e) for e in entries]
