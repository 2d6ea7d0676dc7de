"""FastAPI dependency injection — wires infrastructure to application layer."""

from collections.abc import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.interfaces import IngestionStatusRepository
from app.application.services import (
    CostTracker,
    DiscoveryReviewService,
    SourceService,
)
from app.infrastructure.database.session import get_db_session
from app.infrastructure.database.repositories import (
    SQLAlchemyChunkRepository,
    SQLAlchemyIngestionStatusRepository,
)
from app.infrastructure.pipeline_factory import (
    build_queue,
    build_review_service,
    build_source_repository,
    get_cost_tracker,
)


async def get_discovery_review_service(
    session: AsyncSession = Depends(get_db_session),
) -> AsyncGenerator[DiscoveryReviewService, None]:
    """Provides a DiscoveryReviewService over the discovery and catalog repositories."""
    yield build_review_service(session)


async def get_source_service(
    session: AsyncSession = Depends(get_db_session),
) -> AsyncGenerator[SourceService, None]:
    """Provides a SourceService with chunk store and ingestion queue wired up."""
    yield SourceService(
        build_source_repository(session),
        SQLAlchemyChunkRepository(session),
        build_queue(session),
    )


async def get_ingestion_status_repository(
    session: AsyncSession = Depends(get_db_session),
) -> AsyncGenerator[IngestionStatusRepository, None]:
    """Provides the ingestion status log."""
    yield SQLAlchemyIngestionStatusRepository(session)


def get_usage_cost_tracker() -> CostTracker:
    """Provides the process-wide CostTracker (usage writes use their own sessions)."""
    return get_cost_tracker()
