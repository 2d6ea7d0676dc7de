"""SQLAlchemy implementation of the DiscoveredSourceRepository."""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.interfaces.discovered_source_repository import DiscoveredSourceRepository
from app.domain.entities.discovered_source import (
    DiscoveredSource,
    DiscoveryMethod,
    DiscoveryStatus,
)
from app.domain.exceptions import DuplicateEntityError, EntityNotFoundError
from app.infrastructure.database.models.discovered_source_models import DiscoveredSourceModel


class SQLAlchemyDiscoveredSourceRepository(DiscoveredSourceRepository):
    """Concrete discovery repository backed by PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, discovery_id: str) -> DiscoveredSource | None:
        model = await self._get_model(discovery_id)
        return self._to_domain(model) if model else None

    async def exists(self, discovery_id: str) -> bool:
        result = await self._session.execute(
            select(DiscoveredSourceModel.id).where(DiscoveredSourceModel.id == discovery_id)
        )
        return result.scalar_one_or_none() is not None

    async def list_discoveries(
        self,
        *,
        status: DiscoveryStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[DiscoveredSource]:
        query = select(DiscoveredSourceModel)
        if status is not None:
            query = query.where(DiscoveredSourceModel.status == status.value)
        result = await self._session.execute(
            query.order_by(DiscoveredSourceModel.discovered_at.desc(), DiscoveredSourceModel.id)
            .limit(limit)
            .offset(offset)
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    async def get_approved_since(self, since: datetime) -> list[DiscoveredSource]:
        result = await self._session.execute(
            select(DiscoveredSourceModel)
            .where(
                DiscoveredSourceModel.status == DiscoveryStatus.APPROVED.value,
                DiscoveredSourceModel.reviewed_at >= since,
            )
            .order_by(DiscoveredSourceModel.reviewed_at.desc())
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    async def create(self, discovery: DiscoveredSource) -> DiscoveredSource:
        if await self._get_model(discovery.id) is not None:
            raise DuplicateEntityError("DiscoveredSource", "id", discovery.id)

        async with self._session.begin_nested():
            model = DiscoveredSourceModel(id=discovery.id, created_at=discovery.created_at)
            self._apply(model, discovery)
            self._session.add(model)
        return discovery

    async def update(self, discovery: DiscoveredSource) -> DiscoveredSource:
        model = await self._get_model(discovery.id)
        if model is None:
            raise EntityNotFoundError("DiscoveredSource", discovery.id)
        async with self._session.begin_nested():
            self._apply(model, discovery)
        return discovery

    async def delete(self, discovery_id: str) -> bool:
        model = await self._get_model(discovery_id)
        if model is None:
            return False
        await self._session.delete(model)
        await self._session.flush()
        return True

    async def _get_model(self, discovery_id: str) -> DiscoveredSourceModel | None:
        result = await self._session.execute(
            select(DiscoveredSourceModel).where(DiscoveredSourceModel.id == discovery_id)
        )
        return result.scalar_one_or_none()

    # ── Mapping ──────────────────────────────────────────────────────

    @staticmethod
    def _apply(model: DiscoveredSourceModel, d: DiscoveredSource) -> None:
        model.url = d.url
        model.title = d.title
        model.discovery_method = d.discovery_method.value
        model.discovered_from = d.discovered_from
        model.discovered_at = d.discovered_at
        model.status = d.status.value
        model.metadata_confidence = d.metadata_confidence
        model.content_confidence = d.content_confidence
        model.combined_confidence = d.combined_confidence
        model.document_type = d.document_type
        model.topic_domains = list(d.topic_domains)
        model.format = d.format
        model.ngb_id = d.ngb_id
        model.priority = d.priority
        model.description = d.description
        model.authority_level = d.authority_level
        model.metadata_reasoning = d.metadata_reasoning
        model.content_reasoning = d.content_reasoning
        model.reviewed_at = d.reviewed_at
        model.reviewed_by = d.reviewed_by
        model.rejection_reason = d.rejection_reason
        model.source_config_id = d.source_config_id
        model.updated_at = d.updated_at

    @staticmethod
    def _to_domain(model: DiscoveredSourceModel) -> DiscoveredSource:
        return DiscoveredSource(
            id=model.id,
            url=model.url,
            title=model.title,
            discovery_method=DiscoveryMethod(model.discovery_method),
            discovered_from=model.discovered_from,
            discovered_at=model.discovered_at,
            status=DiscoveryStatus(model.status),
            metadata_confidence=model.metadata_confidence,
            content_confidence=model.content_confidence,
            combined_confidence=model.combined_confidence,
            document_type=model.document_type,
            topic_domains=list(model.topic_domains or []),
            format=model.format,
            ngb_id=model.ngb_id,
            priority=model.priority,
            description=model.description,
            authority_level=model.authority_level,
            metadata_reasoning=model.metadata_reasoning,
            content_reasoning=model.content_reasoning,
            reviewed_at=model.reviewed_at,
            reviewed_by=model.reviewed_by,
            rejection_reason=model.rejection_reason,
            source_config_id=model.source_config_id,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
