"""SQLAlchemy implementation of the SourceConfigRepository."""

from datetime import datetime, timezone

from sqlalchemy import case, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.interfaces.source_config_repository import SourceConfigRepository
from app.domain.entities.source_config import Priority, SourceConfig, SourceFormat
from app.domain.exceptions import DuplicateEntityError, EntityNotFoundError
from app.infrastructure.database.models.source_config_models import SourceConfigModel

_PRIORITY_ORDER = case(
    {Priority.HIGH.value: 0, Priority.MEDIUM.value: 1, Priority.LOW.value: 2},
    value=SourceConfigModel.priority,
    else_=3,
)


class SQLAlchemySourceConfigRepository(SourceConfigRepository):
    """Concrete catalog repository backed by PostgreSQL via SQLAlchemy.

    Writes run inside a SAVEPOINT: a failed write is undone on its own and
    leaves the caller's transaction usable.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, source_id: str) -> SourceConfig | None:
        model = await self._get_model(source_id)
        return self._to_domain(model) if model else None

    async def get_all(self) -> list[SourceConfig]:
        result = await self._session.execute(
            select(SourceConfigModel).order_by(SourceConfigModel.created_at.desc())
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    async def get_all_enabled(self) -> list[SourceConfig]:
        result = await self._session.execute(
            select(SourceConfigModel)
            .where(SourceConfigModel.enabled.is_(True))
            .order_by(_PRIORITY_ORDER, SourceConfigModel.created_at)
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    async def get_by_ngb(self, ngb_id: str) -> list[SourceConfig]:
        result = await self._session.execute(
            select(SourceConfigModel)
            .where(SourceConfigModel.ngb_id == ngb_id)
            .order_by(_PRIORITY_ORDER, SourceConfigModel.created_at)
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    async def create(self, source: SourceConfig) -> SourceConfig:
        if await self._get_model(source.id) is not None:
            raise DuplicateEntityError("SourceConfig", "id", source.id)

        async with self._session.begin_nested():
            model = SourceConfigModel(id=source.id, created_at=source.created_at)
            self._apply(model, source)
            self._session.add(model)
        return source

    async def update(self, source: SourceConfig) -> SourceConfig:
        model = await self._get_model(source.id)
        if model is None:
            raise EntityNotFoundError("SourceConfig", source.id)
        source.updated_at = datetime.now(timezone.utc)
        async with self._session.begin_nested():
            self._apply(model, source)
        return source

    async def delete(self, source_id: str) -> bool:
        model = await self._get_model(source_id)
        if model is None:
            return False
        await self._session.delete(model)
        await self._session.flush()
        return True

    async def mark_success(
        self,
        source_id: str,
        content_hash: str,
        *,
        storage_key: str | None = None,
        storage_version_id: str | None = None,
    ) -> None:
        model = await self._get_model(source_id)
        if model is None:
            raise EntityNotFoundError("SourceConfig", source_id)
        source = self._to_domain(model)
        source.mark_success(
            content_hash, storage_key=storage_key, storage_version_id=storage_version_id
        )
        async with self._session.begin_nested():
            self._apply(model, source)

    async def mark_failure(self, source_id: str, error: str) -> None:
        model = await self._get_model(source_id)
        if model is None:
            raise EntityNotFoundError("SourceConfig", source_id)
        async with self._session.begin_nested():
            model.consecutive_failures = (model.consecutive_failures or 0) + 1
            model.last_error = error
            model.updated_at = datetime.now(timezone.utc)

    async def _get_model(self, source_id: str) -> SourceConfigModel | None:
        result = await self._session.execute(
            select(SourceConfigModel).where(SourceConfigModel.id == source_id)
        )
        return result.scalar_one_or_none()

    # ── Mapping ──────────────────────────────────────────────────────

    @staticmethod
    def _apply(model: SourceConfigModel, s: SourceConfig) -> None:
        model.title = s.title
        model.url = s.url
        model.document_type = s.document_type
        model.topic_domains = list(s.topic_domains)
        model.format = s.format.value
        model.ngb_id = s.ngb_id
        model.priority = s.priority.value
        model.description = s.description
        model.authority_level = s.authority_level
        model.enabled = s.enabled
        model.last_ingested_at = s.last_ingested_at
        model.last_content_hash = s.last_content_hash
        model.consecutive_failures = s.consecutive_failures
        model.last_error = s.last_error
        model.storage_key = s.storage_key
        model.storage_version_id = s.storage_version_id
        model.updated_at = s.updated_at

    @staticmethod
    def _to_domain(model: SourceConfigModel) -> SourceConfig:
        return SourceConfig(
            id=model.id,
            title=model.title,
            url=model.url,
            document_type=model.document_type,
            topic_domains=list(model.topic_domains or []),
            format=SourceFormat(model.format),
            ngb_id=model.ngb_id,
            priority=Priority(model.priority),
            description=model.description or "",
            authority_level=model.authority_level,
            enabled=model.enabled,
            last_ingested_at=model.last_ingested_at,
            last_content_hash=model.last_content_hash,
            consecutive_failures=model.consecutive_failures or 0,
            last_error=model.last_error,
            storage_key=model.storage_key,
            storage_version_id=model.storage_version_id,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
