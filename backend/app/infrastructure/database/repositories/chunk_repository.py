"""SQLAlchemy implementation of the ChunkRepository."""

from dataclasses import asdict
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.interfaces.chunk_repository import ChunkRepository
from app.domain.entities.document_chunk import AlternativeSource, DocumentChunk
from app.infrastructure.database.models.document_chunk_models import DocumentChunkModel


class SQLAlchemyChunkRepository(ChunkRepository):
    """Concrete chunk repository backed by PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def replace_for_source(self, source_id: str, chunks: list[DocumentChunk]) -> int:
        await self._session.execute(
            delete(DocumentChunkModel).where(DocumentChunkModel.source_id == source_id)
        )
        for chunk in chunks:
            metadata = dict(chunk.metadata)
            self._session.add(
                DocumentChunkModel(
                    source_id=source_id,
                    position=chunk.position,
                    content=chunk.content,
                    score=chunk.score,
                    chunk_metadata=metadata,
                    alternative_sources=[asdict(a) for a in chunk.alternative_sources],
                    document_title=metadata.get("documentTitle"),
                    document_type=metadata.get("documentType"),
                    topic_domain=metadata.get("topicDomain"),
                    ngb_id=metadata.get("ngbId"),
                    authority_level=metadata.get("authorityLevel"),
                    created_at=chunk.created_at,
                )
            )
        await self._session.flush()
        return len(chunks)

    async def delete_by_source(self, source_id: str) -> int:
        result = await self._session.execute(
            delete(DocumentChunkModel).where(DocumentChunkModel.source_id == source_id)
        )
        await self._session.flush()
        return result.rowcount

    async def update_metadata_by_source(
        self,
        source_id: str,
        metadata_patch: dict[str, Any],
        columns: dict[str, Any],
    ) -> int:
        result = await self._session.execute(
            select(DocumentChunkModel).where(DocumentChunkModel.source_id == source_id)
        )
        models = result.scalars().all()
        for model in models:
            # Reassign so the JSON column is marked dirty.
            model.chunk_metadata = {**(model.chunk_metadata or {}), **metadata_patch}
            for name, value in columns.items():
                setattr(model, name, value)
        await self._session.flush()
        return len(models)

    async def count_by_source(self, source_id: str) -> int:
        result = await self._session.execute(
            select(func.count()).select_from(DocumentChunkModel).where(
                DocumentChunkModel.source_id == source_id
            )
        )
        return result.scalar_one()

    async def get_by_source(self, source_id: str) -> list[DocumentChunk]:
        result = await self._session.execute(
            select(DocumentChunkModel)
            .where(DocumentChunkModel.source_id == source_id)
            .order_by(DocumentChunkModel.position)
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    # ── Mapping ──────────────────────────────────────────────────────

    @staticmethod
    def _to_domain(model: DocumentChunkModel) -> DocumentChunk:
        return DocumentChunk(
            id=model.id,
            source_id=model.source_id,
            position=model.position,
            content=model.content,
            score=model.score or 0.0,
            metadata=dict(model.chunk_metadata or {}),
            alternative_sources=[AlternativeSource(**a) for a in model.alternative_sources or []],
            created_at=model.created_at,
        )
