"""SQLAlchemy implementations of the ingestion queue and status log."""

import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.interfaces.ingestion_queue import IngestionQueue, IngestionStatusRepository
from app.domain.entities.ingestion import (
    IngestionJob,
    IngestionState,
    IngestionStatusEntry,
    JobStatus,
)
from app.infrastructure.database.models.ingestion_models import (
    IngestionJobModel,
    IngestionStatusModel,
)

# Claimed jobs older than this are assumed abandoned and handed out again.
DEFAULT_VISIBILITY_TIMEOUT_SECONDS = 900


class SQLAlchemyIngestionQueue(IngestionQueue):
    """Table-backed FIFO queue with per-group ordering.

    A group (source id) with a job in ``processing`` is skipped until that
    job completes, fails, or outlives the visibility timeout.
    """

    def __init__(
        self,
        session: AsyncSession,
        visibility_timeout_seconds: int = DEFAULT_VISIBILITY_TIMEOUT_SECONDS,
    ):
        self._session = session
        self._visibility_timeout = timedelta(seconds=visibility_timeout_seconds)

    async def enqueue(self, job: IngestionJob) -> IngestionJob:
        if not job.id:
            job.id = str(uuid.uuid4())
        # SAVEPOINT: a failed insert rolls back on its own.
        async with self._session.begin_nested():
            self._session.add(
                IngestionJobModel(
                    id=job.id,
                    group_key=job.group_key,
                    payload=job.to_message(),
                    status=job.status.value,
                    attempts=job.attempts,
                    created_at=job.created_at,
                )
            )
        return job

    async def claim_next(self, limit: int = 5) -> list[IngestionJob]:
        now = datetime.now(timezone.utc)
        await self._session.execute(
            update(IngestionJobModel)
            .where(
                IngestionJobModel.status == JobStatus.PROCESSING.value,
                IngestionJobModel.started_at < now - self._visibility_timeout,
            )
            .values(status=JobStatus.QUEUED.value)
        )

        busy_groups = select(IngestionJobModel.group_key).where(
            IngestionJobModel.status == JobStatus.PROCESSING.value
        )
        result = await self._session.execute(
            select(IngestionJobModel)
            .where(
                IngestionJobModel.status == JobStatus.QUEUED.value,
                IngestionJobModel.group_key.not_in(busy_groups),
            )
            .order_by(IngestionJobModel.created_at, IngestionJobModel.id)
            .limit(limit * 20)
        )

        claimed: list[IngestionJob] = []
        seen_groups: set[str] = set()
        for model in result.scalars().all():
            if model.group_key in seen_groups:
                continue
            seen_groups.add(model.group_key)
            job = self._to_domain(model)
            job.mark_processing()
            model.status = job.status.value
            model.attempts = job.attempts
            model.started_at = job.started_at
            claimed.append(job)
            if len(claimed) >= limit:
                break

        await self._session.flush()
        return claimed

    async def mark_completed(self, job: IngestionJob) -> None:
        job.mark_completed()
        await self._save_state(job)

    async def mark_failed(self, job: IngestionJob, error: str) -> None:
        job.mark_failed(error)
        await self._save_state(job)

    async def _save_state(self, job: IngestionJob) -> None:
        await self._session.execute(
            update(IngestionJobModel)
            .where(IngestionJobModel.id == job.id)
            .values(
                status=job.status.value,
                error_message=job.error_message,
                completed_at=job.completed_at,
            )
        )
        await self._session.flush()

    # ── Mapping ──────────────────────────────────────────────────────

    @staticmethod
    def _to_domain(model: IngestionJobModel) -> IngestionJob:
        payload = model.payload or {}
        triggered_at = payload.get("triggeredAt")
        return IngestionJob(
            id=model.id,
            source=dict(payload.get("source") or {}),
            content_hash=payload.get("contentHash", ""),
            triggered_at=datetime.fromisoformat(triggered_at) if triggered_at else model.created_at,
            status=JobStatus(model.status),
            attempts=model.attempts or 0,
            error_message=model.error_message,
            created_at=model.created_at,
            started_at=model.started_at,
            completed_at=model.completed_at,
        )


class SQLAlchemyIngestionStatusRepository(IngestionStatusRepository):
    """Append-only status log. Closing an attempt updates its ``ingesting`` row."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def record_started(self, source_id: str, source_url: str) -> IngestionStatusEntry:
        entry = IngestionStatusEntry(source_id=source_id, source_url=source_url)
        model = IngestionStatusModel(
            source_id=source_id,
            source_url=source_url,
            status=entry.status.value,
            started_at=entry.started_at,
        )
        async with self._session.begin_nested():
            self._session.add(model)
        entry.id = model.id
        return entry

    async def record_completed(
        self, source_id: str, content_hash: str, chunks_count: int
    ) -> None:
        model = await self._open_entry(source_id)
        model.status = IngestionState.COMPLETED.value
        model.content_hash = content_hash
        model.chunks_count = chunks_count
        model.error_message = None
        model.completed_at = datetime.now(timezone.utc)
        await self._session.flush()

    async def record_failed(self, source_id: str, error: str) -> None:
        async with self._session.begin_nested():
            model = await self._open_entry(source_id)
            model.status = IngestionState.FAILED.value
            model.error_message = error
            model.completed_at = datetime.now(timezone.utc)

    async def get_last_content_hash(self, source_id: str) -> str | None:
        result = await self._session.execute(
            select(IngestionStatusModel.content_hash)
            .where(
                IngestionStatusModel.source_id == source_id,
                IngestionStatusModel.status == IngestionState.COMPLETED.value,
            )
            .order_by(IngestionStatusModel.started_at.desc(), IngestionStatusModel.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_recent(self, source_id: str, limit: int = 20) -> list[IngestionStatusEntry]:
        result = await self._session.execute(
            select(IngestionStatusModel)
            .where(IngestionStatusModel.source_id == source_id)
            .order_by(IngestionStatusModel.started_at.desc(), IngestionStatusModel.id.desc())
            .limit(limit)
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    async def _open_entry(self, source_id: str) -> IngestionStatusModel:
        """Latest ``ingesting`` row of the source, appending one if none is open."""
        result = await self._session.execute(
            select(IngestionStatusModel)
            .where(
                IngestionStatusModel.source_id == source_id,
                IngestionStatusModel.status == IngestionState.INGESTING.value,
            )
            .order_by(IngestionStatusModel.started_at.desc(), IngestionStatusModel.id.desc())
            .limit(1)
        )
        model = result.scalar_one_or_none()
        if model is None:
            model = IngestionStatusModel(
                source_id=source_id,
                source_url="",
                status=IngestionState.INGESTING.value,
                started_at=datetime.now(timezone.utc),
            )
            self._session.add(model)
        return model

    # ── Mapping ──────────────────────────────────────────────────────

    @staticmethod
    def _to_domain(model: IngestionStatusModel) -> IngestionStatusEntry:
        return IngestionStatusEntry(
            id=model.id,
            source_id=model.source_id,
            source_url=model.source_url,
            status=IngestionState(model.status),
            content_hash=model.content_hash,
            chunks_count=model.chunks_count,
            error_message=model.error_message,
            started_at=model.started_at,
            completed_at=model.completed_at,
        )
