"""Integration tests for the SQLAlchemy repositories against a SQLite file database."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import text, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.application.services.cost_tracker import CostTracker
from app.application.services.discovery_review_service import DiscoveryReviewService
from app.application.services.ingestion_coordinator import IngestionCoordinator
from app.application.services.source_service import SourceService
from app.domain.entities import (
    DiscoveredSource,
    DiscoveryMethod,
    DiscoveryStatus,
    DocumentChunk,
    IngestionJob,
    IngestionState,
    JobStatus,
    SourceConfig,
    TrackedService,
    UsagePeriod,
)
from app.domain.exceptions import DuplicateEntityError
from app.infrastructure.database import (
    Base,
    DiscoveredSourceModel,
    DocumentChunkModel,
    IngestionJobModel,
    IngestionStatusModel,
    SourceConfigModel,
    UsageMetricModel,
)
from app.infrastructure.database.repositories import (
    SQLAlchemyChunkRepository,
    SQLAlchemyDiscoveredSourceRepository,
    SQLAlchemyIngestionQueue,
    SQLAlchemyIngestionStatusRepository,
    SQLAlchemySourceConfigRepository,
    SQLAlchemyUsageMetricRepository,
)
from app.infrastructure.database.session import enable_sqlite_savepoints
from tests.fakes import FakeContentFetcher

_TABLES = [
    m.__table__
    for m in (
        DiscoveredSourceModel,
        DocumentChunkModel,
        IngestionJobModel,
        IngestionStatusModel,
        SourceConfigModel,
        UsageMetricModel,
    )
]

_EPOCH = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


async def _session_factory(tmp_path, tables=_TABLES) -> async_sessionmaker[AsyncSession]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'pipeline.db'}")
    enable_sqlite_savepoints(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, tables=tables)
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def _job(source_id: str, content_hash: str, minute: int) -> IngestionJob:
    return IngestionJob(
        source={"id": source_id, "url": f"https://usacycling.org/{source_id}", "title": source_id},
        content_hash=content_hash,
        created_at=_EPOCH + timedelta(minutes=minute),
    )


@pytest.mark.asyncio
async def test_queue_delivers_one_job_per_source_in_order(tmp_path):
    factory = await _session_factory(tmp_path)
    async with factory() as session:
        queue = SQLAlchemyIngestionQueue(session)
        for job in (_job("a", "1", 0), _job("a", "2", 1), _job("b", "1", 2)):
            await queue.enqueue(job)
        await session.commit()

    async with factory() as session:
        queue = SQLAlchemyIngestionQueue(session)
        first = await queue.claim_next(5)
        assert [(j.source_id, j.content_hash) for j in first] == [("a", "1"), ("b", "1")]
        assert all(j.status == JobStatus.PROCESSING for j in first)
        assert await queue.claim_next(5) == []

        await queue.mark_completed(first[0])
        second = await queue.claim_next(5)
        assert [(j.source_id, j.content_hash) for j in second] == [("a", "2")]

        await queue.mark_failed(second[0], "boom")
        await session.commit()


@pytest.mark.asyncio
async def test_abandoned_jobs_are_redelivered(tmp_path):
    factory = await _session_factory(tmp_path)
    async with factory() as session:
        queue = SQLAlchemyIngestionQueue(session, visibility_timeout_seconds=60)
        await queue.enqueue(_job("a", "1", 0))
        claimed = await queue.claim_next()
        assert await queue.claim_next() == []
        await session.commit()

    # Simulate a worker that died mid-job an hour ago
    async with factory() as session:
        await session.execute(
            update(IngestionJobModel).values(
                started_at=datetime.now(timezone.utc) - timedelta(hours=1)
            )
        )
        await session.commit()

    async with factory() as session:
        redelivered = await SQLAlchemyIngestionQueue(session, visibility_timeout_seconds=60).claim_next()

    assert [j.id for j in redelivered] == [claimed[0].id]
    assert redelivered[0].attempts == 2


@pytest.mark.asyncio
async def test_status_log_tracks_attempts(tmp_path):
    factory = await _session_factory(tmp_path)
    async with factory() as session:
        status = SQLAlchemyIngestionStatusRepository(session)
        await status.record_started("a", "https://usacycling.org/a")
        await status.record_completed("a", "hash-1", 12)
        await status.record_started("a", "https://usacycling.org/a")
        await status.record_failed("a", "timeout")

        assert await status.get_last_content_hash("a") == "hash-1"
        assert await status.get_last_content_hash("b") is None

        recent = await status.list_recent("a")
        assert [e.status for e in recent] == [IngestionState.FAILED, IngestionState.COMPLETED]
        assert recent[0].error_message == "timeout"
        assert recent[1].chunks_count == 12


@pytest.mark.asyncio
async def test_source_catalog_round_trip(tmp_path):
    factory = await _session_factory(tmp_path)
    async with factory() as session:
        repo = SQLAlchemySourceConfigRepository(session)
        await repo.create(
            SourceConfig(
                id="src-1",
                title="Bylaws",
                url="https://usacycling.org/bylaws",
                topic_domains=["governance"],
                ngb_id="usa-cycling",
            )
        )
        with pytest.raises(DuplicateEntityError):
            await repo.create(SourceConfig(id="src-1", title="x", url="https://usacycling.org/x"))

        await repo.mark_failure("src-1", "HTTP 500")
        await repo.mark_success("src-1", "abc")
        await session.commit()

    async with factory() as session:
        repo = SQLAlchemySourceConfigRepository(session)
        source = await repo.get_by_id("src-1")
        assert source.topic_domains == ["governance"]
        assert source.consecutive_failures == 0
        assert source.last_content_hash == "abc"
        assert [s.id for s in await repo.get_by_ngb("usa-cycling")] == ["src-1"]
        assert await repo.delete("src-1") is True
        assert await repo.get_all() == []


@pytest.mark.asyncio
async def test_discoveries_round_trip_and_filter(tmp_path):
    factory = await _session_factory(tmp_path)
    async with factory() as session:
        repo = SQLAlchemyDiscoveredSourceRepository(session)
        pending = DiscoveredSource(
            id="d1", url="https://usacycling.org/a", title="a", discovery_method=DiscoveryMethod.MAP
        )
        approved = DiscoveredSource(
            id="d2", url="https://usacycling.org/b", title="b", discovery_method=DiscoveryMethod.SEARCH,
            topic_domains=["safesport"],
        )
        await repo.create(pending)
        await repo.create(approved)
        approved.approve("alice")
        await repo.update(approved)
        await session.commit()

    async with factory() as session:
        repo = SQLAlchemyDiscoveredSourceRepository(session)
        assert await repo.exists("d1")
        rows = await repo.list_discoveries(status=DiscoveryStatus.APPROVED)
        assert [d.id for d in rows] == ["d2"]
        assert rows[0].reviewed_by == "alice"
        assert rows[0].topic_domains == ["safesport"]
        assert rows[0].discovery_method == DiscoveryMethod.SEARCH


@pytest.mark.asyncio
async def test_chunks_replace_patch_and_delete(tmp_path):
    factory = await _session_factory(tmp_path)
    async with factory() as session:
        repo = SQLAlchemyChunkRepository(session)
        chunks = [
            DocumentChunk(source_id="s", position=i, content=f"c{i}", metadata={"documentTitle": "Old"})
            for i in range(3)
        ]
        assert await repo.replace_for_source("s", chunks) == 3
        assert await repo.replace_for_source("s", chunks[:2]) == 2
        assert await repo.count_by_source("s") == 2

        patched = await repo.update_metadata_by_source(
            "s", {"documentTitle": "New"}, {"document_title": "New"}
        )
        assert patched == 2
        stored = await repo.get_by_source("s")
        assert [c.document_title for c in stored] == ["New", "New"]

        assert await repo.delete_by_source("s") == 2
        assert await repo.count_by_source("s") == 0


@pytest.mark.asyncio
async def test_usage_increments_accumulate_across_sessions(tmp_path):
    factory = await _session_factory(tmp_path)
    tracker = CostTracker(SQLAlchemyUsageMetricRepository(factory))

    await tracker.track_tavily_call("map")
    await tracker.track_tavily_call("search")
    await tracker.track_llm_call(1_000_000, 0)

    tavily = await tracker.get_usage_stats(TrackedService.TAVILY, UsagePeriod.WEEKLY)
    assert (tavily.calls, tavily.credits) == (2, 6)
    llm = await tracker.get_usage_stats(TrackedService.LLM, UsagePeriod.DAILY)
    assert llm.cost == pytest.approx(3.0)


# ── Failed writes stay isolated ──────────────────────────────────────

_TABLES_WITHOUT_QUEUE = [t for t in _TABLES if t is not IngestionJobModel.__table__]


@pytest.mark.asyncio
async def test_content_update_commits_when_enqueue_fails(tmp_path):
    factory = await _session_factory(tmp_path, tables=_TABLES_WITHOUT_QUEUE)
    async with factory() as session:
        await SQLAlchemySourceConfigRepository(session).create(
            SourceConfig(id="s1", title="Code", url="https://usarugby.org/old.pdf")
        )
        await session.commit()

    async with factory() as session:
        service = SourceService(
            SQLAlchemySourceConfigRepository(session),
            SQLAlchemyChunkRepository(session),
            SQLAlchemyIngestionQueue(session),
        )
        result = await service.update_source("s1", {"url": "https://usarugby.org/new.pdf"})
        await session.commit()

    assert result.actions == {"chunks_deleted": 0, "re_ingestion_triggered": False}
    async with factory() as session:
        stored = await SQLAlchemySourceConfigRepository(session).get_by_id("s1")
        assert stored.url == "https://usarugby.org/new.pdf"


@pytest.mark.asyncio
async def test_coordinator_keeps_later_writes_after_enqueue_failure(tmp_path):
    factory = await _session_factory(tmp_path, tables=_TABLES_WITHOUT_QUEUE)
    async with factory() as session:
        repo = SQLAlchemySourceConfigRepository(session)
        for source_id in ("a", "b"):
            await repo.create(
                SourceConfig(id=source_id, title=source_id, url=f"https://usarugby.org/{source_id}")
            )
        await session.commit()

    async with factory() as session:
        coordinator = IngestionCoordinator(
            SQLAlchemySourceConfigRepository(session),
            FakeContentFetcher(default=b"<html>laws</html>"),
            SQLAlchemyIngestionQueue(session),
            SQLAlchemyIngestionStatusRepository(session),
            concurrency=1,
        )
        report = await coordinator.run()
        await session.commit()

    assert (report.processed, report.failed, report.enqueued) == (2, 2, 0)
    async with factory() as session:
        status = SQLAlchemyIngestionStatusRepository(session)
        for source_id in ("a", "b"):
            entries = await status.list_recent(source_id)
            assert [e.status for e in entries] == [IngestionState.FAILED]
            assert entries[0].error_message.startswith("Enqueue failed")


@pytest.mark.asyncio
async def test_bulk_promotion_survives_one_rejected_insert(tmp_path):
    factory = await _session_factory(tmp_path)
    async with factory() as session:
        await session.execute(
            text(
                "CREATE TRIGGER reject_bad_source BEFORE INSERT ON source_configs "
                "WHEN NEW.id = 'bad' BEGIN SELECT RAISE(ABORT, 'rejected'); END"
            )
        )
        discoveries = SQLAlchemyDiscoveredSourceRepository(session)
        for discovery_id in ("bad", "good"):
            discovery = DiscoveredSource(
                id=discovery_id,
                url=f"https://usarugby.org/{discovery_id}.pdf",
                title=discovery_id,
                discovery_method=DiscoveryMethod.MAP,
            )
            await discoveries.create(discovery)
            discovery.approve("alice")
            await discoveries.update(discovery)
        await session.commit()

    async with factory() as session:
        service = DiscoveryReviewService(
            SQLAlchemyDiscoveredSourceRepository(session),
            SQLAlchemySourceConfigRepository(session),
        )
        tally = await service.bulk_send_to_sources(["bad", "good"])
        await session.commit()

    assert (tally.created, tally.failed) == (1, 1)
    async with factory() as session:
        assert [s.id for s in await SQLAlchemySourceConfigRepository(session).get_all()] == ["good"]
        discoveries = SQLAlchemyDiscoveredSourceRepository(session)
        assert (await discoveries.get_by_id("good")).source_config_id == "good"
        assert (await discoveries.get_by_id("bad")).source_config_id is None


@pytest.mark.asyncio
async def test_mark_success_replaces_locators_only_when_given(tmp_path):
    factory = await _session_factory(tmp_path)
    async with factory() as session:
        repo = SQLAlchemySourceConfigRepository(session)
        await repo.create(SourceConfig(id="s1", title="Code", url="https://usarugby.org/code.pdf"))
        await repo.mark_success("s1", "h1", storage_key="sources/s1.pdf", storage_version_id="v1")
        await repo.mark_success("s1", "h2")
        await session.commit()

    async with factory() as session:
        stored = await SQLAlchemySourceConfigRepository(session).get_by_id("s1")
        assert stored.last_content_hash == "h2"
        assert (stored.storage_key, stored.storage_version_id) == ("sources/s1.pdf", "v1")
