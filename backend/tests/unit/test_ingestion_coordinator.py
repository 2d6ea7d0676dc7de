"""Unit tests for the IngestionCoordinator pass."""

from datetime import datetime, timezone

import pytest

from app.application.services.discovery_review_service import DiscoveryReviewService
from app.application.services.ingestion_coordinator import (
    SIGNAL_DEGRADED,
    SIGNAL_SYSTEMATIC_FAILURE,
    IngestionCoordinator,
    health_signal_for,
)
from app.domain.entities import DiscoveredSource, DiscoveryMethod, IngestionState, SourceConfig
from tests.fakes import (
    FakeContentFetcher,
    FakeDiscoveredSourceRepository,
    FakeIngestionQueue,
    FakeIngestionStatusRepository,
    FakeSourceConfigRepository,
    RecordingNotifier,
)


def _source(source_id: str, **extra) -> SourceConfig:
    return SourceConfig(id=source_id, title=source_id, url=f"https://usatf.org/{source_id}", **extra)


def _coordinator(sources, pages, **kwargs):
    repo = FakeSourceConfigRepository(sources)
    fetcher = FakeContentFetcher(pages)
    queue = FakeIngestionQueue()
    status = FakeIngestionStatusRepository()
    notifier = RecordingNotifier()
    coordinator = IngestionCoordinator(repo, fetcher, queue, status, notifier=notifier, **kwargs)
    return coordinator, repo, fetcher, queue, status, notifier


@pytest.mark.parametrize(
    "processed,failed,signal",
    [(0, 0, None), (4, 4, SIGNAL_SYSTEMATIC_FAILURE), (4, 3, SIGNAL_DEGRADED), (4, 2, None)],
)
def test_health_signal_for(processed: int, failed: int, signal: str | None):
    assert health_signal_for(processed, failed) == signal


@pytest.mark.asyncio
async def test_pass_enqueues_only_new_healthy_sources():
    sources = [
        _source("new"),
        _source("ingested", last_ingested_at=datetime.now(timezone.utc)),
        _source("backed-off", consecutive_failures=3),
        _source("disabled", enabled=False),
    ]
    coordinator, _, fetcher, queue, status, notifier = _coordinator(
        sources, {"https://usatf.org/new": b"<html>rules</html>"}
    )

    report = await coordinator.run()

    assert fetcher.calls == ["https://usatf.org/new"]
    assert (report.total_sources, report.enqueued) == (3, 1)
    assert report.skipped_already_ingested == 1
    assert report.skipped_backoff == 1
    assert report.health_signal is None

    job = queue.jobs[0]
    assert job.source_id == "new"
    assert len(job.content_hash) == 64
    assert status.entries[0].status == IngestionState.INGESTING
    assert notifier.signals == []


@pytest.mark.asyncio
async def test_all_fetches_failing_raises_systematic_signal():
    coordinator, repo, _, queue, _, notifier = _coordinator(
        [_source("a"), _source("b")],
        {"https://usatf.org/a": RuntimeError("timeout"), "https://usatf.org/b": RuntimeError("503")},
    )

    report = await coordinator.run()

    assert report.failed == 2 and report.enqueued == 0
    assert report.health_signal == SIGNAL_SYSTEMATIC_FAILURE
    assert repo.items["a"].consecutive_failures == 1
    assert repo.items["a"].last_error == "timeout"
    assert queue.jobs == []
    signal, details = notifier.signals[0]
    assert signal == SIGNAL_SYSTEMATIC_FAILURE
    assert details["processed"] == 2


@pytest.mark.asyncio
async def test_majority_failing_is_degraded():
    coordinator, _, _, _, _, notifier = _coordinator(
        [_source("a"), _source("b"), _source("c")],
        {
            "https://usatf.org/a": b"ok",
            "https://usatf.org/b": RuntimeError("boom"),
            "https://usatf.org/c": RuntimeError("boom"),
        },
    )

    report = await coordinator.run()

    assert report.health_signal == SIGNAL_DEGRADED
    assert [s for s, _ in notifier.signals] == [SIGNAL_DEGRADED]


@pytest.mark.asyncio
async def test_auto_promotion_feeds_the_same_pass():
    discovery = DiscoveredSource(
        id="disc-1",
        url="https://usatf.org/selection.pdf",
        title="Selection",
        discovery_method=DiscoveryMethod.MAP,
        format="pdf",
    )
    discovery.approve("reviewer")
    discovery_repo = FakeDiscoveredSourceRepository([discovery])
    source_repo = FakeSourceConfigRepository()
    queue = FakeIngestionQueue()
    coordinator = IngestionCoordinator(
        source_repo,
        FakeContentFetcher({"https://usatf.org/selection.pdf": b"%PDF"}),
        queue,
        FakeIngestionStatusRepository(),
        review_service=DiscoveryReviewService(discovery_repo, source_repo),
        auto_promote=True,
    )

    report = await coordinator.run()

    assert report.promotion is not None and report.promotion.created == 1
    assert [j.source_id for j in queue.jobs] == ["disc-1"]
    assert queue.jobs[0].source["format"] == "pdf"


@pytest.mark.asyncio
async def test_promotion_disabled_by_default():
    discovery = DiscoveredSource(
        id="disc-1", url="https://usatf.org/x", title="x", discovery_method=DiscoveryMethod.MAP
    )
    discovery.approve("reviewer")
    source_repo = FakeSourceConfigRepository()
    coordinator = IngestionCoordinator(
        source_repo,
        FakeContentFetcher(),
        FakeIngestionQueue(),
        FakeIngestionStatusRepository(),
        review_service=DiscoveryReviewService(FakeDiscoveredSourceRepository([discovery]), source_repo),
    )

    report = await coordinator.run()

    assert report.promotion is None
    assert source_repo.items == {}


@pytest.mark.asyncio
async def test_enqueue_failure_closes_the_status_entry():
    coordinator, _, _, queue, status, _ = _coordinator(
        [_source("a")], {"https://usatf.org/a": b"<html>rules</html>"}
    )
    queue.fail_enqueue = True

    report = await coordinator.run()

    assert (report.failed, report.enqueued) == (1, 0)
    assert [e.status for e in status.entries] == [IngestionState.FAILED]
    assert status.entries[0].error_message == "Enqueue failed: queue unavailable"
