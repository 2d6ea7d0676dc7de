"""Ingestion coordinator — decides which catalog sources to fetch and queues them.

One pass:
    1. (optional) promote discoveries approved within the lookback window
    2. load enabled sources; skip backed-off and already-ingested ones
    3. fetch each remaining source, hash it, log "ingesting", enqueue a job
    4. raise a health signal when all, or most, fetches failed

Fetches run concurrently; repository writes are serialized because the
repositories share one database session.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from app.application.interfaces import (
    ContentFetcher,
    IngestionQueue,
    IngestionStatusRepository,
    Notifier,
    SourceConfigRepository,
)
from app.application.services.discovery_review_service import (
    DiscoveryReviewService,
    PromotionTally,
)
from app.domain.entities.ingestion import IngestionJob
from app.domain.entities.source_config import SourceConfig
from app.infrastructure.logging.colored_logger import PipelineLogger, PipelineStage

logger = logging.getLogger(__name__)
plog = PipelineLogger("IngestionCoordinator")

SIGNAL_SYSTEMATIC_FAILURE = "systematic_failure"
SIGNAL_DEGRADED = "degraded"


@dataclass
class CoordinatorReport:
    """Outcome of one coordinator pass."""

    total_sources: int = 0
    processed: int = 0
    enqueued: int = 0
    failed: int = 0
    skipped_backoff: int = 0
    skipped_already_ingested: int = 0
    promotion: PromotionTally | None = None
    health_signal: str | None = None
    errors: list[str] = field(default_factory=list)
    duration_ms: int = 0


def health_signal_for(processed: int, failed: int) -> str | None:
    """Health classification of a pass: all failed, more than half failed, or fine."""
    if processed == 0:
        return None
    if failed == processed:
        return SIGNAL_SYSTEMATIC_FAILURE
    if failed > processed / 2:
        return SIGNAL_DEGRADED
    return None


class IngestionCoordinator:
    """Schedules fetch jobs for never-ingested, healthy catalog sources.

    Re-ingesting a source that was already ingested is an explicit admin
    action (see ``SourceService.trigger_ingestion``), not something a pass
    does on its own.
    """

    def __init__(
        self,
        source_repo: SourceConfigRepository,
        fetcher: ContentFetcher,
        queue: IngestionQueue,
        status_repo: IngestionStatusRepository,
        *,
        review_service: DiscoveryReviewService | None = None,
        notifier: Notifier | None = None,
        auto_promote: bool = False,
        promotion_lookback_hours: float = 3,
        concurrency: int = 5,
    ):
        self._sources = source_repo
        self._fetcher = fetcher
        self._queue = queue
        self._status = status_repo
        self._review = review_service
        self._notifier = notifier
        self._auto_promote = auto_promote
        self._lookback = timedelta(hours=promotion_lookback_hours)
        self._semaphore = asyncio.Semaphore(max(1, concurrency))
        self._write_lock = asyncio.Lock()

    async def run(self) -> CoordinatorReport:
        start = time.monotonic()
        report = CoordinatorReport()
        plog.separator("Ingestion coordinator")

        if self._auto_promote and self._review is not None:
            report.promotion = await self._promote_recent()

        sources = await self._sources.get_all_enabled()
        report.total_sources = len(sources)
        plog.step_start(PipelineStage.COORDINATE, f"Loaded {len(sources)} enabled source(s)")

        due: list[SourceConfig] = []
        for source in sources:
            if source.is_backed_off:
                plog.detail(
                    f"Skipping {source.id} — {source.consecutive_failures} consecutive failures"
                )
                report.skipped_backoff += 1
            elif source.last_ingested_at is not None:
                report.skipped_already_ingested += 1
            else:
                due.append(source)

        triggered_at = datetime.now(timezone.utc)
        await asyncio.gather(*(self._process(s, triggered_at, report) for s in due))

        report.health_signal = health_signal_for(report.processed, report.failed)
        if report.health_signal:
            await self._signal(report)

        report.duration_ms = int((time.monotonic() - start) * 1000)
        plog.step_complete(PipelineStage.COMPLETE, "Coordinator pass finished")
        plog.stats(
            sources=report.total_sources,
            enqueued=report.enqueued,
            failed=report.failed,
            backoff=report.skipped_backoff,
            already_ingested=report.skipped_already_ingested,
            duration_ms=report.duration_ms,
        )
        return report

    # ── Steps ────────────────────────────────────────────────────────

    async def _promote_recent(self) -> PromotionTally | None:
        since = datetime.now(timezone.utc) - self._lookback
        plog.step_start(PipelineStage.PROMOTE, "Promoting recently approved discoveries", since=since.isoformat())
        try:
            tally = await self._review.promote_approved_since(since)  # type: ignore[union-attr]
        except Exception as exc:
            plog.step_error(PipelineStage.PROMOTE, "Promotion step failed", error=exc)
            return None
        plog.step_complete(
            PipelineStage.PROMOTE,
            f"{tally.created} created",
            already_linked=tally.already_linked,
            duplicate_url=tally.duplicate_url,
            failed=tally.failed,
        )
        return tally

    async def _process(
        self, source: SourceConfig, triggered_at: datetime, report: CoordinatorReport
    ) -> None:
        async with self._semaphore:
            plog.step_start(PipelineStage.FETCH, f"Fetching {source.id}", url=source.url)
            try:
                fetched = await self._fetcher.fetch(source.url)
            except Exception as exc:
                async with self._write_lock:
                    report.processed += 1
                    report.failed += 1
                    report.errors.append(f"{source.id}: {exc}")
                    plog.step_error(PipelineStage.FETCH, f"Fetch failed for {source.id}", error=exc)
                    try:
                        await self._sources.mark_failure(source.id, str(exc))
                    except Exception as mark_exc:
                        logger.warning("Could not record failure for %s: %s", source.id, mark_exc)
                return

        content_hash = fetched.content_hash
        async with self._write_lock:
            report.processed += 1
            try:
                await self._status.record_started(source.id, source.url)
                job = await self._queue.enqueue(
                    IngestionJob(
                        source=source.to_message_payload(),
                        content_hash=content_hash,
                        triggered_at=triggered_at,
                    )
                )
            except Exception as exc:
                report.failed += 1
                report.errors.append(f"{source.id}: {exc}")
                plog.step_error(PipelineStage.QUEUE, f"Could not enqueue {source.id}", error=exc)
                await self._close_status(source.id, f"Enqueue failed: {exc}")
                return
            report.enqueued += 1
            plog.step_complete(
                PipelineStage.QUEUE, f"Enqueued {source.id}", job=job.id, hash=content_hash[:12]
            )

    async def _close_status(self, source_id: str, error: str) -> None:
        """Mark the attempt failed so the status log never stays on ``ingesting``."""
        try:
            await self._status.record_failed(source_id, error)
        except Exception as exc:
            logger.warning("Could not record failed status for %s: %s", source_id, exc)

    async def _signal(self, report: CoordinatorReport) -> None:
        details = {
            "processed": report.processed,
            "failed": report.failed,
            "errors": report.errors[:10],
        }
        plog.step_warning(
            PipelineStage.COORDINATE,
            f"Health signal: {report.health_signal}",
            processed=report.processed,
            failed=report.failed,
        )
        if self._notifier is None:
            return
        try:
            await self._notifier.health_signal(report.health_signal, details)  # type: ignore[arg-type]
        except Exception as exc:
            logger.warning("Health signal delivery failed: %s", exc)
