"""Pipeline scheduler — asyncio daemon running the coordinator, discovery and the queue worker."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from app.application.interfaces import IngestionQueue
from app.application.services.discovery_orchestrator import (
    DiscoveryOrchestrator,
    DiscoveryRunConfig,
    DiscoveryRunStats,
)
from app.application.services.ingestion_coordinator import CoordinatorReport, IngestionCoordinator
from app.application.services.ingestion_worker import IngestionWorker

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Any]


class PipelineScheduler:
    """Runs three independent loops as asyncio tasks inside FastAPI's lifespan.

    * coordinator — every ``coordinator_interval_seconds``, first pass at start
    * discovery — every ``discovery_interval_seconds``, first run after one interval
    * worker — polls the ingestion queue every ``poll_interval_seconds``

    Each unit of work gets its own database session with commit/rollback
    boundaries. A failing iteration is logged and the loop continues.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        *,
        build_coordinator: Callable[[Any], IngestionCoordinator],
        build_orchestrator: Callable[[Any], DiscoveryOrchestrator],
        build_worker: Callable[[Any], IngestionWorker],
        build_queue: Callable[[Any], IngestionQueue],
        discovery_config_file: str | Path,
        coordinator_interval_seconds: float = 3600,
        discovery_interval_seconds: float = 7 * 24 * 3600,
        poll_interval_seconds: float = 5,
        worker_batch_size: int = 5,
    ) -> None:
        self._session_factory = session_factory
        self._build_coordinator = build_coordinator
        self._build_orchestrator = build_orchestrator
        self._build_worker = build_worker
        self._build_queue = build_queue
        self._discovery_config_file = Path(discovery_config_file)
        self._coordinator_interval = coordinator_interval_seconds
        self._discovery_interval = discovery_interval_seconds
        self._poll_interval = poll_interval_seconds
        self._worker_batch_size = worker_batch_size
        self._running = False
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start all loops."""
        self._running = True
        self._tasks = [
            asyncio.create_task(
                self._loop("coordinator", self._coordinator_interval, self.run_coordinator_once)
            ),
            asyncio.create_task(
                self._loop(
                    "discovery",
                    self._discovery_interval,
                    self.run_discovery_once,
                    initial_delay=self._discovery_interval,
                )
            ),
            asyncio.create_task(self._loop("worker", self._poll_interval, self.drain_queue_once)),
        ]
        logger.info("PipelineScheduler started")

    async def stop(self) -> None:
        """Cancel all loops and wait for them to finish."""
        self._running = False
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []
        logger.info("PipelineScheduler stopped")

    async def _loop(
        self,
        name: str,
        interval: float,
        job: Callable[[], Awaitable[Any]],
        initial_delay: float = 0,
    ) -> None:
        if initial_delay:
            await asyncio.sleep(initial_delay)
        while self._running:
            try:
                await job()
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("PipelineScheduler %s iteration failed", name)

            await asyncio.sleep(interval)

    # ── Units of work ────────────────────────────────────────────────

    async def run_coordinator_once(self) -> CoordinatorReport:
        async with self._session_factory() as session:
            try:
                report = await self._build_coordinator(session).run()
                await session.commit()
                return report
            except Exception:
                await session.rollback()
                raise

    async def run_discovery_once(self, *, dry_run: bool = False) -> DiscoveryRunStats:
        config = DiscoveryRunConfig.from_yaml(self._discovery_config_file)
        async with self._session_factory() as session:
            try:
                stats = await self._build_orchestrator(session).run(config, dry_run=dry_run)
                await session.commit()
                return stats
            except Exception:
                await session.rollback()
                raise

    async def drain_queue_once(self) -> int:
        """Claim up to one batch of jobs and process each. Returns jobs processed."""
        async with self._session_factory() as session:
            jobs = await self._build_queue(session).claim_next(self._worker_batch_size)
            await session.commit()

        for job in jobs:
            async with self._session_factory() as session:
                worker = self._build_worker(session)
                try:
                    await worker.process_job(job)
                    await session.commit()
                except Exception as exc:
                    await session.rollback()
                    logger.exception("Ingestion job %s failed", job.id)
                    # Failure bookkeeping in a fresh transaction
                    await worker.record_failure(job, str(exc))
                    await session.commit()
        return len(jobs)
