"""Discovery orchestrator — one scheduled discovery run, end to end.

Phases:
    1. Budget gate: abort when any service is over budget, warn near the limit
    2. Discovery: site maps of configured domains, then configured searches
    3. Metadata evaluation (cheap pre-filter)
    4. Content fetch and content evaluation for URLs that pass
    5. Persist scores for human review (skipped in dry runs)

A failing domain, query or URL is counted and logged; the run carries on.
URLs are processed in batches of ``concurrency``; repository writes are
serialized because the repositories share one database session.
"""

import asyncio
import logging
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import yaml

from app.application.interfaces import (
    ContentFetcher,
    DiscoveredSourceRepository,
    Notifier,
    TextExtractor,
)
from app.application.services.cost_tracker import CostTracker
from app.application.services.discovery_service import DiscoveredUrl, DiscoveryService
from app.application.services.evaluation_service import EvaluationService
from app.domain.entities.discovered_source import (
    METADATA_RELEVANCE_THRESHOLD,
    DiscoveredSource,
)
from app.domain.entities.source_config import SourceFormat
from app.domain.entities.usage_metric import BudgetStatus
from app.domain.exceptions import BudgetExceededError, DuplicateEntityError
from app.infrastructure.logging.colored_logger import PipelineLogger, PipelineStage

logger = logging.getLogger(__name__)
plog = PipelineLogger("DiscoveryOrchestrator")

_MAX_ERROR_MESSAGES = 50


# ── Configuration & stats ────────────────────────────────────────────

@dataclass
class DiscoveryRunConfig:
    """What one run should discover."""

    domains: list[str] = field(default_factory=list)
    search_queries: list[str] = field(default_factory=list)
    max_results_per_domain: int = 20
    max_results_per_query: int = 10
    include_domains: list[str] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DiscoveryRunConfig":
        return cls(
            domains=[str(d) for d in data.get("domains") or []],
            search_queries=[str(q) for q in data.get("search_queries") or []],
            max_results_per_domain=int(data.get("max_results_per_domain", 20)),
            max_results_per_query=int(data.get("max_results_per_query", 10)),
            include_domains=data.get("include_domains") or None,
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> "DiscoveryRunConfig":
        """Load a run configuration file.

        Raises:
            FileNotFoundError: The file does not exist.
            ValueError: The file is not a YAML mapping.
        """
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Discovery config {path} must be a mapping")
        return cls.from_dict(data)


@dataclass
class DiscoveryRunStats:
    discovered: int = 0
    evaluated: int = 0
    pending_review: int = 0
    rejected: int = 0
    skipped: int = 0
    errors: int = 0
    by_method: dict[str, int] = field(default_factory=dict)
    duration_ms: int = 0
    error_messages: list[str] = field(default_factory=list)

    def record_error(self, message: str) -> None:
        self.errors += 1
        if len(self.error_messages) < _MAX_ERROR_MESSAGES:
            self.error_messages.append(message)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def infer_format(url: str) -> SourceFormat:
    """Document format from the URL path suffix."""
    path = urlsplit(url).path.lower()
    if path.endswith(".pdf"):
        return SourceFormat.PDF
    if path.endswith(".txt"):
        return SourceFormat.TEXT
    return SourceFormat.HTML


# ── Orchestrator ─────────────────────────────────────────────────────

class DiscoveryOrchestrator:
    """Runs discovery and two-stage evaluation; never approves anything itself."""

    def __init__(
        self,
        discovery_service: DiscoveryService,
        evaluation_service: EvaluationService,
        discovery_repo: DiscoveredSourceRepository,
        cost_tracker: CostTracker,
        fetcher: ContentFetcher,
        extractor: TextExtractor,
        notifier: Notifier | None = None,
        *,
        concurrency: int = 3,
        warning_percentage: float = 80.0,
    ):
        self._discovery = discovery_service
        self._evaluation = evaluation_service
        self._repo = discovery_repo
        self._cost = cost_tracker
        self._fetcher = fetcher
        self._extractor = extractor
        self._notifier = notifier
        self._concurrency = max(1, concurrency)
        self._warning_percentage = warning_percentage
        self._write_lock = asyncio.Lock()

    async def run(self, config: DiscoveryRunConfig, *, dry_run: bool = False) -> DiscoveryRunStats:
        """Execute one discovery run.

        Raises:
            BudgetExceededError: A service was already over budget; nothing ran.
        """
        start = time.monotonic()
        stats = DiscoveryRunStats()
        plog.separator("Discovery run" + (" (dry run)" if dry_run else ""))

        await self._check_budgets()

        for domain in config.domains:
            plog.step_start(PipelineStage.DISCOVERY, f"Mapping {domain}", limit=config.max_results_per_domain)
            try:
                urls = await self._discovery.discover_from_map(domain, config.max_results_per_domain)
            except Exception as exc:
                plog.step_error(PipelineStage.DISCOVERY, f"Map discovery failed for {domain}", error=exc)
                stats.record_error(f"map {domain}: {exc}")
                continue
            await self._process_urls(urls, stats, dry_run)

        for query in config.search_queries:
            plog.step_start(PipelineStage.DISCOVERY, f"Searching {query!r}", limit=config.max_results_per_query)
            try:
                urls = await self._discovery.discover_from_search(
                    query, config.max_results_per_query, config.include_domains
                )
            except Exception as exc:
                plog.step_error(PipelineStage.DISCOVERY, f"Search discovery failed for {query!r}", error=exc)
                stats.record_error(f"search {query!r}: {exc}")
                continue
            await self._process_urls(urls, stats, dry_run)

        stats.duration_ms = int((time.monotonic() - start) * 1000)
        plog.step_complete(PipelineStage.COMPLETE, "Discovery run finished")
        plog.stats(
            discovered=stats.discovered,
            evaluated=stats.evaluated,
            pending_review=stats.pending_review,
            rejected=stats.rejected,
            skipped=stats.skipped,
            errors=stats.errors,
            duration_ms=stats.duration_ms,
        )

        if self._notifier is not None:
            try:
                await self._notifier.discovery_summary(stats.to_dict())
            except Exception as exc:
                logger.warning("Discovery summary delivery failed: %s", exc)
        return stats

    # ── Budget gate ──────────────────────────────────────────────────

    async def _check_budgets(self) -> None:
        statuses = await self._cost.check_all_budgets()
        over = [s for s in statuses if not s.within_budget]

        for status in over:
            await self._alert(status, "critical")
        if over:
            services = [s.service.value for s in over]
            plog.step_error(PipelineStage.ERROR, f"Budget exceeded for {', '.join(services)}; aborting run")
            raise BudgetExceededError(services)

        for status in statuses:
            if status.percentage >= self._warning_percentage:
                plog.step_warning(
                    PipelineStage.PIPELINE,
                    f"{status.service.value} budget at {status.percentage:.0f}%",
                    usage=status.usage,
                    budget=status.budget,
                )
                await self._alert(status, "warning")

    async def _alert(self, status: BudgetStatus, threshold: str) -> None:
        if self._notifier is None:
            return
        try:
            await self._notifier.budget_alert(status, threshold)
        except Exception as exc:
            logger.warning("Budget alert delivery failed: %s", exc)

    # ── Per-URL pipeline ─────────────────────────────────────────────

    async def _process_urls(
        self, urls: list[DiscoveredUrl], stats: DiscoveryRunStats, dry_run: bool
    ) -> None:
        stats.discovered += len(urls)
        for found in urls:
            key = found.method.value
            stats.by_method[key] = stats.by_method.get(key, 0) + 1

        for i in range(0, len(urls), self._concurrency):
            batch = urls[i : i + self._concurrency]
            outcomes = await asyncio.gather(
                *(self._process_url(found, dry_run) for found in batch),
                return_exceptions=True,
            )
            for found, outcome in zip(batch, outcomes):
                if isinstance(outcome, BaseException):
                    plog.step_error(PipelineStage.ERROR, f"Error processing {found.url}", error=outcome)  # type: ignore[arg-type]
                    stats.record_error(f"{found.url}: {outcome}")
                elif outcome == "skipped":
                    stats.skipped += 1
                elif outcome == "rejected":
                    stats.evaluated += 1
                    stats.rejected += 1
                else:
                    stats.evaluated += 1
                    stats.pending_review += 1

    async def _process_url(self, found: DiscoveredUrl, dry_run: bool) -> str:
        """Returns "skipped", "rejected" or "pending_review"."""
        discovery_id = self._discovery.generate_id(found.url)
        domain = urlsplit(found.url).hostname or ""

        record: DiscoveredSource | None = None
        if not dry_run:
            async with self._write_lock:
                if await self._repo.exists(discovery_id):
                    plog.detail(f"Already discovered, skipping {found.url}")
                    return "skipped"
                try:
                    record = await self._repo.create(
                        DiscoveredSource(
                            id=discovery_id,
                            url=found.url,
                            title=found.title,
                            discovery_method=found.method,
                            discovered_from=found.discovered_from,
                        )
                    )
                except DuplicateEntityError:
                    return "skipped"

        metadata = await self._evaluation.evaluate_metadata(found.url, found.title, domain)
        if record is not None:
            record.mark_metadata_evaluated(
                is_relevant=metadata.is_relevant,
                confidence=metadata.confidence,
                reasoning=metadata.reasoning,
                suggested_topic_domains=metadata.suggested_topic_domains,
                preliminary_document_type=metadata.preliminary_document_type,
            )
            async with self._write_lock:
                await self._repo.update(record)

        if not metadata.is_relevant or metadata.confidence < METADATA_RELEVANCE_THRESHOLD:
            plog.detail(f"Rejected after metadata evaluation: {found.url}", confidence=metadata.confidence)
            return "rejected"

        source_format = infer_format(found.url)
        fetched = await self._fetcher.fetch(found.url)
        text = await self._extractor.extract(fetched.content, source_format)

        content = await self._evaluation.evaluate_content(found.url, found.title, text)
        combined = self._evaluation.calculate_combined_confidence(
            metadata.confidence, content.confidence
        )
        if record is not None:
            record.mark_content_evaluated(
                content_confidence=content.confidence,
                reasoning=content.description,
                document_type=content.document_type,
                topic_domains=content.topic_domains,
                authority_level=content.authority_level,  # type: ignore[arg-type]
                priority=content.priority,  # type: ignore[arg-type]
                description=content.description,
                ngb_id=content.ngb_id,
                format=source_format.value,
            )
            async with self._write_lock:
                await self._repo.update(record)

        plog.step_complete(
            PipelineStage.EVALUATE,
            f"Awaiting review: {found.url}",
            combined=f"{combined:.2f}",
            high_quality=content.is_high_quality,
        )
        return "pending_review"
