"""Pipeline wiring — builds session-bound services for the scheduler and the API.

Process-wide singletons (circuit breaker, cost tracker, context hints) live
here so state is shared across sessions; everything holding a session is
built fresh per unit of work.
"""

from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncSession

from app.application.interfaces import (
    IngestionQueue,
    SourceConfigRepository,
)
from app.application.services.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from app.application.services.context_hints import ContextHintProvider
from app.application.services.cost_tracker import CostRates, CostTracker
from app.application.services.discovery_orchestrator import DiscoveryOrchestrator
from app.application.services.discovery_review_service import DiscoveryReviewService
from app.application.services.discovery_service import DiscoveryService
from app.application.services.evaluation_service import EvaluationService
from app.application.services.ingestion_coordinator import IngestionCoordinator
from app.application.services.ingestion_worker import IngestionWorker
from app.application.services.pipeline_scheduler import PipelineScheduler
from app.application.services.text_splitter import TextSplitter
from app.config import get_settings
from app.domain.exceptions import SearchProviderError
from app.infrastructure.catalog import JsonFileSourceConfigRepository
from app.infrastructure.database.repositories import (
    SQLAlchemyChunkRepository,
    SQLAlchemyDiscoveredSourceRepository,
    SQLAlchemyIngestionQueue,
    SQLAlchemyIngestionStatusRepository,
    SQLAlchemySourceConfigRepository,
    SQLAlchemyUsageMetricRepository,
)
from app.infrastructure.database.session import async_session_factory
from app.infrastructure.extractors import SourceTextExtractor
from app.infrastructure.http import HttpContentFetcher
from app.infrastructure.notifications import LoggingNotifier
from app.infrastructure.openrouter import OpenRouterClient
from app.infrastructure.profiles import YamlProfileSource
from app.infrastructure.tavily import TavilyClient


def _is_upstream_failure(exc: Exception) -> bool:
    """Client errors from the discovery API (bad request, auth) don't trip the breaker."""
    if isinstance(exc, SearchProviderError):
        return exc.status_code >= 500 or exc.status_code in (408, 429)
    return True


# ── Process-wide singletons ──────────────────────────────────────────

@lru_cache
def get_tavily_circuit_breaker() -> CircuitBreaker:
    settings = get_settings()
    return CircuitBreaker(
        CircuitBreakerConfig(
            name="tavily",
            failure_threshold=settings.circuit_failure_threshold,
            reset_timeout_seconds=settings.circuit_reset_timeout_seconds,
            request_timeout_seconds=settings.circuit_request_timeout_seconds,
            success_threshold=settings.circuit_success_threshold,
            should_record_failure=_is_upstream_failure,
        )
    )


@lru_cache
def get_cost_tracker() -> CostTracker:
    """Usage increments commit in their own sessions, so one tracker serves all callers."""
    settings = get_settings()
    rates = CostRates(
        llm_input_cost_per_million=settings.llm_input_cost_per_million,
        llm_output_cost_per_million=settings.llm_output_cost_per_million,
        tavily_monthly_budget=settings.tavily_monthly_budget,
        llm_monthly_budget=settings.llm_monthly_budget,
    )
    return CostTracker(SQLAlchemyUsageMetricRepository(async_session_factory), rates)


@lru_cache
def get_context_hints() -> ContextHintProvider:
    settings = get_settings()
    return ContextHintProvider(
        YamlProfileSource(settings.ngb_profiles_file),
        ttl_seconds=settings.ngb_profiles_ttl_seconds,
    )


def build_fetcher() -> HttpContentFetcher:
    settings = get_settings()
    return HttpContentFetcher(
        max_retries=settings.fetch_max_retries,
        initial_delay_seconds=settings.fetch_initial_delay_seconds,
        max_delay_seconds=settings.fetch_max_delay_seconds,
        timeout_seconds=settings.fetch_timeout_seconds,
    )


# ── Session-bound builders ───────────────────────────────────────────

def build_source_repository(session: AsyncSession) -> SourceConfigRepository:
    """Catalog repository for the configured backend (``database`` or ``file``)."""
    settings = get_settings()
    if settings.catalog_backend == "file":
        return JsonFileSourceConfigRepository(settings.catalog_file)
    return SQLAlchemySourceConfigRepository(session)


def build_queue(session: AsyncSession) -> IngestionQueue:
    return SQLAlchemyIngestionQueue(session)


def build_review_service(session: AsyncSession) -> DiscoveryReviewService:
    return DiscoveryReviewService(
        SQLAlchemyDiscoveredSourceRepository(session),
        build_source_repository(session),
    )


def build_coordinator(session: AsyncSession) -> IngestionCoordinator:
    settings = get_settings()
    return IngestionCoordinator(
        build_source_repository(session),
        build_fetcher(),
        build_queue(session),
        SQLAlchemyIngestionStatusRepository(session),
        review_service=build_review_service(session),
        notifier=LoggingNotifier(),
        auto_promote=settings.auto_promote_approved,
        promotion_lookback_hours=settings.promotion_lookback_hours,
        concurrency=settings.coordinator_concurrency,
    )


def build_worker(session: AsyncSession) -> IngestionWorker:
    settings = get_settings()
    return IngestionWorker(
        build_source_repository(session),
        SQLAlchemyChunkRepository(session),
        SQLAlchemyIngestionStatusRepository(session),
        build_queue(session),
        build_fetcher(),
        SourceTextExtractor(),
        TextSplitter(settings.chunk_size, settings.chunk_overlap),
        dedup_threshold=settings.ingestion_dedup_threshold,
    )


def build_orchestrator(session: AsyncSession) -> DiscoveryOrchestrator:
    settings = get_settings()
    cost_tracker = get_cost_tracker()

    tavily = TavilyClient(
        api_key=settings.tavily_api_key,
        base_url=settings.tavily_base_url,
        timeout_seconds=settings.tavily_timeout_seconds,
    )
    openrouter = OpenRouterClient(
        api_key=settings.openrouter_api_key,
        base_url=settings.openrouter_base_url,
        app_name=settings.openrouter_app_name,
        max_retries=settings.openrouter_max_retries,
    )

    return DiscoveryOrchestrator(
        DiscoveryService(tavily, get_tavily_circuit_breaker(), cost_tracker),
        EvaluationService(
            openrouter,
            cost_tracker,
            get_context_hints(),
            model=settings.evaluation_model,
            max_tokens=settings.evaluation_max_tokens,
            content_max_chars=settings.evaluation_content_max_chars,
        ),
        SQLAlchemyDiscoveredSourceRepository(session),
        cost_tracker,
        build_fetcher(),
        SourceTextExtractor(),
        LoggingNotifier(),
        concurrency=settings.discovery_concurrency,
        warning_percentage=settings.budget_warning_percentage,
    )


def build_scheduler() -> PipelineScheduler:
    settings = get_settings()
    return PipelineScheduler(
        async_session_factory,
        build_coordinator=build_coordinator,
        build_orchestrator=build_orchestrator,
        build_worker=build_worker,
        build_queue=build_queue,
        discovery_config_file=settings.discovery_config_file,
        coordinator_interval_seconds=settings.coordinator_interval_minutes * 60,
        discovery_interval_seconds=settings.discovery_interval_hours * 3600,
        poll_interval_seconds=settings.worker_poll_interval_seconds,
    )
