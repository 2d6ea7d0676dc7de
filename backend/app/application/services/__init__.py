from .circuit_breaker import CircuitBreaker, CircuitBreakerConfig, CircuitState
from .context_hints import ContextHintProvider
from .cost_tracker import CostRates, CostTracker
from .discovery_orchestrator import DiscoveryOrchestrator, DiscoveryRunConfig, DiscoveryRunStats
from .discovery_review_service import DiscoveryReviewService, ReviewAction
from .discovery_service import DiscoveryService
from .evaluation_service import EvaluationService
from .ingestion_coordinator import IngestionCoordinator
from .ingestion_worker import IngestionWorker
from .pipeline_scheduler import PipelineScheduler
from .source_service import SourceService
from .text_splitter import TextSplitter
from .ttl_cache import TTLCache

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitState",
    "ContextHintProvider",
    "CostRates",
    "CostTracker",
    "DiscoveryOrchestrator",
    "DiscoveryRunConfig",
    "DiscoveryRunStats",
    "DiscoveryReviewService",
    "ReviewAction",
    "DiscoveryService",
    "EvaluationService",
    "IngestionCoordinator",
    "IngestionWorker",
    "PipelineScheduler",
    "SourceService",
    "TextSplitter",
    "TTLCache",
]
