from .chat_message import ChatMessage, TokenUsage, ChatCompletionResult
from .discovered_source import (
    DiscoveredSource,
    DiscoveryMethod,
    DiscoveryStatus,
    combined_confidence,
)
from .document_chunk import AlternativeSource, DocumentChunk
from .ingestion import IngestionJob, IngestionState, IngestionStatusEntry, JobStatus
from .organization_profile import OrganizationProfile, TopicKeywords
from .source_config import (
    AUTHORITY_LEVELS,
    AuthorityLevel,
    Priority,
    SourceConfig,
    SourceFormat,
    authority_rank,
)
from .usage_metric import BudgetStatus, TrackedService, UsageMetric, UsagePeriod

__all__ = [
    "ChatMessage",
    "TokenUsage",
    "ChatCompletionResult",
    "DiscoveredSource",
    "DiscoveryMethod",
    "DiscoveryStatus",
    "combined_confidence",
    "AlternativeSource",
    "DocumentChunk",
    "IngestionJob",
    "IngestionState",
    "IngestionStatusEntry",
    "JobStatus",
    "OrganizationProfile",
    "TopicKeywords",
    "AUTHORITY_LEVELS",
    "AuthorityLevel",
    "Priority",
    "SourceConfig",
    "SourceFormat",
    "authority_rank",
    "BudgetStatus",
    "TrackedService",
    "UsageMetric",
    "UsagePeriod",
]
