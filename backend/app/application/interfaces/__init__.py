from .chat_provider import ChatProvider
from .chunk_repository import ChunkRepository
from .content_fetcher import ContentFetcher, FetchedContent
from .discovered_source_repository import DiscoveredSourceRepository
from .ingestion_queue import IngestionQueue, IngestionStatusRepository
from .notifier import Notifier
from .organization_profile_source import OrganizationProfileSource
from .source_config_repository import SourceConfigRepository
from .text_extractor import TextExtractor
from .usage_metric_repository import UsageMetricRepository
from .web_discovery_provider import SearchHit, WebDiscoveryProvider

__all__ = [
    "ChatProvider",
    "ChunkRepository",
    "ContentFetcher",
    "FetchedContent",
    "DiscoveredSourceRepository",
    "IngestionQueue",
    "IngestionStatusRepository",
    "Notifier",
    "OrganizationProfileSource",
    "SourceConfigRepository",
    "TextExtractor",
    "UsageMetricRepository",
    "SearchHit",
    "WebDiscoveryProvider",
]
