from .chunk_repository import SQLAlchemyChunkRepository
from .discovered_source_repository import SQLAlchemyDiscoveredSourceRepository
from .ingestion_queue import SQLAlchemyIngestionQueue, SQLAlchemyIngestionStatusRepository
from .source_config_repository import SQLAlchemySourceConfigRepository
from .usage_metric_repository import SQLAlchemyUsageMetricRepository

__all__ = [
    "SQLAlchemyChunkRepository",
    "SQLAlchemyDiscoveredSourceRepository",
    "SQLAlchemyIngestionQueue",
    "SQLAlchemyIngestionStatusRepository",
    "SQLAlchemySourceConfigRepository",
    "SQLAlchemyUsageMetricRepository",
]
