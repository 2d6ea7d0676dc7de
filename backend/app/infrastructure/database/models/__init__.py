from .discovered_source_models import DiscoveredSourceModel
from .document_chunk_models import DocumentChunkModel
from .ingestion_models import IngestionJobModel, IngestionStatusModel
from .source_config_models import SourceConfigModel
from .usage_metric_models import UsageMetricModel

__all__ = [
    "DiscoveredSourceModel",
    "DocumentChunkModel",
    "IngestionJobModel",
    "IngestionStatusModel",
    "SourceConfigModel",
    "UsageMetricModel",
]
