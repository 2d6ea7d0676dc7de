from .base import Base
from .session import engine, async_session_factory, get_db_session
from .models import (
    DiscoveredSourceModel,
    DocumentChunkModel,
    IngestionJobModel,
    IngestionStatusModel,
    SourceConfigModel,
    UsageMetricModel,
)

__all__ = [
    "Base",
    "engine",
    "async_session_factory",
    "get_db_session",
    "DiscoveredSourceModel",
    "DocumentChunkModel",
    "IngestionJobModel",
    "IngestionStatusModel",
    "SourceConfigModel",
    "UsageMetricModel",
]
