from .discovery import (
    BulkDiscoveryActionRequest,
    BulkPromotionResponse,
    BulkReviewResponse,
    DiscoveryActionRequest,
    DiscoveryActionResponse,
    DiscoveryListResponse,
    DiscoveryResponse,
    PromotionResultResponse,
)
from .source import (
    BulkCreateResultResponse,
    BulkCreateSourcesRequest,
    BulkCreateSourcesResponse,
    BulkSourceActionRequest,
    BulkSourceActionResponse,
    CreateSourceRequest,
    DeleteSourceResponse,
    IngestionJobResponse,
    IngestionStatusResponse,
    SourceResponse,
    UpdateSourceRequest,
    UpdateSourceResponse,
)
from .usage import BudgetStatusResponse, UsageMetricResponse, UsageStatsResponse

__all__ = [
    "BulkDiscoveryActionRequest",
    "BulkPromotionResponse",
    "BulkReviewResponse",
    "DiscoveryActionRequest",
    "DiscoveryActionResponse",
    "DiscoveryListResponse",
    "DiscoveryResponse",
    "PromotionResultResponse",
    "BulkCreateResultResponse",
    "BulkCreateSourcesRequest",
    "BulkCreateSourcesResponse",
    "BulkSourceActionRequest",
    "BulkSourceActionResponse",
    "CreateSourceRequest",
    "DeleteSourceResponse",
    "IngestionJobResponse",
    "IngestionStatusResponse",
    "SourceResponse",
    "UpdateSourceRequest",
    "UpdateSourceResponse",
    "BudgetStatusResponse",
    "UsageMetricResponse",
    "UsageStatsResponse",
]
