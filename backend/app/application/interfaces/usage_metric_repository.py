"""Abstract repository interface (port) for usage metric buckets."""

from abc import ABC, abstractmethod

from app.domain.entities.usage_metric import TrackedService, UsageMetric, UsagePeriod


class UsageMetricRepository(ABC):
    """Port for usage counters keyed by (service, period, date)."""

    @abstractmethod
    async def increment(
        self,
        service: TrackedService,
        period: UsagePeriod,
        date: str,
        *,
        calls: int = 0,
        credits: float = 0.0,
        input_tokens: int = 0,
        output_tokens: int = 0,
        cost: float = 0.0,
    ) -> None:
        """Atomically add to one bucket, creating it on first use."""
        ...

    @abstractmethod
    async def get(
        self, service: TrackedService, period: UsagePeriod, date: str
    ) -> UsageMetric | None:
        """Retrieve one bucket, or None if nothing was tracked yet."""
        ...
