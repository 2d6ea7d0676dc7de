"""Domain entities for API usage accounting and budget checks."""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from enum import Enum


class TrackedService(str, Enum):
    """Paid upstream services whose usage is metered."""

    TAVILY = "tavily"
    LLM = "llm"


class UsagePeriod(str, Enum):
    """Rolling bucket granularity."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


def period_start(period: UsagePeriod, today: date | None = None) -> str:
    """Bucket date for *period*: the day, the ISO week's Monday, or the 1st of the month."""
    today = today or datetime.now(timezone.utc).date()
    if period == UsagePeriod.DAILY:
        return today.isoformat()
    if period == UsagePeriod.WEEKLY:
        return (today - timedelta(days=today.weekday())).isoformat()
    return today.replace(day=1).isoformat()


@dataclass
class UsageMetric:
    """A counter bucket keyed by (service, period, date).

    Search services fill ``calls`` and ``credits``; LLM services fill
    ``calls``, the token counters and ``cost`` (USD).
    """

    service: TrackedService
    period: UsagePeriod
    date: str
    calls: int = 0
    credits: float = 0.0
    input_tokens: int = 0
    output_tokens: int = 0
    cost: float = 0.0
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def usage(self) -> float:
        """The quantity budgets are expressed in for this service."""
        return self.credits if self.service == TrackedService.TAVILY else self.cost


@dataclass
class BudgetStatus:
    """Result of comparing a monthly bucket against its configured budget."""

    service: TrackedService
    usage: float
    budget: float
    percentage: float
    within_budget: bool
    period: UsagePeriod = UsagePeriod.MONTHLY
