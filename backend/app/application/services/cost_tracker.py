"""Cost tracker — meters paid API usage and checks it against monthly budgets.

Every tracked call increments three buckets (daily, weekly, monthly). The
monthly bucket is what budgets are checked against.
"""

import logging
from dataclasses import dataclass

from app.application.interfaces import UsageMetricRepository
from app.domain.entities.usage_metric import (
    BudgetStatus,
    TrackedService,
    UsageMetric,
    UsagePeriod,
    period_start,
)
from app.domain.exceptions import UsageTrackingError

logger = logging.getLogger(__name__)

TAVILY_CREDITS = {
    "search": 1,
    "map": 5,
}


@dataclass
class CostRates:
    """Pricing and budget configuration."""

    llm_input_cost_per_million: float = 3.0
    llm_output_cost_per_million: float = 15.0
    tavily_monthly_budget: float = 1000
    llm_monthly_budget: float = 10.0


class CostTracker:
    """Tracks Tavily credits and LLM token cost; reports budget status.

    Usage:
        tracker = CostTracker(usage_repo, CostRates(llm_monthly_budget=25))
        await tracker.track_tavily_call("map")
        status = await tracker.check_budget(TrackedService.TAVILY)
    """

    def __init__(self, repository: UsageMetricRepository, rates: CostRates | None = None):
        self._repo = repository
        self._rates = rates or CostRates()

    # ── Tracking ─────────────────────────────────────────────────────

    async def track_tavily_call(self, method: str) -> None:
        """Track one Tavily request (``search`` = 1 credit, ``map`` = 5 credits)."""
        if method not in TAVILY_CREDITS:
            raise ValueError(f"Unknown Tavily method: {method}")
        credits = TAVILY_CREDITS[method]
        logger.info("Tracking Tavily %s call (%d credits)", method, credits)
        await self._increment(TrackedService.TAVILY, calls=1, credits=credits)

    async def track_llm_call(self, input_tokens: int, output_tokens: int) -> float:
        """Track one LLM request and return its estimated cost in USD."""
        cost = self.calculate_llm_cost(input_tokens, output_tokens)
        logger.info(
            "Tracking LLM call (%d in, %d out, $%.4f)", input_tokens, output_tokens, cost
        )
        await self._increment(
            TrackedService.LLM,
            calls=1,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost=cost,
        )
        return cost

    def calculate_llm_cost(self, input_tokens: int, output_tokens: int) -> float:
        return (
            input_tokens / 1_000_000 * self._rates.llm_input_cost_per_million
            + output_tokens / 1_000_000 * self._rates.llm_output_cost_per_million
        )

    async def _increment(self, service: TrackedService, **deltas) -> None:
        """Apply *deltas* to every period bucket; any bucket failure fails the whole call."""
        for period in UsagePeriod:
            bucket_date = period_start(period)
            try:
                await self._repo.increment(service, period, bucket_date, **deltas)
            except Exception as exc:
                logger.error(
                    "Error incrementing %s %s metrics (%s): %s",
                    service.value,
                    period.value,
                    bucket_date,
                    exc,
                )
                raise UsageTrackingError(service.value, period.value, exc) from exc

    # ── Budgets ──────────────────────────────────────────────────────

    def budget_for(self, service: TrackedService) -> float:
        if service == TrackedService.TAVILY:
            return self._rates.tavily_monthly_budget
        return self._rates.llm_monthly_budget

    async def check_budget(self, service: TrackedService) -> BudgetStatus:
        """Compare this month's usage to the configured budget.

        A budget of 0 reports ``percentage=0`` and ``within_budget=False``.
        """
        budget = self.budget_for(service)
        stats = await self.get_usage_stats(service, UsagePeriod.MONTHLY)
        usage = stats.usage

        if budget > 0:
            percentage = usage / budget * 100
            within_budget = usage <= budget
        else:
            percentage = 0.0
            within_budget = False

        logger.info(
            "Budget check for %s: usage=%.4f budget=%.4f (%.1f%%) within=%s",
            service.value,
            usage,
            budget,
            percentage,
            within_budget,
        )
        return BudgetStatus(
            service=service,
            usage=usage,
            budget=budget,
            percentage=percentage,
            within_budget=within_budget,
        )

    async def check_all_budgets(self) -> list[BudgetStatus]:
        return [await self.check_budget(service) for service in TrackedService]

    # ── Stats ────────────────────────────────────────────────────────

    async def get_usage_stats(self, service: TrackedService, period: UsagePeriod) -> UsageMetric:
        """Current bucket for (service, period); zeros when nothing was tracked yet."""
        bucket_date = period_start(period)
        metric = await self._repo.get(service, period, bucket_date)
        if metric is None:
            return UsageMetric(service=service, period=period, date=bucket_date)
        return metric

    async def get_all_usage_stats(self) -> list[UsageMetric]:
        return [
            await self.get_usage_stats(service, period)
            for service in TrackedService
            for period in UsagePeriod
        ]
