"""Usage API controller — tracked API usage and budget status."""

from fastapi import APIRouter, Depends

from app.application.schemas.usage import (
    BudgetStatusResponse,
    UsageMetricResponse,
    UsageStatsResponse,
)
from app.application.services.cost_tracker import CostTracker
from app.domain.entities.usage_metric import BudgetStatus, TrackedService, UsageMetric, UsagePeriod
from app.infrastructure.dependencies import get_usage_cost_tracker

router = APIRouter(prefix="/usage", tags=["Usage"])


def _metric_to_response(metric: UsageMetric) -> UsageMetricResponse:
    return UsageMetricResponse(
        service=metric.service,
        period=metric.period,
        date=metric.date,
        calls=metric.calls,
        credits=metric.credits,
        input_tokens=metric.input_tokens,
        output_tokens=metric.output_tokens,
        cost=metric.cost,
        updated_at=metric.updated_at.isoformat(),
    )


def _budget_to_response(status: BudgetStatus) -> BudgetStatusResponse:
    return BudgetStatusResponse(
        service=status.service,
        period=status.period,
        usage=status.usage,
        budget=status.budget,
        percentage=status.percentage,
        within_budget=status.within_budget,
    )


@router.get("/stats", response_model=UsageStatsResponse)
async def get_usage_stats(
    service: TrackedService | None = None,
    period: UsagePeriod | None = None,
    tracker: CostTracker = Depends(get_usage_cost_tracker),
) -> UsageStatsResponse:
    """Current usage buckets, optionally narrowed to one service and/or period."""
    services = [service] if service else list(TrackedService)
    periods = [period] if period else list(UsagePeriod)
    metrics = [await tracker.get_usage_stats(s, p) for s in services for p in periods]
    return UsageStatsResponse(stats=[_metric_to_response(m) for m in metrics])


@router.get("/budgets", response_model=list[BudgetStatusResponse])
async def get_budgets(
    tracker: CostTracker = Depends(get_usage_cost_tracker),
) -> list[BudgetStatusResponse]:
    """Monthly budget status for every tracked service."""
    return [_budget_to_response(s) for s in await tracker.check_all_budgets()]


@router.get("/budgets/{service}", response_model=BudgetStatusResponse)
async def get_budget(
    service: TrackedService,
    tracker: CostTracker = Depends(get_usage_cost_tracker),
) -> BudgetStatusResponse:
    return _budget_to_response(await tracker.check_budget(service))
