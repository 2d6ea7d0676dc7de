"""Unit tests for the CostTracker."""

from datetime import date

import pytest

from app.application.services.cost_tracker import CostRates, CostTracker
from app.domain.entities import TrackedService, UsagePeriod
from app.domain.entities.usage_metric import period_start
from app.domain.exceptions import UsageTrackingError
from tests.fakes import FakeUsageMetricRepository


def test_period_start_buckets():
    wednesday = date(2025, 3, 12)
    assert period_start(UsagePeriod.DAILY, wednesday) == "2025-03-12"
    assert period_start(UsagePeriod.WEEKLY, wednesday) == "2025-03-10"
    assert period_start(UsagePeriod.MONTHLY, wednesday) == "2025-03-01"


def test_llm_cost_calculation():
    tracker = CostTracker(FakeUsageMetricRepository(), CostRates(3.0, 15.0))
    assert tracker.calculate_llm_cost(1_000_000, 1_000_000) == pytest.approx(18.0)
    assert tracker.calculate_llm_cost(2000, 500) == pytest.approx(0.0135)


@pytest.mark.asyncio
async def test_tavily_calls_increment_all_three_buckets():
    repo = FakeUsageMetricRepository()
    tracker = CostTracker(repo)

    await tracker.track_tavily_call("map")
    await tracker.track_tavily_call("search")

    for period in UsagePeriod:
        stats = await tracker.get_usage_stats(TrackedService.TAVILY, period)
        assert stats.calls == 2
        assert stats.credits == 6


@pytest.mark.asyncio
async def test_unknown_tavily_method_rejected():
    tracker = CostTracker(FakeUsageMetricRepository())
    with pytest.raises(ValueError):
        await tracker.track_tavily_call("crawl")


@pytest.mark.asyncio
async def test_llm_call_returns_and_records_cost():
    tracker = CostTracker(FakeUsageMetricRepository())
    cost = await tracker.track_llm_call(1000, 200)

    assert cost == pytest.approx(0.006)
    monthly = await tracker.get_usage_stats(TrackedService.LLM, UsagePeriod.MONTHLY)
    assert monthly.input_tokens == 1000
    assert monthly.output_tokens == 200
    assert monthly.cost == pytest.approx(0.006)


@pytest.mark.asyncio
async def test_bucket_failure_fails_the_tracking_call():
    tracker = CostTracker(FakeUsageMetricRepository(fail_on=UsagePeriod.WEEKLY))
    with pytest.raises(UsageTrackingError) as exc_info:
        await tracker.track_tavily_call("search")
    assert exc_info.value.period == "weekly"


@pytest.mark.asyncio
async def test_budget_over_limit():
    repo = FakeUsageMetricRepository()
    tracker = CostTracker(repo, CostRates(tavily_monthly_budget=1000))
    await repo.increment(
        TrackedService.TAVILY,
        UsagePeriod.MONTHLY,
        period_start(UsagePeriod.MONTHLY),
        calls=1,
        credits=1200,
    )

    status = await tracker.check_budget(TrackedService.TAVILY)

    assert status.usage == 1200
    assert status.percentage == pytest.approx(120.0)
    assert status.within_budget is False


@pytest.mark.asyncio
async def test_zero_budget_is_never_within_budget():
    tracker = CostTracker(FakeUsageMetricRepository(), CostRates(llm_monthly_budget=0))
    status = await tracker.check_budget(TrackedService.LLM)
    assert status.percentage == 0
    assert status.within_budget is False


@pytest.mark.asyncio
async def test_untracked_service_reports_zero_usage():
    tracker = CostTracker(FakeUsageMetricRepository())
    statuses = await tracker.check_all_budgets()
    assert {s.service for s in statuses} == set(TrackedService)
    assert all(s.usage == 0 and s.within_budget for s in statuses)
    assert len(await tracker.get_all_usage_stats()) == len(TrackedService) * len(UsagePeriod)
