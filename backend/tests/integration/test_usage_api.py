"""API tests for usage statistics and budget status."""

import pytest
from httpx import ASGITransport, AsyncClient

from app.application.services.cost_tracker import CostRates, CostTracker
from app.infrastructure.dependencies import get_usage_cost_tracker
from app.main import app
from tests.fakes import FakeUsageMetricRepository


@pytest.fixture
def tracker():
    tracker = CostTracker(
        FakeUsageMetricRepository(),
        CostRates(tavily_monthly_budget=100, llm_monthly_budget=0),
    )
    app.dependency_overrides[get_usage_cost_tracker] = lambda: tracker
    yield tracker
    app.dependency_overrides.clear()


def _client() -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_stats_cover_every_service_and_period(tracker):
    await tracker.track_tavily_call("map")

    async with _client() as client:
        everything = await client.get("/api/v1/usage/stats")
        narrowed = await client.get(
            "/api/v1/usage/stats", params={"service": "tavily", "period": "monthly"}
        )

    assert len(everything.json()["stats"]) == 6
    [monthly] = narrowed.json()["stats"]
    assert monthly["calls"] == 1
    assert monthly["credits"] == 5


@pytest.mark.asyncio
async def test_budget_status(tracker):
    for _ in range(4):
        await tracker.track_tavily_call("map")

    async with _client() as client:
        tavily = await client.get("/api/v1/usage/budgets/tavily")
        budgets = await client.get("/api/v1/usage/budgets")

    assert tavily.json()["percentage"] == pytest.approx(20.0)
    assert tavily.json()["within_budget"] is True
    llm = next(b for b in budgets.json() if b["service"] == "llm")
    assert llm["within_budget"] is False
    assert llm["percentage"] == 0


@pytest.mark.asyncio
async def test_unknown_service_is_rejected(tracker):
    async with _client() as client:
        response = await client.get("/api/v1/usage/budgets/openai")
    assert response.status_code == 422
