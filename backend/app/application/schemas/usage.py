"""Pydantic schemas for the usage and budget API."""

from pydantic import BaseModel

from app.domain.entities.usage_metric import TrackedService, UsagePeriod


class UsageMetricResponse(BaseModel):
    service: TrackedService
    period: UsagePeriod
    date: str
    calls: int
    credits: float
    input_tokens: int
    output_tokens: int
    cost: float
    updated_at: str


class UsageStatsResponse(BaseModel):
    stats: list[UsageMetricResponse]


class BudgetStatusResponse(BaseModel):
    service: TrackedService
    period: UsagePeriod
    usage: float
    budget: float
    percentage: float
    within_budget: bool
