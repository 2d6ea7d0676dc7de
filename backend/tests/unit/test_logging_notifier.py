"""Unit tests for LoggingNotifier log levels."""

import logging

import pytest

from app.domain.entities import BudgetStatus, TrackedService
from app.infrastructure.notifications import LoggingNotifier

LOGGER = "app.infrastructure.notifications.logging_notifier"


def _status(percentage: float) -> BudgetStatus:
    return BudgetStatus(
        service=TrackedService.TAVILY,
        usage=percentage * 10,
        budget=1000,
        percentage=percentage,
        within_budget=percentage <= 100,
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("threshold,level", [("warning", logging.WARNING), ("critical", logging.CRITICAL)])
async def test_budget_alert_levels(caplog, threshold: str, level: int):
    with caplog.at_level(logging.INFO, logger=LOGGER):
        await LoggingNotifier().budget_alert(_status(85), threshold)

    record = caplog.records[-1]
    assert record.levelno == level
    assert "tavily" in record.getMessage()
    assert "85%" in record.getMessage()


@pytest.mark.asyncio
async def test_discovery_summary_escalates_on_errors(caplog):
    notifier = LoggingNotifier()
    with caplog.at_level(logging.INFO, logger=LOGGER):
        await notifier.discovery_summary({"discovered": 3, "errors": 0})
        await notifier.discovery_summary({"discovered": 3, "errors": 2})

    assert [r.levelno for r in caplog.records] == [logging.INFO, logging.WARNING]
    assert '"discovered": 3' in caplog.records[0].getMessage()


@pytest.mark.asyncio
@pytest.mark.parametrize("signal,level", [("systematic_failure", logging.CRITICAL), ("degraded", logging.ERROR)])
async def test_health_signal_levels(caplog, signal: str, level: int):
    with caplog.at_level(logging.INFO, logger=LOGGER):
        await LoggingNotifier().health_signal(signal, {"processed": 4, "failed": 4})

    assert caplog.records[-1].levelno == level
    assert signal in caplog.records[-1].getMessage()
