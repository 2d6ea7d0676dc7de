"""Notifier that writes alerts and summaries to the application log."""

import json
import logging
from typing import Any

from app.application.interfaces.notifier import Notifier
from app.domain.entities.usage_metric import BudgetStatus

logger = logging.getLogger(__name__)


class LoggingNotifier(Notifier):
    """Structured log lines at warning / error / critical.

    Stands in for chat or e-mail delivery; log shipping picks these up.
    """

    async def budget_alert(self, status: BudgetStatus, threshold: str) -> None:
        level = logging.CRITICAL if threshold == "critical" else logging.WARNING
        logger.log(
            level,
            "Budget %s for %s: %.2f of %.2f (%.0f%%)",
            threshold,
            status.service.value,
            status.usage,
            status.budget,
            status.percentage,
        )

    async def discovery_summary(self, summary: dict[str, Any]) -> None:
        level = logging.WARNING if summary.get("errors") else logging.INFO
        logger.log(level, "Discovery run summary: %s", json.dumps(summary, default=str))

    async def health_signal(self, signal: str, details: dict[str, Any]) -> None:
        level = logging.CRITICAL if signal == "systematic_failure" else logging.ERROR
        logger.log(level, "Ingestion health signal %s: %s", signal, json.dumps(details, default=str))
