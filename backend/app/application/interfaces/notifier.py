"""Abstract interface (port) for operator notifications."""

from abc import ABC, abstractmethod
from typing import Any

from app.domain.entities.usage_metric import BudgetStatus


class Notifier(ABC):
    """Port for alerts and run summaries. Delivery channels live in infrastructure."""

    @abstractmethod
    async def budget_alert(self, status: BudgetStatus, threshold: str) -> None:
        """Report a budget crossing; *threshold* is ``warning`` or ``critical``."""
        ...

    @abstractmethod
    async def discovery_summary(self, summary: dict[str, Any]) -> None:
        """Report the outcome of a discovery run."""
        ...

    @abstractmethod
    async def health_signal(self, signal: str, details: dict[str, Any]) -> None:
        """Report a coordinator health signal (``systematic_failure`` or ``degraded``)."""
        ...
