"""SQLAlchemy implementation of the UsageMetricRepository.

Increments are single ``INSERT ... ON CONFLICT DO UPDATE`` statements, so
concurrent callers never lose an update. Each call runs in its own short
session and commits immediately: usage is recorded even when the run that
caused it later rolls back.
"""

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.application.interfaces.usage_metric_repository import UsageMetricRepository
from app.domain.entities.usage_metric import TrackedService, UsageMetric, UsagePeriod
from app.infrastructure.database.models.usage_metric_models import UsageMetricModel

_COUNTERS = ("calls", "credits", "input_tokens", "output_tokens", "cost")


class SQLAlchemyUsageMetricRepository(UsageMetricRepository):
    """Concrete usage metric repository; owns its sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

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
        deltas = {
            "calls": calls,
            "credits": credits,
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "cost": cost,
        }
        now = datetime.now(timezone.utc)

        async with self._session_factory() as session:
            insert = pg_insert if session.bind.dialect.name == "postgresql" else sqlite_insert
            stmt = insert(UsageMetricModel).values(
                service=service.value, period=period.value, date=date, updated_at=now, **deltas
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["service", "period", "date"],
                set_={
                    **{name: getattr(UsageMetricModel, name) + stmt.excluded[name] for name in _COUNTERS},
                    "updated_at": now,
                },
            )
            try:
                await session.execute(stmt)
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def get(
        self, service: TrackedService, period: UsagePeriod, date: str
    ) -> UsageMetric | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(UsageMetricModel).where(
                    UsageMetricModel.service == service.value,
                    UsageMetricModel.period == period.value,
                    UsageMetricModel.date == date,
                )
            )
            model = result.scalar_one_or_none()
            return self._to_domain(model) if model else None

    # ── Mapping ──────────────────────────────────────────────────────

    @staticmethod
    def _to_domain(model: UsageMetricModel) -> UsageMetric:
        return UsageMetric(
            service=TrackedService(model.service),
            period=UsagePeriod(model.period),
            date=model.date,
            calls=model.calls or 0,
            credits=model.credits or 0.0,
            input_tokens=model.input_tokens or 0,
            output_tokens=model.output_tokens or 0,
            cost=model.cost or 0.0,
            updated_at=model.updated_at,
        )
