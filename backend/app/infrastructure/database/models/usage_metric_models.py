"""SQLAlchemy ORM model for usage counter buckets."""

from sqlalchemy import Column, DateTime, Float, Integer, PrimaryKeyConstraint, String, func

from app.infrastructure.database.base import Base


class UsageMetricModel(Base):
    """One (service, period, date) bucket. Created on first increment, never deleted."""

    __tablename__ = "usage_metrics"

    service = Column(String(20), nullable=False)
    period = Column(String(10), nullable=False)
    date = Column(String(10), nullable=False)  # YYYY-MM-DD bucket start
    calls = Column(Integer, nullable=False, default=0)
    credits = Column(Float, nullable=False, default=0.0)
    input_tokens = Column(Integer, nullable=False, default=0)
    output_tokens = Column(Integer, nullable=False, default=0)
    cost = Column(Float, nullable=False, default=0.0)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        PrimaryKeyConstraint("service", "period", "date", name="pk_usage_metrics"),
    )
