"""SQLAlchemy ORM models for the ingestion job queue and status log."""

import uuid

from sqlalchemy import Column, DateTime, Index, Integer, String, Text, func

from app.infrastructure.database.base import Base, JSONType


def _generate_uuid() -> str:
    return str(uuid.uuid4())


class IngestionJobModel(Base):
    """A queued ingestion job. ``group_key`` (the source id) orders delivery."""

    __tablename__ = "ingestion_jobs"

    id = Column(String(36), primary_key=True, default=_generate_uuid)
    group_key = Column(String(64), nullable=False)
    payload = Column(JSONType, nullable=False)  # the job message
    status = Column(String(20), nullable=False, default="queued")
    attempts = Column(Integer, nullable=False, default=0)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_ingestion_jobs_status_created", "status", "created_at"),
        Index("idx_ingestion_jobs_group_status", "group_key", "status"),
    )


class IngestionStatusModel(Base):
    """Append-only log of ingestion attempts."""

    __tablename__ = "ingestion_status"

    id = Column(Integer, primary_key=True, autoincrement=True)
    source_id = Column(String(64), nullable=False)
    source_url = Column(String(2000), nullable=False)
    status = Column(String(20), nullable=False)
    content_hash = Column(String(64), nullable=True)
    chunks_count = Column(Integer, nullable=True)
    error_message = Column(Text, nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_ingestion_status_source_started", "source_id", "started_at"),
    )
