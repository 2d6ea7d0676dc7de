"""SQLAlchemy ORM model for the source catalog."""

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text, func

from app.infrastructure.database.base import Base, JSONType


class SourceConfigModel(Base):
    """A catalog document tracked for ingestion."""

    __tablename__ = "source_configs"

    id = Column(String(64), primary_key=True)
    title = Column(String(1000), nullable=False)
    url = Column(String(2000), nullable=False)
    document_type = Column(String(200), nullable=False, default="Unknown")
    topic_domains = Column(JSONType, nullable=False, default=list)
    format = Column(String(10), nullable=False, default="html")
    ngb_id = Column(String(100), nullable=True)
    priority = Column(String(10), nullable=False, default="medium")
    description = Column(Text, nullable=False, default="")
    authority_level = Column(String(50), nullable=False, default="educational_guidance")
    enabled = Column(Boolean, nullable=False, default=True)

    last_ingested_at = Column(DateTime(timezone=True), nullable=True)
    last_content_hash = Column(String(64), nullable=True)
    consecutive_failures = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
    storage_key = Column(String(1000), nullable=True)
    storage_version_id = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("idx_source_configs_enabled", "enabled"),
        Index("idx_source_configs_ngb_id", "ngb_id"),
    )
