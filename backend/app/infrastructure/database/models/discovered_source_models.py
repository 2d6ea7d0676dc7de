"""SQLAlchemy ORM model for discovered sources awaiting review."""

from sqlalchemy import Column, DateTime, Float, Index, String, Text, func

from app.infrastructure.database.base import Base, JSONType


class DiscoveredSourceModel(Base):
    """A candidate document found by map or search discovery."""

    __tablename__ = "discovered_sources"

    id = Column(String(64), primary_key=True)  # sha256 of the normalized URL
    url = Column(String(2000), nullable=False)
    title = Column(String(1000), nullable=False)
    discovery_method = Column(String(20), nullable=False)
    discovered_from = Column(String(1000), nullable=True)
    discovered_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    status = Column(String(30), nullable=False, default="pending_metadata")

    metadata_confidence = Column(Float, nullable=True)
    content_confidence = Column(Float, nullable=True)
    combined_confidence = Column(Float, nullable=True)

    document_type = Column(String(200), nullable=True)
    topic_domains = Column(JSONType, nullable=False, default=list)
    format = Column(String(10), nullable=True)
    ngb_id = Column(String(100), nullable=True)
    priority = Column(String(10), nullable=True)
    description = Column(Text, nullable=True)
    authority_level = Column(String(50), nullable=True)

    metadata_reasoning = Column(Text, nullable=True)
    content_reasoning = Column(Text, nullable=True)

    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_by = Column(String(255), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    source_config_id = Column(String(64), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("idx_discovered_status_discovered_at", "status", "discovered_at"),
        Index("idx_discovered_status_reviewed_at", "status", "reviewed_at"),
    )
