"""SQLAlchemy ORM model for stored document chunks."""

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)

from app.infrastructure.database.base import Base, JSONType


class DocumentChunkModel(Base):
    """A text span of a catalog document.

    ``chunk_metadata`` holds the camelCase metadata document; the
    denormalized columns mirror the fields retrieval filters on.
    """

    __tablename__ = "document_chunks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    source_id = Column(String(64), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    score = Column(Float, nullable=False, default=0.0)
    chunk_metadata = Column("metadata", JSONType, nullable=False, default=dict)
    alternative_sources = Column(JSONType, nullable=False, default=list)

    document_title = Column(String(1000), nullable=True)
    document_type = Column(String(200), nullable=True)
    topic_domain = Column(String(100), nullable=True)
    ngb_id = Column(String(100), nullable=True, index=True)
    authority_level = Column(String(50), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("source_id", "position", name="uq_chunk_source_position"),
    )
