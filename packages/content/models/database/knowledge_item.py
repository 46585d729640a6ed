from sqlalchemy import Column, DateTime, Float, ForeignKey, Index, Integer, JSON, String, Text
from sqlalchemy.sql import func

from common.db.base import Base


class KnowledgeItemEntity(Base):
    """A stored transcript with its analysis. The unit usage is metered on."""

    __tablename__ = "knowledge_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    tenant_id = Column(
        Integer,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = Column(String(500), nullable=True)
    content = Column(Text, nullable=True)
    transcription_text = Column(Text, nullable=True)
    analysis_summary = Column(Text, nullable=True)
    analysis_key_points = Column(JSON, nullable=True)
    duration_seconds = Column(Float, nullable=True)  # source audio length
    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (Index("idx_knowledge_items_tenant_id_id", "tenant_id", "id"),)
