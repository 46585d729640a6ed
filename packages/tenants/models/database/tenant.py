from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.sql import func

from common.db.base import Base, ByteCountType


class TenantEntity(Base):
    """
    A customer organisation.

    Usage columns are written only by reconciliation, billing columns only by
    billing sync. Both go through partial UPDATEs so neither clobbers the other.
    """

    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    billing_email = Column(String(255), nullable=True)
    tier = Column(String(50), nullable=False, server_default="starter", index=True)

    # Usage (latest reconciliation snapshot)
    storage_bytes = Column(ByteCountType, nullable=False, default=0, server_default="0")
    content_bytes = Column(ByteCountType, nullable=False, default=0, server_default="0")
    transcription_bytes = Column(
        ByteCountType, nullable=False, default=0, server_default="0"
    )
    analysis_bytes = Column(ByteCountType, nullable=False, default=0, server_default="0")
    metadata_bytes = Column(ByteCountType, nullable=False, default=0, server_default="0")
    item_count = Column(Integer, nullable=False, default=0, server_default="0")
    transcription_minutes = Column(Integer, nullable=False, default=0, server_default="0")
    usage_computed_at = Column(DateTime(timezone=True), nullable=True)
    last_notified_bucket = Column(Integer, nullable=False, default=0, server_default="0")
    last_notified_period_start = Column(DateTime(timezone=True), nullable=True)
    minutes_notified_bucket = Column(Integer, nullable=False, default=0, server_default="0")
    minutes_notified_period_start = Column(DateTime(timezone=True), nullable=True)

    # Billing (mirrors Stripe)
    stripe_customer_id = Column(String(255), nullable=True, unique=True, index=True)
    stripe_subscription_id = Column(String(255), nullable=True, unique=True, index=True)
    subscription_status = Column(
        String(50), nullable=False, server_default="inactive", index=True
    )
    current_period_start = Column(DateTime(timezone=True), nullable=True)
    current_period_end = Column(DateTime(timezone=True), nullable=True)
    cancel_at_period_end = Column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    billing_event_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
