"""
Database entity for the billing ledger.
"""

from sqlalchemy import Column, String, DateTime, ForeignKey, Index, JSON, Integer
from sqlalchemy.sql import func

from common.db.base import Base, ByteCountType


class BillingEventEntity(Base):
    """
    One row per Stripe event applied to a tenant.

    Append-only. The unique external_event_id is the idempotency key for
    webhook redelivery.
    """

    __tablename__ = "billing_events"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    tenant_id = Column(
        Integer,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    external_event_id = Column(String(255), nullable=False, unique=True)
    event_type = Column(String(100), nullable=False)
    amount = Column(ByteCountType, nullable=False, default=0)  # minor units
    currency = Column(String(10), nullable=True)
    status = Column(String(50), nullable=False, default="unknown")
    payload = Column(JSON, nullable=False, default=dict)
    received_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        Index("idx_billing_events_tenant_received", "tenant_id", "received_at"),
    )
