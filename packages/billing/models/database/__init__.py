"""Database models for billing."""

from packages.billing.models.database.billing_event import BillingEventEntity

__all__ = [
    "BillingEventEntity",
]
