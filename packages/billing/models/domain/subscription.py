"""
Domain models for subscriptions as seen from Stripe.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from packages.billing.models.domain.enums import SubscriptionStatus, SubscriptionTier


class ProcessorSubscription(BaseModel):
    """The fields of a Stripe subscription this service mirrors locally."""

    id: str
    status: SubscriptionStatus
    customer_id: Optional[str] = None
    price_ref: Optional[str] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    # Present right after creation while the first invoice awaits payment
    client_secret: Optional[str] = None
    latest_invoice_id: Optional[str] = None


class SubscriptionResult(BaseModel):
    subscription_id: str
    status: SubscriptionStatus
    client_secret: Optional[str] = None


class SubscriptionDetails(BaseModel):
    """Subscription state plus the stored usage, for the billing page."""

    tenant_id: int
    tier: SubscriptionTier
    status: SubscriptionStatus
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    latest_invoice_id: Optional[str] = None
    storage_bytes: int
    transcription_minutes: int
    item_count: int
