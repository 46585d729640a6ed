from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from packages.billing.models.domain.enums import SubscriptionStatus, SubscriptionTier
from packages.billing.models.domain.plans import TierPolicy
from packages.billing.services.tier_policy import resolve_tier_policy


class Tenant(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    billing_email: Optional[str] = None
    # Kept as the stored string so an unknown value still loads
    tier: str = SubscriptionTier.STARTER.value

    storage_bytes: int = 0
    content_bytes: int = 0
    transcription_bytes: int = 0
    analysis_bytes: int = 0
    metadata_bytes: int = 0
    item_count: int = 0
    transcription_minutes: int = 0
    usage_computed_at: Optional[datetime] = None
    last_notified_bucket: int = 0
    last_notified_period_start: Optional[datetime] = None
    minutes_notified_bucket: int = 0
    minutes_notified_period_start: Optional[datetime] = None

    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    subscription_status: SubscriptionStatus = SubscriptionStatus.INACTIVE
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    billing_event_at: Optional[datetime] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def policy(self) -> TierPolicy:
        return resolve_tier_policy(self.tier)

    @property
    def quota_bytes(self) -> int:
        return self.policy.storage_quota_bytes

    @property
    def minutes_quota(self) -> int:
        return self.policy.minutes_quota

    @property
    def has_live_subscription(self) -> bool:
        return bool(self.stripe_subscription_id) and self.subscription_status.is_live()


class TenantUsageUpdateModel(BaseModel):
    """Columns owned by reconciliation. Only fields explicitly set are written."""

    storage_bytes: Optional[int] = None
    content_bytes: Optional[int] = None
    transcription_bytes: Optional[int] = None
    analysis_bytes: Optional[int] = None
    metadata_bytes: Optional[int] = None
    item_count: Optional[int] = None
    transcription_minutes: Optional[int] = None
    usage_computed_at: Optional[datetime] = None
    last_notified_bucket: Optional[int] = None
    last_notified_period_start: Optional[datetime] = None
    minutes_notified_bucket: Optional[int] = None
    minutes_notified_period_start: Optional[datetime] = None


class TenantBillingUpdateModel(BaseModel):
    """Columns owned by billing sync. Only fields explicitly set are written."""

    model_config = ConfigDict(use_enum_values=True)

    tier: Optional[SubscriptionTier] = None
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    subscription_status: Optional[SubscriptionStatus] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: Optional[bool] = None
    billing_event_at: Optional[datetime] = None
