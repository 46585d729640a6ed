"""Domain models for billing plans."""

from typing import Optional
from pydantic import BaseModel, ConfigDict

from packages.billing.models.domain.enums import SubscriptionTier


class TierPolicy(BaseModel):
    """Quota and pricing for one tier. Instances are shared, hence frozen."""

    model_config = ConfigDict(frozen=True)

    tier: SubscriptionTier
    name: str
    monthly_price_cents: int
    storage_quota_bytes: int
    minutes_quota: int
    overage_price_per_gb: float
    max_users: int  # -1 = unlimited
    features: tuple[str, ...] = ()


class PlanInfo(BaseModel):
    """A tier as shown to customers."""

    tier: SubscriptionTier
    name: str
    price_cents: int
    price_formatted: str
    billing_period: str
    stripe_price_id: Optional[str]
    storage_quota_bytes: int
    minutes_quota: int
    overage_price_per_gb: float
    max_users: int
    features: list[str]


class PlansResponse(BaseModel):
    """Response model for plans endpoint."""

    plans: list[PlanInfo]


class UsageLimitCheck(BaseModel):
    """Stored usage measured against the tier ceilings."""

    within_limits: bool
    storage_exceeded: bool
    minutes_exceeded: bool
    storage_percent: float
    minutes_percent: float


class TierRecommendation(BaseModel):
    kind: str  # "upgrade" | "downgrade"
    tier: SubscriptionTier
    reason: str
