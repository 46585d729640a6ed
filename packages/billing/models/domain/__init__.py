"""Domain models for billing."""

from packages.billing.models.domain.enums import (
    SubscriptionStatus,
    SubscriptionTier,
    IngestOutcome,
    UsageKind,
)
from packages.billing.models.domain.plans import (
    TierPolicy,
    PlanInfo,
    PlansResponse,
    UsageLimitCheck,
    TierRecommendation,
)

__all__ = [
    # Enums
    "SubscriptionStatus",
    "SubscriptionTier",
    "IngestOutcome",
    "UsageKind",
    # Plans
    "TierPolicy",
    "PlanInfo",
    "PlansResponse",
    "UsageLimitCheck",
    "TierRecommendation",
]
