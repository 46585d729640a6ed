"""
Tier policy table.

Quotas and overage are billed in decimal gigabytes (10**9 bytes) so an
overage of exactly one quota-GB costs exactly ``overage_price_per_gb``.
"""

from typing import TYPE_CHECKING, Optional, Union

from common.core.config import settings
from common.core.otel_axiom_exporter import get_logger
from packages.billing.models.domain.enums import SubscriptionTier, UsageKind
from packages.billing.models.domain.plans import (
    TierPolicy,
    TierRecommendation,
    UsageLimitCheck,
)

if TYPE_CHECKING:
    from packages.tenants.models.domain.tenant import Tenant

logger = get_logger(__name__)

BYTES_PER_GB = 10**9

UPGRADE_MINUTES_RATIO = 0.8
DOWNGRADE_MINUTES_RATIO = 0.2

_BASE_FEATURES = ("transcription", "analysis", "knowledge_base")

TIER_ORDER: tuple[SubscriptionTier, ...] = tuple(SubscriptionTier)

TIER_POLICIES: dict[SubscriptionTier, TierPolicy] = {
    SubscriptionTier.STARTER: TierPolicy(
        tier=SubscriptionTier.STARTER,
        name="Starter",
        monthly_price_cents=0,
        storage_quota_bytes=1 * BYTES_PER_GB,
        minutes_quota=100,
        overage_price_per_gb=0.10,
        max_users=3,
        features=_BASE_FEATURES,
    ),
    SubscriptionTier.GROWTH: TierPolicy(
        tier=SubscriptionTier.GROWTH,
        name="Growth",
        monthly_price_cents=7900,
        storage_quota_bytes=10 * BYTES_PER_GB,
        minutes_quota=1_000,
        overage_price_per_gb=0.10,
        max_users=15,
        features=_BASE_FEATURES + ("api_access",),
    ),
    SubscriptionTier.PROFESSIONAL: TierPolicy(
        tier=SubscriptionTier.PROFESSIONAL,
        name="Professional",
        monthly_price_cents=29900,
        storage_quota_bytes=50 * BYTES_PER_GB,
        minutes_quota=5_000,
        overage_price_per_gb=0.08,
        max_users=50,
        features=_BASE_FEATURES + ("api_access", "custom_models"),
    ),
    SubscriptionTier.ENTERPRISE: TierPolicy(
        tier=SubscriptionTier.ENTERPRISE,
        name="Enterprise",
        monthly_price_cents=69900,
        storage_quota_bytes=200 * BYTES_PER_GB,
        minutes_quota=15_000,
        overage_price_per_gb=0.05,
        max_users=-1,
        features=_BASE_FEATURES + ("api_access", "custom_models", "white_label"),
    ),
    SubscriptionTier.ENTERPRISE_PLUS: TierPolicy(
        tier=SubscriptionTier.ENTERPRISE_PLUS,
        name="Enterprise Plus",
        monthly_price_cents=129900,
        storage_quota_bytes=500 * BYTES_PER_GB,
        minutes_quota=30_000,
        overage_price_per_gb=0.05,
        max_users=-1,
        features=_BASE_FEATURES + ("api_access", "custom_models", "white_label"),
    ),
}


def _coerce_tier(tier: Union[SubscriptionTier, str, None]) -> Optional[SubscriptionTier]:
    if isinstance(tier, SubscriptionTier):
        return tier
    if not tier:
        return None
    try:
        return SubscriptionTier(str(tier).strip().lower())
    except ValueError:
        return None


def resolve_tier_policy(tier: Union[SubscriptionTier, str, None]) -> TierPolicy:
    """Policy for ``tier``. Unknown or missing tiers get the starter policy."""
    resolved = _coerce_tier(tier)
    if resolved is None:
        logger.debug("Invalid tier, falling back to starter", extra={"tier": tier})
        return TIER_POLICIES[SubscriptionTier.STARTER]
    return TIER_POLICIES[resolved]


def get_next_tier(tier: Union[SubscriptionTier, str]) -> Optional[SubscriptionTier]:
    current = resolve_tier_policy(tier).tier
    index = TIER_ORDER.index(current)
    return TIER_ORDER[index + 1] if index < len(TIER_ORDER) - 1 else None


def get_previous_tier(tier: Union[SubscriptionTier, str]) -> Optional[SubscriptionTier]:
    current = resolve_tier_policy(tier).tier
    index = TIER_ORDER.index(current)
    return TIER_ORDER[index - 1] if index > 0 else None


def has_feature_access(tier: Union[SubscriptionTier, str], feature: str) -> bool:
    return feature in resolve_tier_policy(tier).features


def get_usage_percentage(tenant: "Tenant", kind: UsageKind) -> int:
    """Stored usage as a rounded percentage of the tier ceiling."""
    policy = resolve_tier_policy(tenant.tier)
    if kind == UsageKind.MINUTES:
        return round(tenant.transcription_minutes / policy.minutes_quota * 100)
    return round(tenant.storage_bytes / policy.storage_quota_bytes * 100)


def check_usage_limits(tenant: "Tenant") -> UsageLimitCheck:
    """Compare stored usage with the tier's storage and minutes ceilings."""
    policy = resolve_tier_policy(tenant.tier)
    storage_exceeded = tenant.storage_bytes >= policy.storage_quota_bytes
    minutes_exceeded = tenant.transcription_minutes >= policy.minutes_quota
    return UsageLimitCheck(
        within_limits=not (storage_exceeded or minutes_exceeded),
        storage_exceeded=storage_exceeded,
        minutes_exceeded=minutes_exceeded,
        storage_percent=tenant.storage_bytes / policy.storage_quota_bytes * 100,
        minutes_percent=tenant.transcription_minutes / policy.minutes_quota * 100,
    )


def get_tier_recommendations(tenant: "Tenant") -> list[TierRecommendation]:
    """Suggest a tier move from this period's transcription minutes."""
    policy = resolve_tier_policy(tenant.tier)
    minutes = tenant.transcription_minutes
    recommendations = []

    if minutes > policy.minutes_quota * UPGRADE_MINUTES_RATIO:
        next_tier = get_next_tier(policy.tier)
        if next_tier:
            recommendations.append(
                TierRecommendation(
                    kind="upgrade",
                    tier=next_tier,
                    reason="High transcription usage detected",
                )
            )

    if minutes < policy.minutes_quota * DOWNGRADE_MINUTES_RATIO:
        previous_tier = get_previous_tier(policy.tier)
        if previous_tier:
            recommendations.append(
                TierRecommendation(
                    kind="downgrade",
                    tier=previous_tier,
                    reason="Low usage detected - save money with lower tier",
                )
            )

    return recommendations


def _price_ids() -> dict[SubscriptionTier, str]:
    return {
        SubscriptionTier.STARTER: settings.stripe_price_id_starter,
        SubscriptionTier.GROWTH: settings.stripe_price_id_growth,
        SubscriptionTier.PROFESSIONAL: settings.stripe_price_id_professional,
        SubscriptionTier.ENTERPRISE: settings.stripe_price_id_enterprise,
        SubscriptionTier.ENTERPRISE_PLUS: settings.stripe_price_id_enterprise_plus,
    }


def get_price_ref(tier: Union[SubscriptionTier, str]) -> str:
    """Stripe price id configured for ``tier``."""
    return _price_ids()[resolve_tier_policy(tier).tier]


def tier_for_price_ref(price_ref: Optional[str]) -> Optional[SubscriptionTier]:
    """Reverse lookup. None for prices that are not configured."""
    if not price_ref:
        return None
    for tier, configured in _price_ids().items():
        if configured == price_ref:
            return tier
    return None
