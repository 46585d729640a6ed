"""Service for retrieving billing plan information."""

from common.core.otel_axiom_exporter import trace_span
from packages.billing.models.domain.plans import PlanInfo, PlansResponse, TierPolicy
from packages.billing.services.tier_policy import TIER_POLICIES, get_price_ref


def format_price(price_cents: int) -> str:
    if price_cents == 0:
        return "$0"
    price_dollars = price_cents / 100
    if price_dollars == int(price_dollars):
        return f"${int(price_dollars):,}"
    return f"${price_dollars:,.2f}"


class PlansService:
    """Plans as published on the pricing page, built from the tier policy table."""

    @trace_span
    async def get_all_plans(self) -> PlansResponse:
        return PlansResponse(
            plans=[self._build_plan_info(policy) for policy in TIER_POLICIES.values()]
        )

    def _build_plan_info(self, policy: TierPolicy) -> PlanInfo:
        return PlanInfo(
            tier=policy.tier,
            name=policy.name,
            price_cents=policy.monthly_price_cents,
            price_formatted=format_price(policy.monthly_price_cents),
            billing_period="month",
            stripe_price_id=get_price_ref(policy.tier),
            storage_quota_bytes=policy.storage_quota_bytes,
            minutes_quota=policy.minutes_quota,
            overage_price_per_gb=policy.overage_price_per_gb,
            max_users=policy.max_users,
            features=list(policy.features),
        )
