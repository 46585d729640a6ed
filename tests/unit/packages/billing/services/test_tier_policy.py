import pytest

from packages.billing.models.domain.enums import SubscriptionTier, UsageKind
from packages.billing.services.plans_service import PlansService, format_price
from packages.billing.services.tier_policy import (
    BYTES_PER_GB,
    TIER_POLICIES,
    check_usage_limits,
    get_next_tier,
    get_previous_tier,
    get_price_ref,
    get_tier_recommendations,
    get_usage_percentage,
    has_feature_access,
    resolve_tier_policy,
    tier_for_price_ref,
)
from packages.tenants.models.domain.tenant import Tenant


def tenant(**overrides) -> Tenant:
    fields = {"id": 1, "name": "Acme"}
    fields.update(overrides)
    return Tenant(**fields)


class TestTierPolicyTable:
    @pytest.mark.parametrize(
        "tier, quota_gb, minutes, overage",
        [
            (SubscriptionTier.STARTER, 1, 100, 0.10),
            (SubscriptionTier.GROWTH, 10, 1_000, 0.10),
            (SubscriptionTier.PROFESSIONAL, 50, 5_000, 0.08),
            (SubscriptionTier.ENTERPRISE, 200, 15_000, 0.05),
            (SubscriptionTier.ENTERPRISE_PLUS, 500, 30_000, 0.05),
        ],
    )
    def test_quotas(self, tier, quota_gb, minutes, overage):
        policy = TIER_POLICIES[tier]

        assert policy.storage_quota_bytes == quota_gb * BYTES_PER_GB
        assert policy.minutes_quota == minutes
        assert policy.overage_price_per_gb == overage

    def test_every_tier_has_a_policy(self):
        assert set(TIER_POLICIES) == set(SubscriptionTier)

    def test_quotas_grow_with_tier(self):
        quotas = [TIER_POLICIES[t].storage_quota_bytes for t in SubscriptionTier]
        assert quotas == sorted(quotas)


class TestResolveTierPolicy:
    def test_accepts_enum_and_string(self):
        assert resolve_tier_policy(SubscriptionTier.GROWTH).tier == SubscriptionTier.GROWTH
        assert resolve_tier_policy("Professional").tier == SubscriptionTier.PROFESSIONAL

    @pytest.mark.parametrize("value", ["platinum", "", None])
    def test_unknown_falls_back_to_starter(self, value):
        assert resolve_tier_policy(value).tier == SubscriptionTier.STARTER

    def test_unknown_stored_tier_gets_starter_quota(self):
        assert tenant(tier="legacy_gold").quota_bytes == BYTES_PER_GB


class TestTierNavigation:
    def test_next_and_previous(self):
        assert get_next_tier(SubscriptionTier.STARTER) == SubscriptionTier.GROWTH
        assert get_next_tier(SubscriptionTier.ENTERPRISE_PLUS) is None
        assert get_previous_tier(SubscriptionTier.GROWTH) == SubscriptionTier.STARTER
        assert get_previous_tier(SubscriptionTier.STARTER) is None

    def test_feature_access(self):
        assert has_feature_access(SubscriptionTier.GROWTH, "api_access") is True
        assert has_feature_access(SubscriptionTier.STARTER, "api_access") is False
        assert has_feature_access(SubscriptionTier.ENTERPRISE, "white_label") is True


class TestUsageChecks:
    def test_percentages(self):
        t = tenant(
            tier="growth", storage_bytes=2_500_000_000, transcription_minutes=333
        )

        assert get_usage_percentage(t, UsageKind.STORAGE) == 25
        assert get_usage_percentage(t, UsageKind.MINUTES) == 33

    def test_limits(self):
        t = tenant(storage_bytes=BYTES_PER_GB, transcription_minutes=10)

        check = check_usage_limits(t)

        assert check.within_limits is False
        assert check.storage_exceeded is True
        assert check.minutes_exceeded is False
        assert check.storage_percent == pytest.approx(100.0)

    def test_upgrade_recommended_on_heavy_minutes(self):
        recs = get_tier_recommendations(tenant(tier="growth", transcription_minutes=850))

        assert [(r.kind, r.tier) for r in recs] == [("upgrade", SubscriptionTier.PROFESSIONAL)]

    def test_downgrade_recommended_on_light_minutes(self):
        recs = get_tier_recommendations(tenant(tier="growth", transcription_minutes=50))

        assert [(r.kind, r.tier) for r in recs] == [("downgrade", SubscriptionTier.STARTER)]

    def test_no_downgrade_below_starter(self):
        assert get_tier_recommendations(tenant(transcription_minutes=0)) == []


class TestPriceRefs:
    def test_round_trip_through_settings(self):
        for tier in SubscriptionTier:
            assert tier_for_price_ref(get_price_ref(tier)) == tier

    def test_unknown_price(self):
        assert tier_for_price_ref("price_unknown") is None
        assert tier_for_price_ref(None) is None


class TestPlansService:
    def test_format_price(self):
        assert format_price(0) == "$0"
        assert format_price(7900) == "$79"
        assert format_price(129900) == "$1,299"
        assert format_price(1999) == "$19.99"

    @pytest.mark.asyncio
    async def test_all_plans(self):
        response = await PlansService().get_all_plans()

        assert [p.tier for p in response.plans] == list(SubscriptionTier)
        growth = response.plans[1]
        assert growth.price_formatted == "$79"
        assert growth.storage_quota_bytes == 10 * BYTES_PER_GB
        assert growth.stripe_price_id == get_price_ref(SubscriptionTier.GROWTH)
        assert "api_access" in growth.features
