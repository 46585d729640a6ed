"""
Unit tests for billing API routes.

Tests API endpoints with a mocked payment provider.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from common.core.exceptions import ExternalProcessorError
from packages.billing.models.domain.billing_event import BillingEventCreateModel
from packages.billing.models.domain.enums import SubscriptionStatus
from packages.billing.models.domain.subscription import ProcessorSubscription
from packages.billing.repositories.billing_event_repository import (
    BillingEventRepository,
)


def _subscription(status=SubscriptionStatus.INCOMPLETE, **overrides):
    fields = dict(
        id="sub_new",
        status=status,
        current_period_start=datetime(2026, 10, 1, tzinfo=timezone.utc),
        current_period_end=datetime(2026, 11, 1, tzinfo=timezone.utc),
    )
    fields.update(overrides)
    return ProcessorSubscription(**fields)


@pytest.mark.asyncio
class TestPlansRoute:
    async def test_list_plans(self, client):
        response = await client.get("/api/v1/billing/plans")

        assert response.status_code == 200
        plans = response.json()["plans"]
        assert [p["tier"] for p in plans] == [
            "starter",
            "growth",
            "professional",
            "enterprise",
            "enterprise_plus",
        ]


@pytest.mark.asyncio
class TestSubscriptionRoutes:
    async def test_get_subscription_without_stripe(self, client, sample_tenant):
        response = await client.get(
            f"/api/v1/billing/tenants/{sample_tenant.id}/subscription"
        )

        assert response.status_code == 200
        data = response.json()
        assert data["tier"] == "starter"
        assert data["status"] == "inactive"

    async def test_get_subscription_unknown_tenant(self, client):
        response = await client.get("/api/v1/billing/tenants/999/subscription")

        assert response.status_code == 404
        assert response.json()["error"] == "TenantNotFoundError"

    async def test_create_subscription_by_tier(
        self, client, sample_tenant, mock_payment_provider
    ):
        mock_payment_provider.create_customer = AsyncMock(return_value="cus_acme")
        mock_payment_provider.create_subscription = AsyncMock(
            return_value=_subscription(client_secret="pi_secret")
        )

        response = await client.post(
            f"/api/v1/billing/tenants/{sample_tenant.id}/subscription",
            json={"tier": "growth"},
        )

        assert response.status_code == 201
        assert response.json() == {
            "subscription_id": "sub_new",
            "status": "incomplete",
            "client_secret": "pi_secret",
        }
        assert (
            mock_payment_provider.create_subscription.call_args.kwargs["price_ref"]
            == "price_growth"
        )

    async def test_create_subscription_requires_price_or_tier(
        self, client, sample_tenant
    ):
        response = await client.post(
            f"/api/v1/billing/tenants/{sample_tenant.id}/subscription", json={}
        )

        assert response.status_code == 422

    async def test_create_subscription_conflict(self, client, growth_tenant):
        response = await client.post(
            f"/api/v1/billing/tenants/{growth_tenant.id}/subscription",
            json={"price_ref": "price_growth"},
        )

        assert response.status_code == 409
        assert response.json()["error"] == "SubscriptionConflictError"

    async def test_stripe_outage_is_bad_gateway(
        self, client, sample_tenant, mock_payment_provider
    ):
        mock_payment_provider.create_customer = AsyncMock(
            side_effect=ExternalProcessorError("Stripe create_customer timed out")
        )

        response = await client.post(
            f"/api/v1/billing/tenants/{sample_tenant.id}/subscription",
            json={"tier": "growth"},
        )

        assert response.status_code == 502

    async def test_change_tier(self, client, growth_tenant, mock_payment_provider):
        mock_payment_provider.update_subscription_price = AsyncMock(
            return_value=_subscription(SubscriptionStatus.ACTIVE, id="sub_globex")
        )

        response = await client.patch(
            f"/api/v1/billing/tenants/{growth_tenant.id}/subscription/tier",
            json={"tier": "professional"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "tenant_id": growth_tenant.id,
            "tier": "professional",
            "status": "active",
        }

    async def test_change_tier_without_subscription(self, client, sample_tenant):
        response = await client.patch(
            f"/api/v1/billing/tenants/{sample_tenant.id}/subscription/tier",
            json={"tier": "growth"},
        )

        assert response.status_code == 409
        assert response.json()["error"] == "NoActiveSubscriptionError"

    async def test_cancel_at_period_end(
        self, client, growth_tenant, mock_payment_provider
    ):
        response = await client.post(
            f"/api/v1/billing/tenants/{growth_tenant.id}/subscription/cancel",
            json={},
        )

        assert response.status_code == 200
        assert response.json()["immediate"] is False
        assert response.json()["status"] == "active"
        mock_payment_provider.schedule_cancellation.assert_called_once()

    async def test_cancel_immediately(
        self, client, growth_tenant, mock_payment_provider
    ):
        response = await client.post(
            f"/api/v1/billing/tenants/{growth_tenant.id}/subscription/cancel",
            json={"immediate": True},
        )

        assert response.status_code == 200
        assert response.json()["status"] == "canceled"
        mock_payment_provider.cancel_subscription.assert_called_once_with(
            "sub_globex"
        )


@pytest.mark.asyncio
class TestBillingEventsRoute:
    async def test_lists_ledger_newest_first(self, client, growth_tenant):
        ledger = BillingEventRepository()
        for event_id in ("evt_a", "evt_b"):
            await ledger.append(
                BillingEventCreateModel(
                    tenant_id=growth_tenant.id,
                    external_event_id=event_id,
                    event_type="invoice.payment_succeeded",
                    amount=4900,
                    currency="usd",
                    status="paid",
                )
            )

        response = await client.get(
            f"/api/v1/billing/tenants/{growth_tenant.id}/billing-events"
        )

        assert response.status_code == 200
        events = response.json()
        assert [e["external_event_id"] for e in events] == ["evt_b", "evt_a"]
        assert events[0]["amount"] == 4900

    async def test_limit(self, client, growth_tenant):
        response = await client.get(
            f"/api/v1/billing/tenants/{growth_tenant.id}/billing-events?limit=0"
        )

        assert response.status_code == 422

    async def test_unknown_tenant(self, client):
        response = await client.get("/api/v1/billing/tenants/999/billing-events")

        assert response.status_code == 404
