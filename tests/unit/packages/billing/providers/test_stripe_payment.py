"""
Unit tests for the Stripe payment provider.

The Stripe SDK is patched; no network calls are made.
"""

import time
from unittest.mock import MagicMock, patch

import pytest
import stripe

from common.core.exceptions import ExternalProcessorError
from packages.billing.models.domain.enums import SubscriptionStatus
from packages.billing.providers.payment.stripe_payment import (
    StripePaymentProvider,
    to_processor_subscription,
)


def stripe_subscription(**overrides) -> dict:
    subscription = {
        "id": "sub_123",
        "status": "incomplete",
        "customer": "cus_123",
        "cancel_at_period_end": False,
        "items": {
            "data": [
                {
                    "id": "si_1",
                    "price": {"id": "price_growth"},
                    "current_period_start": 1_790_000_000,
                    "current_period_end": 1_792_600_000,
                }
            ]
        },
        "latest_invoice": {
            "id": "in_1",
            "payment_intent": {"client_secret": "pi_secret_abc"},
        },
    }
    subscription.update(overrides)
    return subscription


@pytest.fixture
def provider():
    return StripePaymentProvider(timeout_seconds=1.0)


class TestToProcessorSubscription:
    def test_maps_fields(self):
        result = to_processor_subscription(stripe_subscription())

        assert result.id == "sub_123"
        assert result.status == SubscriptionStatus.INCOMPLETE
        assert result.customer_id == "cus_123"
        assert result.price_ref == "price_growth"
        assert result.client_secret == "pi_secret_abc"
        assert result.latest_invoice_id == "in_1"
        assert int(result.current_period_start.timestamp()) == 1_790_000_000

    def test_top_level_period_wins(self):
        result = to_processor_subscription(
            stripe_subscription(current_period_start=1_000, current_period_end=2_000)
        )

        assert int(result.current_period_start.timestamp()) == 1_000
        assert int(result.current_period_end.timestamp()) == 2_000

    def test_unexpanded_invoice_and_unknown_status(self):
        result = to_processor_subscription(
            stripe_subscription(latest_invoice="in_9", status="something_new")
        )

        assert result.latest_invoice_id == "in_9"
        assert result.client_secret is None
        assert result.status == SubscriptionStatus.INACTIVE

    def test_confirmation_secret_on_newer_api_versions(self):
        result = to_processor_subscription(
            stripe_subscription(
                latest_invoice={
                    "id": "in_2",
                    "confirmation_secret": {"client_secret": "cs_456"},
                }
            )
        )

        assert result.client_secret == "cs_456"


class TestStripeClientSetup:
    def test_http_client_shares_the_call_timeout(self):
        with patch.object(stripe, "default_http_client", None), patch.object(
            stripe, "RequestsClient"
        ) as requests_client:
            StripePaymentProvider(timeout_seconds=7.5)

            assert stripe.default_http_client is requests_client.return_value

        requests_client.assert_called_once_with(timeout=7.5)
        assert stripe.max_network_retries == 0


@pytest.mark.asyncio
class TestStripePaymentProvider:
    async def test_create_customer(self, provider):
        with patch.object(
            stripe.Customer, "create", MagicMock(return_value={"id": "cus_new"})
        ) as create:
            customer_id = await provider.create_customer(
                tenant_id=5, tenant_name="Acme", email="a@acme.test"
            )

        assert customer_id == "cus_new"
        create.assert_called_once_with(
            email="a@acme.test",
            name="Acme",
            metadata={"tenant_id": "5"},
            idempotency_key="tenant-5-customer",
        )

    async def test_create_subscription(self, provider):
        with patch.object(
            stripe.Subscription,
            "create",
            MagicMock(return_value=stripe_subscription()),
        ) as create:
            result = await provider.create_subscription(
                customer_id="cus_123", price_ref="price_growth", tenant_id=5
            )

        assert result.id == "sub_123"
        assert result.client_secret == "pi_secret_abc"
        kwargs = create.call_args.kwargs
        assert kwargs["customer"] == "cus_123"
        assert kwargs["items"] == [{"price": "price_growth"}]
        assert kwargs["payment_behavior"] == "default_incomplete"
        assert kwargs["metadata"] == {"tenant_id": "5"}
        assert kwargs["idempotency_key"] == (
            "tenant-5-subscription-cus_123-price_growth"
        )

    async def test_update_subscription_price_prorates(self, provider):
        with patch.object(
            stripe.Subscription,
            "retrieve",
            MagicMock(return_value=stripe_subscription(status="active")),
        ), patch.object(
            stripe.Subscription,
            "modify",
            MagicMock(return_value=stripe_subscription(status="active")),
        ) as modify:
            result = await provider.update_subscription_price(
                "sub_123", "price_professional"
            )

        assert result.status == SubscriptionStatus.ACTIVE
        modify.assert_called_once_with(
            "sub_123",
            items=[{"id": "si_1", "price": "price_professional"}],
            proration_behavior="always_invoice",
        )

    async def test_schedule_cancellation(self, provider):
        with patch.object(
            stripe.Subscription,
            "modify",
            MagicMock(return_value=stripe_subscription(cancel_at_period_end=True)),
        ) as modify:
            result = await provider.schedule_cancellation("sub_123")

        assert result.cancel_at_period_end is True
        modify.assert_called_once_with("sub_123", cancel_at_period_end=True)

    async def test_cancel_subscription(self, provider):
        with patch.object(
            stripe.Subscription,
            "cancel",
            MagicMock(return_value=stripe_subscription(status="canceled")),
        ):
            result = await provider.cancel_subscription("sub_123")

        assert result.status == SubscriptionStatus.CANCELED

    async def test_stripe_error_becomes_external_processor_error(self, provider):
        with patch.object(
            stripe.Subscription,
            "cancel",
            MagicMock(side_effect=stripe.APIConnectionError("connection reset")),
        ):
            with pytest.raises(ExternalProcessorError):
                await provider.cancel_subscription("sub_123")

    async def test_timeout_becomes_external_processor_error(self):
        provider = StripePaymentProvider(timeout_seconds=0.05)

        def slow(*args, **kwargs):
            time.sleep(0.3)
            return {"id": "cus_late"}

        with patch.object(stripe.Customer, "create", MagicMock(side_effect=slow)):
            with pytest.raises(ExternalProcessorError, match="timed out"):
                await provider.create_customer(tenant_id=1, tenant_name="Slow")

    async def test_health_check(self, provider):
        with patch.object(stripe.Account, "retrieve", MagicMock(return_value={})):
            assert await provider.health_check() is True

        with patch.object(
            stripe.Account,
            "retrieve",
            MagicMock(side_effect=stripe.AuthenticationError("bad key")),
        ):
            assert await provider.health_check() is False
