"""
Unit tests for the Stripe webhook endpoint.

Requests are signed the way Stripe signs them, so the real SDK verification
runs.
"""

import hashlib
import hmac
import json
import time

import pytest

from common.core.config import settings
from packages.billing.repositories.billing_event_repository import (
    BillingEventRepository,
)
from packages.billing.models.domain.enums import SubscriptionStatus
from packages.tenants.repositories.tenant_repository import TenantRepository

WEBHOOK_SECRET = "whsec_test_secret"
WEBHOOK_URL = "/api/v1/webhooks/stripe"


def sign(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def payment_failed_payload(event_id: str, tenant_id: int) -> str:
    return json.dumps(
        {
            "id": event_id,
            "object": "event",
            "type": "invoice.payment_failed",
            "created": int(time.time()),
            "livemode": False,
            "data": {
                "object": {
                    "id": "in_1",
                    "object": "invoice",
                    "subscription": "sub_globex",
                    "status": "open",
                    "amount_paid": 0,
                    "currency": "usd",
                    "metadata": {"tenant_id": str(tenant_id)},
                }
            },
        }
    )


@pytest.fixture(autouse=True)
def webhook_secret(monkeypatch):
    monkeypatch.setattr(settings, "stripe_webhook_secret", WEBHOOK_SECRET)


@pytest.mark.asyncio
class TestStripeWebhookRoute:
    async def test_signed_event_is_applied(self, client, growth_tenant):
        payload = payment_failed_payload("evt_route_1", growth_tenant.id)

        response = await client.post(
            WEBHOOK_URL,
            content=payload,
            headers={"stripe-signature": sign(payload)},
        )

        assert response.status_code == 200
        assert response.json() == {"status": "success", "outcome": "processed"}
        tenant = await TenantRepository().get(growth_tenant.id)
        assert tenant.subscription_status == SubscriptionStatus.PAST_DUE
        assert await BillingEventRepository().exists("evt_route_1") is True

    async def test_redelivery_reports_duplicate(self, client, growth_tenant):
        payload = payment_failed_payload("evt_route_2", growth_tenant.id)
        headers = {"stripe-signature": sign(payload)}

        await client.post(WEBHOOK_URL, content=payload, headers=headers)
        response = await client.post(WEBHOOK_URL, content=payload, headers=headers)

        assert response.status_code == 200
        assert response.json()["outcome"] == "duplicate"

    async def test_missing_signature(self, client):
        response = await client.post(WEBHOOK_URL, content="{}")

        assert response.status_code == 400

    async def test_bad_signature(self, client, growth_tenant):
        payload = payment_failed_payload("evt_route_3", growth_tenant.id)

        response = await client.post(
            WEBHOOK_URL,
            content=payload,
            headers={"stripe-signature": sign(payload, secret="whsec_wrong")},
        )

        assert response.status_code == 400
        assert await BillingEventRepository().exists("evt_route_3") is False

    async def test_signed_but_malformed_event(self, client):
        payload = json.dumps(
            {"object": "event", "type": "invoice.payment_failed", "data": {}}
        )

        response = await client.post(
            WEBHOOK_URL,
            content=payload,
            headers={"stripe-signature": sign(payload)},
        )

        assert response.status_code == 400

    async def test_unknown_tenant_is_acknowledged(self, client):
        payload = payment_failed_payload("evt_route_4", 123456)

        response = await client.post(
            WEBHOOK_URL,
            content=payload,
            headers={"stripe-signature": sign(payload)},
        )

        assert response.status_code == 200
        assert response.json()["outcome"] == "ignored"
