import pytest
from pydantic import ValidationError

from packages.billing.models.domain.stripe_webhooks import (
    InvoicePaymentFailedEvent,
    InvoicePaymentSucceededEvent,
    SubscriptionDeletedEvent,
    SubscriptionUpdatedEvent,
    UnhandledWebhookEvent,
    parse_webhook_event,
)


def _event(event_type: str, obj: dict) -> dict:
    return {
        "id": "evt_test",
        "type": event_type,
        "created": 1_791_000_000,
        "livemode": False,
        "data": {"object": obj},
    }


class TestParseWebhookEvent:
    def test_invoice_events_are_typed(self):
        succeeded = parse_webhook_event(
            _event("invoice.payment_succeeded", {"id": "in_1", "amount_paid": 500})
        )
        failed = parse_webhook_event(
            _event("invoice.payment_failed", {"id": "in_2", "amount_due": 500})
        )

        assert isinstance(succeeded, InvoicePaymentSucceededEvent)
        assert succeeded.amount == 500
        assert isinstance(failed, InvoicePaymentFailedEvent)
        assert failed.amount == 0

    def test_subscription_events_are_typed(self):
        obj = {"id": "sub_1", "status": "active"}

        updated = parse_webhook_event(_event("customer.subscription.updated", obj))
        deleted = parse_webhook_event(_event("customer.subscription.deleted", obj))

        assert isinstance(updated, SubscriptionUpdatedEvent)
        assert isinstance(deleted, SubscriptionDeletedEvent)
        assert updated.subscription_id == "sub_1"

    def test_other_types_fall_back_to_unhandled(self):
        event = parse_webhook_event(
            _event("charge.refunded", {"id": "ch_1", "amount_paid": 12, "status": "ok"})
        )

        assert isinstance(event, UnhandledWebhookEvent)
        assert event.type == "charge.refunded"
        assert event.amount == 12
        assert event.raw_object()["id"] == "ch_1"

    def test_tenant_id_from_camel_case_metadata(self):
        event = parse_webhook_event(
            _event(
                "customer.subscription.updated",
                {"id": "sub_1", "status": "active", "metadata": {"tenantId": "42"}},
            )
        )

        assert event.tenant_ref == "42"

    def test_invoice_subscription_under_parent_details(self):
        event = parse_webhook_event(
            _event(
                "invoice.payment_succeeded",
                {
                    "id": "in_1",
                    "parent": {
                        "subscription_details": {
                            "subscription": "sub_9",
                            "metadata": {"tenant_id": "7"},
                        }
                    },
                },
            )
        )

        assert event.subscription_id == "sub_9"
        assert event.tenant_ref == "7"

    def test_period_falls_back_to_first_item(self):
        event = parse_webhook_event(
            _event(
                "customer.subscription.updated",
                {
                    "id": "sub_1",
                    "status": "active",
                    "items": {
                        "data": [
                            {
                                "id": "si_1",
                                "price": {"id": "price_growth"},
                                "current_period_start": 100,
                                "current_period_end": 200,
                            }
                        ]
                    },
                },
            )
        )

        subscription = event.data.object
        assert subscription.period_start == 100
        assert subscription.period_end == 200
        assert subscription.price_ref == "price_growth"

    def test_created_at_is_utc(self):
        event = parse_webhook_event(_event("customer.updated", {"id": "cus_1"}))

        assert event.created_at.tzinfo is not None
        assert int(event.created_at.timestamp()) == 1_791_000_000

    def test_missing_id_is_rejected(self):
        payload = _event("invoice.payment_succeeded", {"id": "in_1"})
        del payload["id"]

        with pytest.raises(ValidationError):
            parse_webhook_event(payload)

    def test_handled_type_with_bad_object_is_rejected(self):
        with pytest.raises(ValidationError):
            parse_webhook_event(
                _event("customer.subscription.updated", {"status": "active"})
            )
