"""
Stripe implementation of payment provider.

The Stripe SDK is synchronous, so every call runs in a worker thread and is
bounded by ``settings.stripe_timeout_seconds``. The SDK's own network retries
are off: retry policy belongs to whoever triggered the operation. The SDK's
HTTP client gets the same timeout so an abandoned worker thread still ends.
Creates carry idempotency keys so a retried trigger never duplicates a
customer or subscription.
"""

import asyncio
from typing import Any, Callable, Optional

import stripe

from common.core.clock import from_unix
from common.core.config import settings
from common.core.exceptions import ExternalProcessorError
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.billing.models.domain.enums import SubscriptionStatus
from packages.billing.models.domain.subscription import ProcessorSubscription
from packages.billing.providers.payment.interface import PaymentProviderInterface

logger = get_logger(__name__)


def _field(obj: Any, *path: str) -> Any:
    """Walk nested Stripe objects (or plain dicts), None on any missing key."""
    current = obj
    for key in path:
        if current is None or isinstance(current, str):
            return None
        try:
            current = current[key]
        except (KeyError, IndexError, TypeError):
            return None
    return current


def to_processor_subscription(subscription: Any) -> ProcessorSubscription:
    """Map a Stripe subscription onto the fields mirrored locally.

    Newer Stripe API versions moved the period bounds onto subscription
    items, so the first item is consulted when the top-level fields are absent.
    """
    first_item = _field(subscription, "items", "data", 0)
    period_start = _field(subscription, "current_period_start") or _field(
        first_item, "current_period_start"
    )
    period_end = _field(subscription, "current_period_end") or _field(
        first_item, "current_period_end"
    )
    latest_invoice = _field(subscription, "latest_invoice")
    client_secret = _field(latest_invoice, "payment_intent", "client_secret") or _field(
        latest_invoice, "confirmation_secret", "client_secret"
    )
    latest_invoice_id = (
        latest_invoice
        if isinstance(latest_invoice, str)
        else _field(latest_invoice, "id")
    )
    customer = _field(subscription, "customer")

    return ProcessorSubscription(
        id=subscription["id"],
        status=SubscriptionStatus.from_processor(_field(subscription, "status") or ""),
        customer_id=customer if isinstance(customer, str) else _field(customer, "id"),
        price_ref=_field(first_item, "price", "id"),
        current_period_start=from_unix(period_start),
        current_period_end=from_unix(period_end),
        cancel_at_period_end=bool(_field(subscription, "cancel_at_period_end")),
        client_secret=client_secret,
        latest_invoice_id=latest_invoice_id,
    )


class StripePaymentProvider(PaymentProviderInterface):
    """Stripe-based payment implementation."""

    def __init__(self, timeout_seconds: Optional[float] = None):
        """Initialize Stripe with API credentials."""
        stripe.api_key = settings.stripe_secret_key
        stripe.max_network_retries = 0
        self.timeout_seconds = (
            timeout_seconds
            if timeout_seconds is not None
            else settings.stripe_timeout_seconds
        )
        stripe.default_http_client = stripe.RequestsClient(timeout=self.timeout_seconds)

    async def _call(self, operation: str, fn: Callable[..., Any], *args, **kwargs):
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(fn, *args, **kwargs), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError as e:
            logger.error(
                f"Stripe {operation} timed out",
                extra={"operation": operation, "timeout": self.timeout_seconds},
            )
            raise ExternalProcessorError(
                f"Stripe {operation} timed out after {self.timeout_seconds}s"
            ) from e
        except stripe.StripeError as e:
            logger.error(
                f"Stripe {operation} failed: {e}",
                extra={"operation": operation, "error": str(e)},
            )
            raise ExternalProcessorError(f"Stripe {operation} failed: {e}") from e

    @trace_span
    async def create_customer(
        self,
        tenant_id: int,
        tenant_name: str,
        email: Optional[str] = None,
    ) -> str:
        """Create a Stripe customer."""
        customer = await self._call(
            "create_customer",
            stripe.Customer.create,
            email=email,
            name=tenant_name,
            metadata={"tenant_id": str(tenant_id)},
            idempotency_key=f"tenant-{tenant_id}-customer",
        )
        logger.info(
            "Created Stripe customer",
            extra={"tenant_id": tenant_id, "customer_id": customer["id"]},
        )
        return customer["id"]

    @trace_span
    async def create_subscription(
        self, customer_id: str, price_ref: str, tenant_id: int
    ) -> ProcessorSubscription:
        subscription = await self._call(
            "create_subscription",
            stripe.Subscription.create,
            customer=customer_id,
            items=[{"price": price_ref}],
            payment_behavior="default_incomplete",
            payment_settings={"save_default_payment_method": "on_subscription"},
            expand=["latest_invoice.payment_intent"],
            metadata={"tenant_id": str(tenant_id)},
            idempotency_key=(
                f"tenant-{tenant_id}-subscription-{customer_id}-{price_ref}"
            ),
        )
        logger.info(
            "Created Stripe subscription",
            extra={
                "tenant_id": tenant_id,
                "subscription_id": subscription["id"],
                "price_ref": price_ref,
            },
        )
        return to_processor_subscription(subscription)

    @trace_span
    async def retrieve_subscription(self, subscription_id: str) -> ProcessorSubscription:
        subscription = await self._call(
            "retrieve_subscription",
            stripe.Subscription.retrieve,
            subscription_id,
            expand=["latest_invoice"],
        )
        return to_processor_subscription(subscription)

    @trace_span
    async def update_subscription_price(
        self, subscription_id: str, price_ref: str
    ) -> ProcessorSubscription:
        """
        Move the subscription to a new price.

        Uses always_invoice so an upgrade is charged immediately.
        """
        current = await self._call(
            "retrieve_subscription", stripe.Subscription.retrieve, subscription_id
        )
        item_id = current["items"]["data"][0]["id"]

        updated = await self._call(
            "update_subscription",
            stripe.Subscription.modify,
            subscription_id,
            items=[{"id": item_id, "price": price_ref}],
            proration_behavior="always_invoice",
        )
        logger.info(
            "Updated Stripe subscription price",
            extra={"subscription_id": subscription_id, "price_ref": price_ref},
        )
        return to_processor_subscription(updated)

    @trace_span
    async def cancel_subscription(self, subscription_id: str) -> ProcessorSubscription:
        """Cancel Stripe subscription."""
        canceled = await self._call(
            "cancel_subscription", stripe.Subscription.cancel, subscription_id
        )
        logger.info(
            "Cancelled Stripe subscription",
            extra={"subscription_id": subscription_id},
        )
        return to_processor_subscription(canceled)

    @trace_span
    async def schedule_cancellation(
        self, subscription_id: str
    ) -> ProcessorSubscription:
        updated = await self._call(
            "schedule_cancellation",
            stripe.Subscription.modify,
            subscription_id,
            cancel_at_period_end=True,
        )
        logger.info(
            "Scheduled Stripe subscription cancellation",
            extra={"subscription_id": subscription_id},
        )
        return to_processor_subscription(updated)

    @trace_span
    async def health_check(self) -> bool:
        """Check Stripe health."""
        try:
            await self._call("health_check", stripe.Account.retrieve)
            return True
        except ExternalProcessorError as e:
            logger.error(f"Payment health check failed: {e}")
            return False
