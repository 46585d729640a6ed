"""
Billing sync: keeps tenant subscription state consistent with Stripe.

Outbound operations call Stripe first and write locally only after Stripe
succeeded, so a failed call never leaves a partial tenant update behind.
Inbound webhook events are applied at most once, keyed on the Stripe event id
recorded in the billing ledger.
"""

from typing import Optional

from sqlalchemy.exc import IntegrityError

from common.core.clock import as_utc, from_unix
from common.core.otel_axiom_exporter import trace_span, get_logger, log_span_event
from common.db.scoped import transaction
from packages.billing.exceptions import (
    NoActiveSubscriptionError,
    SubscriptionConflictError,
)
from packages.billing.models.domain.billing_event import (
    BillingEvent,
    BillingEventCreateModel,
)
from packages.billing.models.domain.enums import (
    IngestOutcome,
    SubscriptionStatus,
    SubscriptionTier,
)
from packages.billing.models.domain.stripe_webhooks import (
    InvoicePaymentFailedEvent,
    InvoicePaymentSucceededEvent,
    StripeWebhookEvent,
    SubscriptionDeletedEvent,
    SubscriptionUpdatedEvent,
)
from packages.billing.models.domain.subscription import (
    SubscriptionDetails,
    SubscriptionResult,
)
from packages.billing.providers.payment.factory import get_payment_provider
from packages.billing.providers.payment.interface import PaymentProviderInterface
from packages.billing.repositories.billing_event_repository import (
    BillingEventRepository,
)
from packages.billing.services.tier_policy import get_price_ref, tier_for_price_ref
from packages.tenants.models.domain.tenant import Tenant, TenantBillingUpdateModel
from packages.tenants.repositories.tenant_repository import TenantRepository

logger = get_logger(__name__)


def _billing_changes(**fields) -> TenantBillingUpdateModel:
    # Unset fields are left alone by the partial update
    return TenantBillingUpdateModel(
        **{name: value for name, value in fields.items() if value is not None}
    )


class BillingSyncService:
    """Customer and subscription lifecycle against Stripe, plus webhook ingestion."""

    def __init__(
        self,
        payment: Optional[PaymentProviderInterface] = None,
        tenant_repo: Optional[TenantRepository] = None,
        ledger_repo: Optional[BillingEventRepository] = None,
    ):
        self.payment = payment or get_payment_provider()
        self.tenant_repo = tenant_repo or TenantRepository()
        self.ledger_repo = ledger_repo or BillingEventRepository()

    @trace_span
    async def ensure_customer(self, tenant: Tenant) -> str:
        """Return the tenant's Stripe customer id, creating the customer once."""
        if tenant.stripe_customer_id:
            return tenant.stripe_customer_id

        customer_id = await self.payment.create_customer(
            tenant_id=tenant.id,
            tenant_name=tenant.name,
            email=tenant.billing_email,
        )
        await self.tenant_repo.update_billing(
            tenant.id, TenantBillingUpdateModel(stripe_customer_id=customer_id)
        )
        logger.info(
            "Linked Stripe customer to tenant",
            extra={"tenant_id": tenant.id, "customer_id": customer_id},
        )
        return customer_id

    @trace_span
    async def create_subscription(
        self, tenant_id: int, price_ref: str
    ) -> SubscriptionResult:
        """
        Start a subscription on ``price_ref``.

        The tenant's tier follows the price when the price is one of the
        configured tier prices. The returned client secret (if any) lets the
        client confirm the first payment.
        """
        tenant = await self.tenant_repo.get_or_raise(tenant_id)
        if tenant.has_live_subscription:
            raise SubscriptionConflictError(
                f"Tenant {tenant_id} already has subscription {tenant.stripe_subscription_id}"
            )

        customer_id = await self.ensure_customer(tenant)
        subscription = await self.payment.create_subscription(
            customer_id=customer_id, price_ref=price_ref, tenant_id=tenant_id
        )

        await self.tenant_repo.update_billing(
            tenant_id,
            _billing_changes(
                stripe_subscription_id=subscription.id,
                subscription_status=subscription.status,
                current_period_start=subscription.current_period_start,
                current_period_end=subscription.current_period_end,
                cancel_at_period_end=False,
                tier=tier_for_price_ref(price_ref),
            ),
        )
        logger.info(
            "Created subscription",
            extra={
                "tenant_id": tenant_id,
                "subscription_id": subscription.id,
                "status": subscription.status.value,
            },
        )
        return SubscriptionResult(
            subscription_id=subscription.id,
            status=subscription.status,
            client_secret=subscription.client_secret,
        )

    @trace_span
    async def change_tier(
        self, tenant_id: int, new_tier: SubscriptionTier
    ) -> SubscriptionStatus:
        """Move a live subscription to ``new_tier`` with prorated invoicing."""
        tenant = await self.tenant_repo.get_or_raise(tenant_id)
        if not tenant.has_live_subscription:
            raise NoActiveSubscriptionError(f"Tenant {tenant_id} has no subscription")

        subscription = await self.payment.update_subscription_price(
            tenant.stripe_subscription_id, get_price_ref(new_tier)
        )
        await self.tenant_repo.update_billing(
            tenant_id,
            TenantBillingUpdateModel(
                tier=new_tier, subscription_status=subscription.status
            ),
        )
        logger.info(
            f"Changed tier {tenant.tier} -> {new_tier.value}",
            extra={"tenant_id": tenant_id, "status": subscription.status.value},
        )
        return subscription.status

    @trace_span
    async def cancel_subscription(
        self, tenant_id: int, immediate: bool = False
    ) -> SubscriptionStatus:
        """
        Cancel now, or at the end of the paid period.

        A deferred cancellation only sets the flag; the status changes when
        Stripe sends the deletion at period end.
        """
        tenant = await self.tenant_repo.get_or_raise(tenant_id)
        if not tenant.has_live_subscription:
            raise NoActiveSubscriptionError(f"Tenant {tenant_id} has no subscription")

        if immediate:
            await self.payment.cancel_subscription(tenant.stripe_subscription_id)
            changes = TenantBillingUpdateModel(
                subscription_status=SubscriptionStatus.CANCELED
            )
        else:
            await self.payment.schedule_cancellation(tenant.stripe_subscription_id)
            changes = TenantBillingUpdateModel(cancel_at_period_end=True)

        updated = await self.tenant_repo.update_billing(tenant_id, changes)
        logger.info(
            "Cancelled subscription",
            extra={"tenant_id": tenant_id, "immediate": immediate},
        )
        return updated.subscription_status

    @trace_span
    async def get_subscription_details(self, tenant_id: int) -> SubscriptionDetails:
        tenant = await self.tenant_repo.get_or_raise(tenant_id)
        details = SubscriptionDetails(
            tenant_id=tenant.id,
            tier=tenant.policy.tier,
            status=SubscriptionStatus.INACTIVE,
            storage_bytes=tenant.storage_bytes,
            transcription_minutes=tenant.transcription_minutes,
            item_count=tenant.item_count,
        )
        if not tenant.stripe_subscription_id:
            return details

        subscription = await self.payment.retrieve_subscription(
            tenant.stripe_subscription_id
        )
        return details.model_copy(
            update={
                "status": subscription.status,
                "current_period_start": subscription.current_period_start,
                "current_period_end": subscription.current_period_end,
                "cancel_at_period_end": subscription.cancel_at_period_end,
                "latest_invoice_id": subscription.latest_invoice_id,
            }
        )

    @trace_span
    async def list_billing_events(
        self, tenant_id: int, limit: int = 100
    ) -> list[BillingEvent]:
        """Most recent ledger rows first."""
        await self.tenant_repo.get_or_raise(tenant_id)
        return await self.ledger_repo.list_for_tenant(tenant_id, limit=limit)

    # Webhooks

    @trace_span
    async def ingest_webhook_event(self, event: StripeWebhookEvent) -> IngestOutcome:
        """
        Apply one Stripe event at most once.

        Redelivered events are reported as duplicates without side effects.
        The tenant update and the ledger row commit together, ledger last.
        """
        if await self.ledger_repo.exists(event.id):
            logger.debug(
                "Skipping already recorded Stripe event",
                extra={"event_id": event.id, "event_type": event.type},
            )
            return IngestOutcome.DUPLICATE

        tenant = await self._resolve_tenant(event)
        if tenant is None:
            logger.info(
                "Ignoring Stripe event for unknown tenant",
                extra={"event_id": event.id, "event_type": event.type},
            )
            return IngestOutcome.IGNORED

        changes = self._changes_for(event, tenant)

        try:
            async with transaction():
                if changes is not None:
                    await self.tenant_repo.update_billing(tenant.id, changes)
                await self.ledger_repo.append(
                    BillingEventCreateModel(
                        tenant_id=tenant.id,
                        external_event_id=event.id,
                        event_type=event.type,
                        amount=event.amount,
                        currency=event.currency,
                        status=event.status or "unknown",
                        payload=event.raw_object(),
                    )
                )
        except IntegrityError:
            # Lost a race with a concurrent delivery of the same event
            logger.debug(
                "Concurrent duplicate Stripe event rolled back",
                extra={"event_id": event.id},
            )
            return IngestOutcome.DUPLICATE

        log_span_event(
            "Processed Stripe event",
            {
                "event_id": event.id,
                "event_type": event.type,
                "tenant_id": tenant.id,
                "applied": changes is not None,
            },
        )
        return IngestOutcome.PROCESSED

    async def _resolve_tenant(self, event: StripeWebhookEvent) -> Optional[Tenant]:
        tenant_ref = event.tenant_ref
        if tenant_ref:
            try:
                tenant = await self.tenant_repo.get(int(tenant_ref))
            except ValueError:
                logger.warning(
                    "Malformed tenant_id in Stripe metadata",
                    extra={"event_id": event.id, "tenant_ref": tenant_ref},
                )
                tenant = None
            if tenant is not None:
                return tenant

        if event.subscription_id:
            return await self.tenant_repo.get_by_stripe_subscription_id(
                event.subscription_id
            )
        return None

    def _changes_for(
        self, event: StripeWebhookEvent, tenant: Tenant
    ) -> Optional[TenantBillingUpdateModel]:
        """Tenant billing changes for ``event``, or None for a ledger-only event."""
        last_applied = as_utc(tenant.billing_event_at)
        if last_applied is not None and event.created_at < last_applied:
            logger.info(
                "Stripe event older than tenant billing state, recording only",
                extra={"event_id": event.id, "tenant_id": tenant.id},
            )
            return None

        if (
            tenant.stripe_subscription_id
            and event.subscription_id
            and event.subscription_id != tenant.stripe_subscription_id
        ):
            logger.info(
                "Stripe event for a superseded subscription, recording only",
                extra={
                    "event_id": event.id,
                    "tenant_id": tenant.id,
                    "subscription_id": event.subscription_id,
                },
            )
            return None

        if isinstance(event, InvoicePaymentSucceededEvent):
            return _billing_changes(
                subscription_status=SubscriptionStatus.ACTIVE,
                billing_event_at=event.created_at,
            )
        if isinstance(event, InvoicePaymentFailedEvent):
            return _billing_changes(
                subscription_status=SubscriptionStatus.PAST_DUE,
                billing_event_at=event.created_at,
            )
        if isinstance(event, SubscriptionUpdatedEvent):
            subscription = event.data.object
            return _billing_changes(
                stripe_subscription_id=subscription.id,
                subscription_status=SubscriptionStatus.from_processor(
                    subscription.status
                ),
                current_period_start=from_unix(subscription.period_start),
                current_period_end=from_unix(subscription.period_end),
                cancel_at_period_end=subscription.cancel_at_period_end,
                billing_event_at=event.created_at,
            )
        if isinstance(event, SubscriptionDeletedEvent):
            # Losing the paid subscription reverts to the free tier's quota
            return _billing_changes(
                subscription_status=SubscriptionStatus.CANCELED,
                tier=SubscriptionTier.STARTER,
                cancel_at_period_end=False,
                billing_event_at=event.created_at,
            )

        logger.info(
            f"Unhandled Stripe event type: {event.type}",
            extra={"event_id": event.id},
        )
        return None
