"""
Metering engine: the trigger surface for schedulers, webhooks and the CLI.

All collaborators are injected, so the engine can be assembled against any
content store, tenant store, payment processor and notification dispatcher.
"""

from typing import Optional

from common.providers.locking.factory import get_lock_provider
from common.providers.locking.interface import DistributedLockInterface
from packages.billing.models.domain.enums import IngestOutcome
from packages.billing.models.domain.stripe_webhooks import StripeWebhookEvent
from packages.billing.providers.payment.factory import get_payment_provider
from packages.billing.providers.payment.interface import PaymentProviderInterface
from packages.billing.services.billing_sync_service import BillingSyncService
from packages.content.providers.factory import get_content_store
from packages.content.providers.interface import ContentStoreInterface
from packages.metering.models.domain.usage import (
    ReconciliationResult,
    ReconciliationSummary,
)
from packages.metering.services.reconciliation_service import ReconciliationService
from packages.metering.services.usage_aggregator import UsageAggregator
from packages.notifications.providers.factory import get_notification_dispatcher
from packages.notifications.providers.interface import NotificationDispatcherInterface
from packages.notifications.services.violation_notifier import ViolationNotifier
from packages.tenants.repositories.tenant_repository import TenantRepository


class MeteringEngine:
    def __init__(
        self,
        content_store: ContentStoreInterface,
        tenant_repo: TenantRepository,
        payment: PaymentProviderInterface,
        dispatcher: NotificationDispatcherInterface,
        lock_provider: DistributedLockInterface,
        max_concurrency: Optional[int] = None,
    ):
        self.reconciliation = ReconciliationService(
            aggregator=UsageAggregator(content_store),
            tenant_repo=tenant_repo,
            notifier=ViolationNotifier(dispatcher),
            lock_provider=lock_provider,
            max_concurrency=max_concurrency,
        )
        self.billing = BillingSyncService(payment=payment, tenant_repo=tenant_repo)

    async def reconcile_all(self) -> ReconciliationSummary:
        return await self.reconciliation.reconcile_all()

    async def reconcile_one(self, tenant_id: int) -> ReconciliationResult:
        return await self.reconciliation.reconcile_one(tenant_id=tenant_id)

    async def ingest_webhook_event(self, event: StripeWebhookEvent) -> IngestOutcome:
        return await self.billing.ingest_webhook_event(event)


def get_metering_engine() -> MeteringEngine:
    """Engine wired to the configured production collaborators."""
    return MeteringEngine(
        content_store=get_content_store(),
        tenant_repo=TenantRepository(),
        payment=get_payment_provider(),
        dispatcher=get_notification_dispatcher(),
        lock_provider=get_lock_provider(),
    )
