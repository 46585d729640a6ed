"""
Reconciliation: recompute each tenant's usage, store it, and warn on quota.

At most one pass runs per tenant at a time, enforced with the distributed
lock. The lock is renewed while the pass runs and ownership is re-checked
before every write. Within a pass the snapshot is persisted before
thresholds are evaluated, so a violation is never judged against stale usage.

Storage and transcription minutes are checked against their own ceilings and
de-duplicated independently. Only storage overage carries a cost.
"""

import asyncio
from datetime import datetime
from typing import Optional

from common.core.clock import as_utc, month_start
from common.core.config import settings
from common.core.exceptions import DataSourceError
from common.core.otel_axiom_exporter import trace_span, get_logger
from common.providers.locking.factory import get_lock_provider
from common.providers.locking.interface import DistributedLockInterface
from packages.billing.models.domain.enums import UsageKind
from packages.billing.services.tier_policy import BYTES_PER_GB
from packages.metering.exceptions import ReconciliationInProgressError
from packages.metering.models.domain.usage import (
    ReconciliationResult,
    ReconciliationSummary,
    ThresholdBucket,
    UsageSnapshot,
    Violation,
)
from packages.metering.services.usage_aggregator import UsageAggregator
from packages.notifications.services.violation_notifier import ViolationNotifier
from packages.tenants.models.domain.tenant import Tenant, TenantUsageUpdateModel
from packages.tenants.repositories.tenant_repository import TenantRepository

logger = get_logger(__name__)


def reconcile_lock_key(tenant_id: int) -> str:
    return f"reconcile:tenant:{tenant_id}"


def billing_period_start(tenant: Tenant) -> datetime:
    """Start of the period notifications and minutes are counted against."""
    return as_utc(tenant.current_period_start) or month_start()


def threshold_bucket(used: int, quota: int) -> ThresholdBucket:
    # Integer comparison: 79.999% must not round up into the warning
    if used >= quota:
        return ThresholdBucket.LIMIT
    if used * 100 >= quota * ThresholdBucket.WARNING:
        return ThresholdBucket.WARNING
    return ThresholdBucket.NONE


def evaluate_violation(
    tenant: Tenant, snapshot: UsageSnapshot, period_start: datetime
) -> Optional[Violation]:
    """A storage Violation when usage is at or above the warning threshold."""
    policy = tenant.policy
    quota = policy.storage_quota_bytes
    bucket = threshold_bucket(snapshot.total_bytes, quota)
    if bucket == ThresholdBucket.NONE:
        return None

    overage_bytes = max(0, snapshot.total_bytes - quota)
    return Violation(
        tenant_id=tenant.id,
        tier=policy.tier.value,
        percent=snapshot.total_bytes / quota * 100,
        bucket=bucket,
        total_bytes=snapshot.total_bytes,
        quota_bytes=quota,
        overage_bytes=overage_bytes,
        overage_cost=overage_bytes / BYTES_PER_GB * policy.overage_price_per_gb,
        period_start=period_start,
    )


def evaluate_minutes_violation(
    tenant: Tenant, snapshot: UsageSnapshot, period_start: datetime
) -> Optional[Violation]:
    """A minutes Violation for this period's transcription. Never carries a cost."""
    policy = tenant.policy
    quota = policy.minutes_quota
    used = snapshot.transcription_minutes
    bucket = threshold_bucket(used, quota)
    if bucket == ThresholdBucket.NONE:
        return None

    return Violation(
        kind=UsageKind.MINUTES,
        tenant_id=tenant.id,
        tier=policy.tier.value,
        percent=used / quota * 100,
        bucket=bucket,
        total_bytes=snapshot.total_bytes,
        quota_bytes=policy.storage_quota_bytes,
        overage_bytes=0,
        overage_cost=0.0,
        minutes_used=used,
        minutes_quota=quota,
        period_start=period_start,
    )


def already_notified(tenant: Tenant, violation: Violation) -> bool:
    """Whether this bucket (or a higher one) of the same kind was sent this period."""
    if violation.kind == UsageKind.MINUTES:
        notified_period = as_utc(tenant.minutes_notified_period_start)
        notified_bucket = tenant.minutes_notified_bucket
    else:
        notified_period = as_utc(tenant.last_notified_period_start)
        notified_bucket = tenant.last_notified_bucket
    if notified_period is None or notified_period != violation.period_start:
        return False
    return notified_bucket >= violation.bucket


def notified_marker(violation: Violation) -> TenantUsageUpdateModel:
    if violation.kind == UsageKind.MINUTES:
        return TenantUsageUpdateModel(
            minutes_notified_bucket=int(violation.bucket),
            minutes_notified_period_start=violation.period_start,
        )
    return TenantUsageUpdateModel(
        last_notified_bucket=int(violation.bucket),
        last_notified_period_start=violation.period_start,
    )


class LockLease:
    """
    A held reconciliation lock, renewed in the background until closed.

    ``ensure_held`` pushes the expiry out and raises when the lock was lost,
    so no write happens after another pass could have taken over.
    """

    def __init__(
        self,
        lock_provider: DistributedLockInterface,
        lock_key: str,
        lock_token: str,
        ttl_seconds: int,
    ):
        self.lock_provider = lock_provider
        self.lock_key = lock_key
        self.lock_token = lock_token
        self.ttl_seconds = ttl_seconds
        self.lost = False
        self._heartbeat: Optional[asyncio.Task] = None

    def start(self) -> None:
        self._heartbeat = asyncio.create_task(self._renew_forever())

    async def _renew_forever(self) -> None:
        interval = max(self.ttl_seconds / 3, 0.05)
        while True:
            await asyncio.sleep(interval)
            try:
                extended = await self.lock_provider.extend_lock(
                    self.lock_key, self.lock_token, self.ttl_seconds
                )
            except DataSourceError as e:
                # Retried on the next beat; ensure_held reports a lasting outage
                logger.warning(f"Lock renewal failed for {self.lock_key}: {e}")
                continue
            if not extended:
                self.lost = True
                logger.error(f"Lost reconciliation lock {self.lock_key}")
                return

    async def ensure_held(self) -> None:
        if not self.lost:
            self.lost = not await self.lock_provider.extend_lock(
                self.lock_key, self.lock_token, self.ttl_seconds
            )
        if self.lost:
            raise ReconciliationInProgressError(
                f"Reconciliation lock {self.lock_key} expired mid-pass"
            )

    async def close(self) -> None:
        if self._heartbeat is not None:
            self._heartbeat.cancel()
            try:
                await self._heartbeat
            except asyncio.CancelledError:
                pass
        await self.lock_provider.release_lock(self.lock_key, self.lock_token)


class ReconciliationService:
    """Recomputes usage for tenants and drives quota notifications."""

    def __init__(
        self,
        aggregator: Optional[UsageAggregator] = None,
        tenant_repo: Optional[TenantRepository] = None,
        notifier: Optional[ViolationNotifier] = None,
        lock_provider: Optional[DistributedLockInterface] = None,
        max_concurrency: Optional[int] = None,
    ):
        self.aggregator = aggregator or UsageAggregator()
        self.tenant_repo = tenant_repo or TenantRepository()
        self.notifier = notifier or ViolationNotifier()
        self.lock_provider = lock_provider or get_lock_provider()
        self.max_concurrency = max_concurrency or settings.reconcile_max_concurrency

    @trace_span
    async def reconcile_all(self) -> ReconciliationSummary:
        """
        Reconcile every tenant with bounded concurrency.

        One tenant failing never stops the others; its error is recorded in
        its result instead.
        """
        tenants = await self.tenant_repo.list_all()
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def run(tenant: Tenant) -> ReconciliationResult:
            async with semaphore:
                return await self._reconcile_isolated(tenant.id)

        results = await asyncio.gather(*(run(tenant) for tenant in tenants))
        summary = ReconciliationSummary.from_results(list(results))
        logger.info(
            "Reconciliation batch finished",
            extra={
                "total_tenants": summary.total_tenants,
                "succeeded": summary.succeeded,
                "failed": summary.failed,
                "violations": summary.violations,
                "notified": summary.notified,
            },
        )
        return summary

    async def _reconcile_isolated(self, tenant_id: int) -> ReconciliationResult:
        try:
            return await self.reconcile_one(tenant_id=tenant_id)
        except Exception as e:
            logger.error(
                f"Reconciliation failed for tenant {tenant_id}: {e}",
                extra={"tenant_id": tenant_id, "error_type": type(e).__name__},
            )
            return ReconciliationResult(
                tenant_id=tenant_id,
                success=False,
                error=str(e),
                error_type=type(e).__name__,
            )

    @trace_span
    async def reconcile_one(self, tenant_id: int) -> ReconciliationResult:
        """
        Reconcile a single tenant. Errors propagate to the caller.

        Raises:
            ReconciliationInProgressError: another pass holds the tenant's lock,
                or this pass lost it before writing
            TenantNotFoundError: no such tenant
            DataSourceError: the content or tenant store failed
        """
        lock_key = reconcile_lock_key(tenant_id)
        ttl_seconds = settings.reconcile_lock_ttl_seconds
        lock_token = await self.lock_provider.acquire_lock_with_retry(
            lock_key,
            lock_ttl_seconds=ttl_seconds,
            acquire_timeout_seconds=settings.reconcile_lock_wait_seconds,
        )
        if not lock_token:
            logger.warning(
                f"Reconciliation already running for tenant {tenant_id}",
                extra={"tenant_id": tenant_id},
            )
            raise ReconciliationInProgressError(
                f"Reconciliation already in progress for tenant {tenant_id}"
            )

        lease = LockLease(self.lock_provider, lock_key, lock_token, ttl_seconds)
        lease.start()
        try:
            return await self._reconcile_locked(tenant_id, lease)
        finally:
            await lease.close()

    async def _reconcile_locked(
        self, tenant_id: int, lease: LockLease
    ) -> ReconciliationResult:
        tenant = await self.tenant_repo.get_or_raise(tenant_id)
        period_start = billing_period_start(tenant)

        snapshot = await self.aggregator.compute_usage(
            tenant_id, period_start=period_start
        )
        await lease.ensure_held()
        tenant = await self.tenant_repo.update_usage(
            tenant_id,
            TenantUsageUpdateModel(
                storage_bytes=snapshot.total_bytes,
                content_bytes=snapshot.content_bytes,
                transcription_bytes=snapshot.transcription_bytes,
                analysis_bytes=snapshot.analysis_bytes,
                metadata_bytes=snapshot.metadata_bytes,
                item_count=snapshot.item_count,
                transcription_minutes=snapshot.transcription_minutes,
                usage_computed_at=snapshot.computed_at,
            ),
        )

        usage_percent = snapshot.total_bytes / tenant.quota_bytes * 100
        minutes_percent = snapshot.transcription_minutes / tenant.minutes_quota * 100
        violation = evaluate_violation(tenant, snapshot, period_start)
        minutes_violation = evaluate_minutes_violation(tenant, snapshot, period_start)

        notified = await self._notify_once(tenant, violation, lease)
        minutes_notified = await self._notify_once(tenant, minutes_violation, lease)

        logger.info(
            "Reconciled tenant usage",
            extra={
                "tenant_id": tenant_id,
                "total_bytes": snapshot.total_bytes,
                "usage_percent": round(usage_percent, 3),
                "minutes_percent": round(minutes_percent, 3),
                "bucket": int(violation.bucket) if violation else 0,
                "minutes_bucket": (
                    int(minutes_violation.bucket) if minutes_violation else 0
                ),
                "notified": notified,
                "minutes_notified": minutes_notified,
            },
        )
        return ReconciliationResult(
            tenant_id=tenant_id,
            success=True,
            snapshot=snapshot,
            usage_percent=usage_percent,
            minutes_percent=minutes_percent,
            violation=violation,
            minutes_violation=minutes_violation,
            notified=notified,
            minutes_notified=minutes_notified,
        )

    async def _notify_once(
        self, tenant: Tenant, violation: Optional[Violation], lease: LockLease
    ) -> bool:
        """Send unless this bucket went out this period; record it only once sent."""
        if violation is None or already_notified(tenant, violation):
            return False

        sent = await self.notifier.notify(
            violation, tenant.billing_email, tenant_name=tenant.name
        )
        if sent:
            await lease.ensure_held()
            await self.tenant_repo.update_usage(tenant.id, notified_marker(violation))
        return sent
