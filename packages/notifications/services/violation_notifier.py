from typing import Any, Optional

from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.billing.models.domain.enums import UsageKind
from packages.billing.services.tier_policy import BYTES_PER_GB, resolve_tier_policy
from packages.metering.models.domain.usage import ThresholdBucket, Violation
from packages.notifications.providers.factory import get_notification_dispatcher
from packages.notifications.providers.interface import NotificationDispatcherInterface
from packages.notifications.templates import TemplateKind

logger = get_logger(__name__)


class ViolationNotifier:
    """
    Turns a usage violation into one outbound message.

    Best effort: failures are logged and reported as False, never raised.
    Whether a violation should be sent at all is the caller's decision.
    """

    def __init__(self, dispatcher: Optional[NotificationDispatcherInterface] = None):
        self.dispatcher = dispatcher or get_notification_dispatcher()

    @staticmethod
    def template_for(violation: Violation) -> TemplateKind:
        limit_reached = violation.bucket >= ThresholdBucket.LIMIT
        if violation.kind == UsageKind.MINUTES:
            if limit_reached:
                return TemplateKind.MINUTES_LIMIT_EXCEEDED
            return TemplateKind.MINUTES_WARNING
        if limit_reached:
            return TemplateKind.USAGE_LIMIT_EXCEEDED
        return TemplateKind.USAGE_WARNING

    @staticmethod
    def build_payload(violation: Violation, tenant_name: str = "") -> dict[str, Any]:
        policy = resolve_tier_policy(violation.tier)
        return {
            "tenant_id": violation.tenant_id,
            "kind": violation.kind.value,
            "tenant_name": tenant_name or f"tenant {violation.tenant_id}",
            "tier": policy.name,
            "percent": violation.percent,
            "usage_bytes": violation.total_bytes,
            "quota_bytes": violation.quota_bytes,
            "usage_gb": violation.total_bytes / BYTES_PER_GB,
            "quota_gb": violation.quota_bytes / BYTES_PER_GB,
            "overage_bytes": violation.overage_bytes,
            "overage_gb": violation.overage_bytes / BYTES_PER_GB,
            "overage_cost": violation.overage_cost,
            "price_per_gb": policy.overage_price_per_gb,
            "minutes_used": violation.minutes_used,
            "minutes_quota": violation.minutes_quota,
        }

    @trace_span
    async def notify(
        self, violation: Violation, recipient_ref: Optional[str], tenant_name: str = ""
    ) -> bool:
        if not recipient_ref:
            logger.warning(
                "No billing contact for tenant, skipping notification",
                extra={"tenant_id": violation.tenant_id},
            )
            return False

        template_kind = self.template_for(violation)
        try:
            sent = await self.dispatcher.send(
                recipient_ref, template_kind, self.build_payload(violation, tenant_name)
            )
        except Exception as e:
            logger.error(
                f"Notification dispatch failed: {e}",
                extra={
                    "tenant_id": violation.tenant_id,
                    "template_kind": template_kind.value,
                },
                exc_info=True,
            )
            return False

        if not sent:
            logger.warning(
                "Notification not delivered",
                extra={
                    "tenant_id": violation.tenant_id,
                    "template_kind": template_kind.value,
                },
            )
        return bool(sent)
