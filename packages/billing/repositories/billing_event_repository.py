"""
Repository for the billing ledger.
"""

from typing import Optional

from sqlalchemy import select

from common.core.otel_axiom_exporter import trace_span
from common.repositories.base import BaseRepository
from packages.billing.models.database.billing_event import BillingEventEntity
from packages.billing.models.domain.billing_event import (
    BillingEvent,
    BillingEventCreateModel,
)


class BillingEventRepository(BaseRepository[BillingEventEntity, BillingEvent]):
    """Append-only ledger of applied Stripe events."""

    def __init__(self):
        super().__init__(BillingEventEntity, BillingEvent)

    @trace_span
    async def get_by_external_event_id(
        self, external_event_id: str
    ) -> Optional[BillingEvent]:
        async with self._get_session() as session:
            result = await session.execute(
                select(BillingEventEntity).where(
                    BillingEventEntity.external_event_id == external_event_id
                )
            )
            entity = result.scalar_one_or_none()
            return self._entity_to_domain(entity) if entity else None

    @trace_span
    async def exists(self, external_event_id: str) -> bool:
        return await self.get_by_external_event_id(external_event_id) is not None

    @trace_span
    async def append(self, event: BillingEventCreateModel) -> BillingEvent:
        """Insert a ledger row. A duplicate external_event_id raises IntegrityError."""
        return await self.create(event)

    @trace_span
    async def list_for_tenant(self, tenant_id: int, limit: int = 100) -> list[BillingEvent]:
        async with self._get_session() as session:
            result = await session.execute(
                select(BillingEventEntity)
                .where(BillingEventEntity.tenant_id == tenant_id)
                .order_by(BillingEventEntity.received_at.desc(), BillingEventEntity.id.desc())
                .limit(limit)
            )
            return self._entities_to_domain(result.scalars().all())
