from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from common.core.exceptions import DataSourceError
from common.core.otel_axiom_exporter import trace_span, get_logger
from common.repositories.base import BaseRepository
from packages.billing.exceptions import TenantNotFoundError
from packages.tenants.models.database.tenant import TenantEntity
from packages.tenants.models.domain.tenant import (
    Tenant,
    TenantBillingUpdateModel,
    TenantUsageUpdateModel,
)

logger = get_logger(__name__)


class TenantRepository(BaseRepository[TenantEntity, Tenant]):
    """Tenant store. Usage and billing writers each touch only their own columns."""

    def __init__(self):
        super().__init__(TenantEntity, Tenant)

    @trace_span
    async def get_or_raise(self, tenant_id: int) -> Tenant:
        try:
            tenant = await self.get(tenant_id)
        except SQLAlchemyError as e:
            raise DataSourceError(f"Tenant store unavailable: {e}") from e
        if tenant is None:
            raise TenantNotFoundError(f"Tenant {tenant_id} not found")
        return tenant

    @trace_span
    async def list_all(self) -> list[Tenant]:
        try:
            async with self._get_session() as session:
                result = await session.execute(
                    select(TenantEntity).order_by(TenantEntity.id)
                )
                return self._entities_to_domain(result.scalars().all())
        except SQLAlchemyError as e:
            raise DataSourceError(f"Tenant store unavailable: {e}") from e

    @trace_span
    async def update_usage(
        self, tenant_id: int, changes: TenantUsageUpdateModel
    ) -> Tenant:
        return await self._partial_update(tenant_id, changes)

    @trace_span
    async def update_billing(
        self, tenant_id: int, changes: TenantBillingUpdateModel
    ) -> Tenant:
        return await self._partial_update(tenant_id, changes)

    async def _partial_update(self, tenant_id: int, changes) -> Tenant:
        try:
            tenant = await self.update(tenant_id, changes)
        except SQLAlchemyError as e:
            raise DataSourceError(f"Tenant store unavailable: {e}") from e
        if tenant is None:
            raise TenantNotFoundError(f"Tenant {tenant_id} not found")
        return tenant

    @trace_span
    async def get_by_stripe_subscription_id(
        self, subscription_id: str
    ) -> Optional[Tenant]:
        async with self._get_session() as session:
            result = await session.execute(
                select(TenantEntity).where(
                    TenantEntity.stripe_subscription_id == subscription_id
                )
            )
            entity = result.scalar_one_or_none()
            return self._entity_to_domain(entity) if entity else None
