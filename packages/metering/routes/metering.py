"""
Metering API routes.

On-demand reconciliation triggers and stored usage reads.
"""

from fastapi import APIRouter, Depends

from common.db.context import readonly
from packages.billing.services.tier_policy import (
    check_usage_limits,
    get_tier_recommendations,
)
from packages.metering.engine import MeteringEngine, get_metering_engine
from packages.metering.models.domain.usage import (
    ReconciliationResult,
    ReconciliationSummary,
    TenantUsageReport,
)
from packages.tenants.repositories.tenant_repository import TenantRepository

router = APIRouter()


def get_tenant_repository() -> TenantRepository:
    return TenantRepository()


@router.post("/reconcile", response_model=ReconciliationSummary)
async def reconcile_all(engine: MeteringEngine = Depends(get_metering_engine)):
    """Reconcile every tenant. Per-tenant failures are reported, not raised."""
    return await engine.reconcile_all()


@router.post("/tenants/{tenant_id}/reconcile", response_model=ReconciliationResult)
async def reconcile_tenant(
    tenant_id: int, engine: MeteringEngine = Depends(get_metering_engine)
):
    """
    Reconcile one tenant now, e.g. right after a large upload.

    409 while another pass for the same tenant is running.
    """
    return await engine.reconcile_one(tenant_id)


@router.get("/tenants/{tenant_id}/usage", response_model=TenantUsageReport)
@readonly
async def get_tenant_usage(
    tenant_id: int, tenant_repo: TenantRepository = Depends(get_tenant_repository)
):
    """Usage as of the last reconciliation, with limits and tier suggestions."""
    tenant = await tenant_repo.get_or_raise(tenant_id)
    return TenantUsageReport(
        tenant_id=tenant.id,
        tier=tenant.policy.tier.value,
        storage_bytes=tenant.storage_bytes,
        content_bytes=tenant.content_bytes,
        transcription_bytes=tenant.transcription_bytes,
        analysis_bytes=tenant.analysis_bytes,
        metadata_bytes=tenant.metadata_bytes,
        item_count=tenant.item_count,
        transcription_minutes=tenant.transcription_minutes,
        quota_bytes=tenant.quota_bytes,
        minutes_quota=tenant.minutes_quota,
        usage_computed_at=tenant.usage_computed_at,
        limits=check_usage_limits(tenant),
        recommendations=get_tier_recommendations(tenant),
    )
