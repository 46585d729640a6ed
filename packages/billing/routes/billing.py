"""
Billing API routes.

Subscription lifecycle for a tenant. Authentication happens upstream.
"""

from fastapi import APIRouter, Depends, Query

from common.db.context import readonly
from packages.billing.models.domain.billing_event import BillingEvent
from packages.billing.models.domain.subscription import SubscriptionDetails
from packages.billing.models.schemas.billing import (
    CancelSubscriptionRequest,
    CancelSubscriptionResponse,
    ChangeTierRequest,
    ChangeTierResponse,
    CreateSubscriptionRequest,
    CreateSubscriptionResponse,
)
from packages.billing.services.billing_sync_service import BillingSyncService
from packages.billing.services.tier_policy import get_price_ref

router = APIRouter()


def get_billing_sync_service() -> BillingSyncService:
    return BillingSyncService()


@router.get(
    "/tenants/{tenant_id}/subscription", response_model=SubscriptionDetails
)
@readonly
async def get_subscription(
    tenant_id: int,
    billing: BillingSyncService = Depends(get_billing_sync_service),
):
    """Tier, Stripe status and stored usage for the tenant."""
    return await billing.get_subscription_details(tenant_id)


@router.post(
    "/tenants/{tenant_id}/subscription",
    response_model=CreateSubscriptionResponse,
    status_code=201,
)
async def create_subscription(
    tenant_id: int,
    request: CreateSubscriptionRequest,
    billing: BillingSyncService = Depends(get_billing_sync_service),
):
    """
    Start a subscription.

    The response carries the client secret for confirming the first
    payment. 409 if the tenant already has a live subscription.
    """
    price_ref = request.price_ref or get_price_ref(request.tier)
    result = await billing.create_subscription(tenant_id, price_ref)
    return CreateSubscriptionResponse(**result.model_dump())


@router.patch(
    "/tenants/{tenant_id}/subscription/tier", response_model=ChangeTierResponse
)
async def change_tier(
    tenant_id: int,
    request: ChangeTierRequest,
    billing: BillingSyncService = Depends(get_billing_sync_service),
):
    """Move the subscription to another tier; the proration is invoiced now."""
    subscription_status = await billing.change_tier(tenant_id, request.tier)
    return ChangeTierResponse(
        tenant_id=tenant_id, tier=request.tier, status=subscription_status
    )


@router.post(
    "/tenants/{tenant_id}/subscription/cancel",
    response_model=CancelSubscriptionResponse,
)
async def cancel_subscription(
    tenant_id: int,
    request: CancelSubscriptionRequest,
    billing: BillingSyncService = Depends(get_billing_sync_service),
):
    """Cancel now or at period end. Access continues until period end by default."""
    subscription_status = await billing.cancel_subscription(
        tenant_id, immediate=request.immediate
    )
    return CancelSubscriptionResponse(
        tenant_id=tenant_id, status=subscription_status, immediate=request.immediate
    )


@router.get(
    "/tenants/{tenant_id}/billing-events", response_model=list[BillingEvent]
)
@readonly
async def list_billing_events(
    tenant_id: int,
    limit: int = Query(default=100, ge=1, le=500),
    billing: BillingSyncService = Depends(get_billing_sync_service),
):
    """Stripe events recorded in the ledger, newest first."""
    return await billing.list_billing_events(tenant_id, limit=limit)
