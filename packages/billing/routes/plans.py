"""
Plans API routes.

Read-only view of the tier table for pricing pages.
"""

from fastapi import APIRouter, Depends

from packages.billing.models.domain.plans import PlansResponse
from packages.billing.services.plans_service import PlansService

router = APIRouter()


def get_plans_service() -> PlansService:
    return PlansService()


@router.get("", response_model=PlansResponse)
async def list_plans(plans_service: PlansService = Depends(get_plans_service)):
    """
    Every tier with its monthly price, storage and minutes quotas, overage
    price per GB and features.

    Prices come from the local tier table; Stripe is not queried.
    """
    return await plans_service.get_all_plans()
