from fastapi import APIRouter

from api.v1.routes import (
    health,
)
from packages.billing.routes import billing, webhooks, plans
from packages.metering.routes import metering

api_router = APIRouter()

# Health check
api_router.include_router(health.router, prefix="/health", tags=["health"])

# Webhooks (signature verified internally)
api_router.include_router(webhooks.router, tags=["webhooks"])

# Plans (public pricing info)
api_router.include_router(plans.router, prefix="/billing/plans", tags=["billing"])

# Subscription lifecycle per tenant
api_router.include_router(billing.router, prefix="/billing", tags=["billing"])

# Reconciliation triggers and usage
api_router.include_router(metering.router, prefix="/metering", tags=["metering"])
