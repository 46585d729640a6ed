"""
API schemas for billing operations.

Request and response models for billing endpoints.
"""

from typing import Optional
from pydantic import BaseModel, Field, model_validator

from packages.billing.models.domain.enums import SubscriptionTier, SubscriptionStatus


# ============================================================================
# Subscription Schemas
# ============================================================================


class CreateSubscriptionRequest(BaseModel):
    """Start a subscription on a Stripe price, given directly or through a tier."""

    price_ref: Optional[str] = Field(default=None, description="Stripe price id")
    tier: Optional[SubscriptionTier] = None

    @model_validator(mode="after")
    def _price_or_tier(self) -> "CreateSubscriptionRequest":
        if not self.price_ref and self.tier is None:
            raise ValueError("Either price_ref or tier is required")
        return self


class CreateSubscriptionResponse(BaseModel):
    subscription_id: str
    status: SubscriptionStatus
    client_secret: Optional[str] = Field(
        default=None, description="Confirms the first payment client-side"
    )


class ChangeTierRequest(BaseModel):
    tier: SubscriptionTier


class ChangeTierResponse(BaseModel):
    tenant_id: int
    tier: SubscriptionTier
    status: SubscriptionStatus


class CancelSubscriptionRequest(BaseModel):
    immediate: bool = Field(
        default=False,
        description="Cancel now instead of at the end of the paid period",
    )


class CancelSubscriptionResponse(BaseModel):
    tenant_id: int
    status: SubscriptionStatus
    immediate: bool
