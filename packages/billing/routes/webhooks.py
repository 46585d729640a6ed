"""
Inbound processor webhooks.

No caller authentication: the Stripe signature header is the credential.
"""

from fastapi import APIRouter, Depends, Request

from packages.billing.webhooks.stripe_webhook import handle_stripe_webhook
from packages.metering.engine import MeteringEngine, get_metering_engine

router = APIRouter()


@router.post("/webhooks/stripe")
async def stripe_webhook(
    request: Request, engine: MeteringEngine = Depends(get_metering_engine)
) -> dict[str, str]:
    """
    Apply one Stripe event to the tenant's billing state.

    Answers 200 for processed, duplicate and ignored events so Stripe stops
    redelivering; 400 for bad signatures; 5xx lets Stripe retry.
    """
    return await handle_stripe_webhook(request, engine)
