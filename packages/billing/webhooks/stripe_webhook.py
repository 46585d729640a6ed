"""
Stripe webhook handler.

Verifies the signature, validates the payload into a typed event and hands
it to the metering engine. Any processing failure answers 5xx so Stripe
redelivers; redelivery is safe because ingestion is idempotent.
"""

import json

import stripe
from fastapi import Request, HTTPException, status
from pydantic import ValidationError

from common.core.config import settings
from common.core.otel_axiom_exporter import get_logger
from packages.billing.models.domain.stripe_webhooks import parse_webhook_event
from packages.metering.engine import MeteringEngine

logger = get_logger(__name__)


async def handle_stripe_webhook(
    request: Request, engine: MeteringEngine
) -> dict[str, str]:
    payload_bytes = await request.body()
    sig_header = request.headers.get("stripe-signature")

    if not sig_header:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing stripe-signature header",
        )

    try:
        stripe.Webhook.construct_event(
            payload_bytes, sig_header, settings.stripe_webhook_secret
        )
    except stripe.SignatureVerificationError as e:
        logger.error(f"Stripe webhook signature verification failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature"
        )
    except ValueError as e:
        logger.error(f"Stripe webhook body is not valid JSON: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payload"
        )

    # Validate the verified raw body rather than the SDK object
    try:
        event = parse_webhook_event(json.loads(payload_bytes))
    except ValidationError as e:
        logger.error(
            "Invalid Stripe webhook payload", extra={"validation_errors": e.errors()}
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook payload"
        )

    logger.info(
        f"Received Stripe webhook: {event.type}",
        extra={
            "event_id": event.id,
            "event_type": event.type,
            "livemode": event.livemode,
        },
    )

    outcome = await engine.ingest_webhook_event(event)
    return {"status": "success", "outcome": outcome.value}
