from typing import Optional

from common.core.otel_axiom_exporter import get_logger
from packages.billing.providers.payment.interface import PaymentProviderInterface
from packages.billing.providers.payment.stripe_payment import StripePaymentProvider

logger = get_logger(__name__)

# Global instance
_payment_provider: Optional[PaymentProviderInterface] = None


def get_payment_provider() -> PaymentProviderInterface:
    """Process-wide Stripe provider. Configuring it sets the SDK's global key."""
    global _payment_provider

    if _payment_provider is None:
        _payment_provider = StripePaymentProvider()
        logger.info(
            "Initialized Stripe payment provider",
            extra={"timeout_seconds": _payment_provider.timeout_seconds},
        )

    return _payment_provider
