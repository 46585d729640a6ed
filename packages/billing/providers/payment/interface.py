"""
Interface for payment providers.

Keeps Stripe specifics out of billing sync. Implementations raise
ExternalProcessorError for every failure, timeouts included.
"""

from abc import ABC, abstractmethod
from typing import Optional

from packages.billing.models.domain.subscription import ProcessorSubscription


class PaymentProviderInterface(ABC):
    """Abstract interface for payment providers."""

    @abstractmethod
    async def create_customer(
        self,
        tenant_id: int,
        tenant_name: str,
        email: Optional[str] = None,
    ) -> str:
        """
        Create a customer in the payment provider.

        Returns:
            customer_id: Payment provider customer ID
        """
        pass

    @abstractmethod
    async def create_subscription(
        self, customer_id: str, price_ref: str, tenant_id: int
    ) -> ProcessorSubscription:
        """
        Start a subscription whose first invoice is paid by the client.

        The returned subscription carries the client secret needed to
        confirm that first payment.
        """
        pass

    @abstractmethod
    async def retrieve_subscription(self, subscription_id: str) -> ProcessorSubscription:
        pass

    @abstractmethod
    async def update_subscription_price(
        self, subscription_id: str, price_ref: str
    ) -> ProcessorSubscription:
        """Swap the subscription's price, invoicing the proration immediately."""
        pass

    @abstractmethod
    async def cancel_subscription(self, subscription_id: str) -> ProcessorSubscription:
        """Cancel right away."""
        pass

    @abstractmethod
    async def schedule_cancellation(
        self, subscription_id: str
    ) -> ProcessorSubscription:
        """Cancel when the current period ends."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass
