"""
Billing enums - strongly typed enumerations for subscription and billing states.
"""

from enum import Enum


class SubscriptionStatus(str, Enum):
    """
    Subscription status as reported by Stripe.

    ``inactive`` is local only: the tenant has never subscribed.
    """

    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"  # Payment failed, Stripe is retrying
    UNPAID = "unpaid"
    INCOMPLETE = "incomplete"  # Created, first payment not confirmed yet
    INCOMPLETE_EXPIRED = "incomplete_expired"
    CANCELED = "canceled"
    PAUSED = "paused"
    INACTIVE = "inactive"

    def is_live(self) -> bool:
        """Whether Stripe still holds a subscription that can be changed or cancelled."""
        return self not in (
            SubscriptionStatus.CANCELED,
            SubscriptionStatus.INCOMPLETE_EXPIRED,
            SubscriptionStatus.INACTIVE,
        )

    @classmethod
    def from_processor(cls, value: str) -> "SubscriptionStatus":
        try:
            return cls(value)
        except ValueError:
            return cls.INACTIVE


class SubscriptionTier(str, Enum):
    """
    Subscription pricing tiers, lowest first.

    Maps to Stripe price IDs through settings.
    """

    STARTER = "starter"  # free
    GROWTH = "growth"
    PROFESSIONAL = "professional"
    ENTERPRISE = "enterprise"
    ENTERPRISE_PLUS = "enterprise_plus"


class IngestOutcome(str, Enum):
    """What webhook ingestion did with an event."""

    PROCESSED = "processed"
    DUPLICATE = "duplicate"  # already in the ledger
    IGNORED = "ignored"  # no tenant could be resolved


class UsageKind(str, Enum):
    STORAGE = "storage"
    MINUTES = "minutes"
