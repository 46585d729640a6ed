from common.core.exceptions import NotFoundError, ValidationError


class TenantNotFoundError(NotFoundError):
    """No tenant with the requested id."""

    pass


class NoActiveSubscriptionError(ValidationError):
    """The operation needs a live Stripe subscription and the tenant has none."""

    pass


class SubscriptionConflictError(ValidationError):
    """The tenant already has a live subscription."""

    pass
