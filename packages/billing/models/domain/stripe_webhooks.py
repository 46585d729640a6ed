"""
Domain models for Stripe webhook payloads.

Events are parsed into a tagged union keyed by ``type``. The four event
types that change tenant state get strict models; everything else is kept
as an UnhandledWebhookEvent so it can still be written to the ledger.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    TypeAdapter,
)


class StripeWebhookType(str, Enum):
    """Stripe webhook event types that change tenant state."""

    INVOICE_PAYMENT_SUCCEEDED = "invoice.payment_succeeded"
    INVOICE_PAYMENT_FAILED = "invoice.payment_failed"
    SUBSCRIPTION_UPDATED = "customer.subscription.updated"
    SUBSCRIPTION_DELETED = "customer.subscription.deleted"


HANDLED_EVENT_TYPES = frozenset(
    {
        StripeWebhookType.INVOICE_PAYMENT_SUCCEEDED,
        StripeWebhookType.INVOICE_PAYMENT_FAILED,
        StripeWebhookType.SUBSCRIPTION_UPDATED,
        StripeWebhookType.SUBSCRIPTION_DELETED,
    }
)


class StripeMetadata(BaseModel):
    """Stripe metadata (we store tenant_id here; older objects used tenantId)."""

    model_config = ConfigDict(extra="allow")

    tenant_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("tenant_id", "tenantId")
    )


class StripeSubscriptionPrice(BaseModel):
    id: str


class StripeSubscriptionItem(BaseModel):
    id: Optional[str] = None
    price: Optional[StripeSubscriptionPrice] = None
    current_period_start: Optional[int] = None
    current_period_end: Optional[int] = None


class StripeSubscriptionItems(BaseModel):
    data: list[StripeSubscriptionItem] = Field(default_factory=list)


class StripeSubscriptionData(BaseModel):
    """Stripe subscription object."""

    id: str
    customer: Optional[str] = None
    status: str
    cancel_at_period_end: bool = False
    # Top-level on older API versions, per item on newer ones
    current_period_start: Optional[int] = None
    current_period_end: Optional[int] = None
    items: StripeSubscriptionItems = Field(default_factory=StripeSubscriptionItems)
    metadata: StripeMetadata = Field(default_factory=StripeMetadata)

    def _first_item(self) -> Optional[StripeSubscriptionItem]:
        return self.items.data[0] if self.items.data else None

    @property
    def period_start(self) -> Optional[int]:
        if self.current_period_start is not None:
            return self.current_period_start
        item = self._first_item()
        return item.current_period_start if item else None

    @property
    def period_end(self) -> Optional[int]:
        if self.current_period_end is not None:
            return self.current_period_end
        item = self._first_item()
        return item.current_period_end if item else None

    @property
    def price_ref(self) -> Optional[str]:
        item = self._first_item()
        return item.price.id if item and item.price else None


class StripeSubscriptionDetails(BaseModel):
    subscription: Optional[str] = None
    metadata: StripeMetadata = Field(default_factory=StripeMetadata)


class StripeInvoiceParent(BaseModel):
    subscription_details: Optional[StripeSubscriptionDetails] = None


class StripeInvoiceData(BaseModel):
    """Stripe invoice object."""

    id: str
    customer: Optional[str] = None
    # Moved under parent.subscription_details on newer API versions
    subscription: Optional[str] = None
    status: Optional[str] = None
    amount_paid: int = 0
    amount_due: int = 0
    currency: Optional[str] = None
    metadata: StripeMetadata = Field(default_factory=StripeMetadata)
    subscription_details: Optional[StripeSubscriptionDetails] = None
    parent: Optional[StripeInvoiceParent] = None

    def _details(self) -> Optional[StripeSubscriptionDetails]:
        if self.parent and self.parent.subscription_details:
            return self.parent.subscription_details
        return self.subscription_details

    @property
    def subscription_id(self) -> Optional[str]:
        if self.subscription:
            return self.subscription
        details = self._details()
        return details.subscription if details else None

    @property
    def tenant_ref(self) -> Optional[str]:
        if self.metadata.tenant_id:
            return self.metadata.tenant_id
        details = self._details()
        return details.metadata.tenant_id if details else None


class InvoiceEventData(BaseModel):
    object: StripeInvoiceData


class SubscriptionEventData(BaseModel):
    object: StripeSubscriptionData


class RawEventData(BaseModel):
    object: dict[str, Any] = Field(default_factory=dict)


class _StripeEventBase(BaseModel):
    id: str
    created: int
    livemode: bool = False

    @property
    def created_at(self) -> datetime:
        return datetime.fromtimestamp(self.created, tz=timezone.utc)

    def raw_object(self) -> dict[str, Any]:
        return self.data.object.model_dump(mode="json", exclude_none=True)


class _InvoiceEvent(_StripeEventBase):
    data: InvoiceEventData

    @property
    def tenant_ref(self) -> Optional[str]:
        return self.data.object.tenant_ref

    @property
    def subscription_id(self) -> Optional[str]:
        return self.data.object.subscription_id

    @property
    def amount(self) -> int:
        return self.data.object.amount_paid

    @property
    def currency(self) -> Optional[str]:
        return self.data.object.currency

    @property
    def status(self) -> Optional[str]:
        return self.data.object.status


class _SubscriptionEvent(_StripeEventBase):
    data: SubscriptionEventData

    @property
    def tenant_ref(self) -> Optional[str]:
        return self.data.object.metadata.tenant_id

    @property
    def subscription_id(self) -> Optional[str]:
        return self.data.object.id

    @property
    def amount(self) -> int:
        return 0

    @property
    def currency(self) -> Optional[str]:
        return None

    @property
    def status(self) -> Optional[str]:
        return self.data.object.status


class InvoicePaymentSucceededEvent(_InvoiceEvent):
    type: Literal["invoice.payment_succeeded"]


class InvoicePaymentFailedEvent(_InvoiceEvent):
    type: Literal["invoice.payment_failed"]


class SubscriptionUpdatedEvent(_SubscriptionEvent):
    type: Literal["customer.subscription.updated"]


class SubscriptionDeletedEvent(_SubscriptionEvent):
    type: Literal["customer.subscription.deleted"]


class UnhandledWebhookEvent(_StripeEventBase):
    """Any other event type. Recorded in the ledger, no tenant change."""

    type: str
    data: RawEventData = Field(default_factory=RawEventData)

    def _metadata(self) -> StripeMetadata:
        return StripeMetadata.model_validate(self.data.object.get("metadata") or {})

    @property
    def tenant_ref(self) -> Optional[str]:
        return self._metadata().tenant_id

    @property
    def subscription_id(self) -> Optional[str]:
        obj = self.data.object
        if obj.get("object") == "subscription":
            return obj.get("id")
        subscription = obj.get("subscription")
        return subscription if isinstance(subscription, str) else None

    @property
    def amount(self) -> int:
        value = self.data.object.get("amount_paid", 0)
        return value if isinstance(value, int) else 0

    @property
    def currency(self) -> Optional[str]:
        return self.data.object.get("currency")

    @property
    def status(self) -> Optional[str]:
        value = self.data.object.get("status")
        return value if isinstance(value, str) else None

    def raw_object(self) -> dict[str, Any]:
        return self.data.object


def _event_tag(value: Any) -> str:
    event_type = (
        value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
    )
    return event_type if event_type in HANDLED_EVENT_TYPES else "unhandled"


StripeWebhookEvent = Annotated[
    Union[
        Annotated[InvoicePaymentSucceededEvent, Tag("invoice.payment_succeeded")],
        Annotated[InvoicePaymentFailedEvent, Tag("invoice.payment_failed")],
        Annotated[SubscriptionUpdatedEvent, Tag("customer.subscription.updated")],
        Annotated[SubscriptionDeletedEvent, Tag("customer.subscription.deleted")],
        Annotated[UnhandledWebhookEvent, Tag("unhandled")],
    ],
    Discriminator(_event_tag),
]

_webhook_event_adapter: TypeAdapter[StripeWebhookEvent] = TypeAdapter(
    StripeWebhookEvent
)


def parse_webhook_event(payload: dict[str, Any]) -> StripeWebhookEvent:
    """Validate a raw Stripe event. Raises pydantic.ValidationError on bad shapes."""
    return _webhook_event_adapter.validate_python(payload)
