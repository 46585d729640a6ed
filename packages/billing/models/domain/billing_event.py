from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class BillingEvent(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: int
    external_event_id: str
    event_type: str
    amount: int
    currency: Optional[str] = None
    status: str
    payload: dict[str, Any]
    received_at: datetime


class BillingEventCreateModel(BaseModel):
    tenant_id: int
    external_event_id: str
    event_type: str
    amount: int = 0
    currency: Optional[str] = None
    status: str = "unknown"
    payload: dict[str, Any] = Field(default_factory=dict)
