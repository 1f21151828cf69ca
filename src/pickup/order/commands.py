"""Client commands: what the customer, the gateway, the kitchen and the register send in."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from pickup.order.order import PIN_CODE_PATTERN
from pickup.order.signals import PaymentOutcome


class _Command(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class OrderLineRequest(_Command):
    item_id: str = Field(min_length=1)
    quantity: float = Field(gt=0)


class PlaceOrder(_Command):
    user_id: str = Field(min_length=1)
    point_id: str = Field(min_length=1)
    items: list[OrderLineRequest] = Field(min_length=1)
    order_id: str | None = None  # generated when omitted


class RecordPaymentEvent(_Command):
    order_id: str = Field(min_length=1)
    status: PaymentOutcome
    reason: str | None = None


class RecordItemCooked(_Command):
    order_id: str = Field(min_length=1)
    order_item_id: str = Field(min_length=1)


class ReceiveOrder(_Command):
    order_id: str = Field(min_length=1)
    pin_code: str = Field(pattern=PIN_CODE_PATTERN.pattern)


class FireDueTimers(_Command):
    as_of: datetime | None = None
