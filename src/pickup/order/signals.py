"""Signals delivered into a running order saga.

Signals are external events: the payment gateway reports an outcome, the
kitchen reports a cooked line, the register relays the pickup code typed by
the customer. Delivery may repeat; the saga tolerates duplicates.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from pickup.order.order import PIN_CODE_PATTERN


class SignalName(Enum):
    PAYMENT = "payment_signal"
    COOKING = "cooking_signal"
    RECEIVE = "receive_signal"


class PaymentOutcome(Enum):
    SUCCESSFUL = "successful"
    UNSUCCESSFUL = "unsuccessful"
    CANCELED = "canceled"


class PaymentSignal(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: PaymentOutcome
    reason: str | None = None


class CookingSignal(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_item_id: str = Field(min_length=1)


class ReceiveSignal(BaseModel):
    model_config = ConfigDict(frozen=True)

    pin_code: str = Field(pattern=PIN_CODE_PATTERN.pattern)
