"""Order aggregate owned by a single fulfillment saga.

The Order is built once by the saga's prepare stage and mutated only by the
saga afterwards. The order store and the search index receive copies of it,
never the object itself.

State Machine (7 states):
    WAITING_FOR_PAYMENT → PAID → COOKING → READY → RECEIVED
    WAITING_FOR_PAYMENT → PAYMENT_TIMEOUT | PAYMENT_CANCELED (terminal)
"""

import re
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from pickup.errors import InvalidOrderError, InvalidTransitionError

PIN_CODE_PATTERN = re.compile(r"^[0-9]{4}$")

PAYMENT_LOG_PREFIX = "Payment"
WRONG_PIN_CODE_TEXT = "Wrong pickup code, please try again"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    WAITING_FOR_PAYMENT = "waiting_for_payment"
    PAYMENT_TIMEOUT = "payment_timeout"
    PAID = "paid"
    PAYMENT_CANCELED = "payment_canceled"
    COOKING = "cooking"
    READY = "ready"
    RECEIVED = "received"


class RegisterStatus(Enum):
    COOKING = "cooking"
    READY = "ready"


class LogKind(Enum):
    PAYMENT_FAILURE = "payment_failure"
    WRONG_PIN_CODE = "wrong_pin_code"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.WAITING_FOR_PAYMENT: {
        OrderStatus.PAID,
        OrderStatus.PAYMENT_CANCELED,
        OrderStatus.PAYMENT_TIMEOUT,
    },
    OrderStatus.PAID: {OrderStatus.COOKING},
    OrderStatus.COOKING: {OrderStatus.READY},
    OrderStatus.READY: {OrderStatus.RECEIVED},
    OrderStatus.PAYMENT_TIMEOUT: set(),  # Terminal
    OrderStatus.PAYMENT_CANCELED: set(),  # Terminal
    OrderStatus.RECEIVED: set(),  # Terminal
}

TERMINAL_STATUSES = frozenset(status for status, targets in _VALID_TRANSITIONS.items() if not targets)


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
class User(BaseModel):
    """Snapshot of the customer taken when the order is prepared."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str


class Point(BaseModel):
    """Snapshot of the point of sale: its address and the two queues it feeds.

    ``kitchen_id`` addresses the kitchen's cook queue and ``register_id`` the
    register's pending-order list.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    address: str
    kitchen_id: str
    register_id: str


class LogItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    text: str


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
class OrderItem(BaseModel):
    """A line of the order.

    ``id`` is generated by the saga and differs from ``item_id``, the catalog
    item the line was priced from. ``ready`` flips to true once the kitchen
    reports the line cooked and never flips back.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str
    title: str
    price: float = Field(ge=0.0)
    item_id: str
    quantity: float = Field(gt=0.0)
    total_price: float = Field(ge=0.0)
    ready: bool = False

    @classmethod
    def create(cls, line_id: str, title: str, price: float, item_id: str, quantity: float) -> "OrderItem":
        return cls(
            id=line_id,
            title=title,
            price=price,
            item_id=item_id,
            quantity=quantity,
            total_price=price * quantity,
        )


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
class Order(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    id: str
    created_at: datetime
    status: OrderStatus = OrderStatus.WAITING_FOR_PAYMENT
    total_price: float = Field(ge=0.0)
    pin_code: str = Field(pattern=PIN_CODE_PATTERN.pattern)
    user: User
    point: Point
    items: list[OrderItem] = Field(default_factory=list)
    logs: list[LogItem] = Field(default_factory=list)

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def prepare(
        cls,
        order_id: str,
        created_at: datetime,
        user: User,
        point: Point,
        items: list[OrderItem],
        pin_code: str,
    ) -> "Order":
        """Assemble a payable order from resolved reference data.

        The total is computed here, once, and never recomputed.
        """
        if not items:
            raise InvalidOrderError("An order needs at least one item")

        return cls(
            id=order_id,
            created_at=created_at,
            status=OrderStatus.WAITING_FOR_PAYMENT,
            total_price=sum(item.total_price for item in items),
            pin_code=pin_code,
            user=user,
            point=point,
            items=items,
        )

    # -------------------------------------------------------------------
    # State transition helpers
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status: OrderStatus) -> None:
        if target_status not in _VALID_TRANSITIONS[self.status]:
            raise InvalidTransitionError(f"Cannot transition from {self.status.value} to {target_status.value}")

    def _assert_status(self, expected: OrderStatus, action: str) -> None:
        if self.status is not expected:
            raise InvalidTransitionError(f"Cannot {action} while order is {self.status.value}")

    def _transition(self, target_status: OrderStatus) -> None:
        self._assert_can_transition(target_status)
        self.status = target_status

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def mark_paid(self) -> None:
        self._transition(OrderStatus.PAID)

    def cancel_payment(self) -> None:
        self._transition(OrderStatus.PAYMENT_CANCELED)

    def expire_payment(self) -> None:
        self._transition(OrderStatus.PAYMENT_TIMEOUT)

    def record_payment_failure(self, log_id: str, reason: str | None) -> LogItem:
        """Log an unsuccessful payment attempt. The status does not change."""
        self._assert_status(OrderStatus.WAITING_FOR_PAYMENT, "record a payment failure")
        text = f"{PAYMENT_LOG_PREFIX}: {reason}" if reason else f"{PAYMENT_LOG_PREFIX}: unsuccessful"
        return self._append_log(log_id, text)

    # -------------------------------------------------------------------
    # Cooking
    # -------------------------------------------------------------------
    def start_cooking(self) -> None:
        self._transition(OrderStatus.COOKING)

    def mark_item_cooked(self, order_item_id: str) -> OrderItem | None:
        """Flag a line as ready.

        Returns the line when this call changed it; unknown lines and lines
        that are already ready return None.
        """
        self._assert_status(OrderStatus.COOKING, "mark an item cooked")
        item = next((i for i in self.items if i.id == order_item_id), None)
        if item is None or item.ready:
            return None
        item.ready = True
        return item

    @property
    def readiness_percent(self) -> int:
        ready = sum(1 for item in self.items if item.ready)
        not_ready = len(self.items) - ready
        if not_ready == 0:
            return 100
        return ready * 100 // (ready + not_ready)

    def mark_ready(self) -> None:
        if self.readiness_percent != 100:
            raise InvalidTransitionError("Cannot mark order ready before every item is cooked")
        self._transition(OrderStatus.READY)

    def check_list(self) -> str:
        """Human-readable line summary shown on the register."""
        return ", ".join(f"{item.title} × {item.quantity:g}" for item in self.items)

    # -------------------------------------------------------------------
    # Pickup
    # -------------------------------------------------------------------
    def pin_matches(self, pin_code: str) -> bool:
        return pin_code == self.pin_code

    def record_wrong_pin_code(self, log_id: str) -> LogItem:
        self._assert_status(OrderStatus.READY, "record a wrong pickup code")
        return self._append_log(log_id, WRONG_PIN_CODE_TEXT)

    def mark_received(self) -> None:
        self._transition(OrderStatus.RECEIVED)

    # -------------------------------------------------------------------
    # Audit log
    # -------------------------------------------------------------------
    def _append_log(self, log_id: str, text: str) -> LogItem:
        log_item = LogItem(id=log_id, text=text)
        # Reassign so validate_assignment sees the new list
        self.logs = [*self.logs, log_item]
        return log_item
