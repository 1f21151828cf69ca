"""Command handler: turns client commands into saga starts and signals."""

import uuid

import structlog

from pickup.host.execution import Execution
from pickup.host.host import DurableHost
from pickup.order.commands import FireDueTimers, PlaceOrder, ReceiveOrder, RecordItemCooked, RecordPaymentEvent
from pickup.order.signals import CookingSignal, PaymentSignal, ReceiveSignal, SignalName
from pickup.saga.workflow import SAGA_NAME, execution_id_for
from pickup.utils.logging import add_context, clear_context

logger = structlog.get_logger(__name__)


class OrderCommandHandler:
    def __init__(self, host: DurableHost) -> None:
        self.host = host
        self._handlers = {
            PlaceOrder: self.place_order,
            RecordPaymentEvent: self.record_payment_event,
            RecordItemCooked: self.record_item_cooked,
            ReceiveOrder: self.receive_order,
            FireDueTimers: self.fire_due_timers,
        }

    def handle(self, command):
        try:
            handler = self._handlers[type(command)]
        except KeyError:
            raise TypeError(f"No handler for {type(command).__name__}") from None
        return handler(command)

    def place_order(self, command: PlaceOrder) -> str:
        """Start the fulfillment saga and return the new order's id."""
        order_id = command.order_id or str(uuid.uuid4())
        add_context(order_id=order_id)
        try:
            self.host.start(
                execution_id_for(order_id),
                SAGA_NAME,
                {
                    "order_id": order_id,
                    "user_id": command.user_id,
                    "point_id": command.point_id,
                    "items": [line.model_dump() for line in command.items],
                },
            )
            logger.info("order_placed", user_id=command.user_id, point_id=command.point_id)
        finally:
            clear_context()
        return order_id

    def record_payment_event(self, command: RecordPaymentEvent) -> Execution:
        signal = PaymentSignal(status=command.status, reason=command.reason)
        return self._signal(command.order_id, SignalName.PAYMENT, signal.model_dump(mode="json"))

    def record_item_cooked(self, command: RecordItemCooked) -> Execution:
        signal = CookingSignal(order_item_id=command.order_item_id)
        return self._signal(command.order_id, SignalName.COOKING, signal.model_dump(mode="json"))

    def receive_order(self, command: ReceiveOrder) -> Execution:
        signal = ReceiveSignal(pin_code=command.pin_code)
        return self._signal(command.order_id, SignalName.RECEIVE, signal.model_dump(mode="json"))

    def fire_due_timers(self, command: FireDueTimers) -> list[str]:
        return self.host.fire_due_timers(command.as_of)

    def _signal(self, order_id: str, name: SignalName, payload: dict) -> Execution:
        add_context(order_id=order_id)
        try:
            return self.host.signal(execution_id_for(order_id), name.value, payload)
        finally:
            clear_context()
