"""Hand-off stages: check the pickup code, then clear the order off the register."""

from pickup.host.context import SagaContext
from pickup.notifications.port import Audience, NotificationEvent
from pickup.order.order import LogKind, Order, OrderStatus
from pickup.order.signals import ReceiveSignal, SignalName
from pickup.saga import activities
from pickup.saga.documents import log_entry, logs_patch
from pickup.saga.inbox import parse_signal
from pickup.saga.publish import notify, publish_status


def await_pickup(ctx: SagaContext, order: Order) -> None:
    # No attempt limit
    while order.status is OrderStatus.READY:
        signal = parse_signal(ctx, ReceiveSignal, ctx.wait_signal(SignalName.RECEIVE.value))
        if signal is None:
            continue

        if order.pin_matches(signal.pin_code):
            order.mark_received()
            break

        log = order.record_wrong_pin_code(ctx.new_id())
        ctx.logger.info("wrong_pin_code", order_id=order.id)

        ctx.execute_activity(activities.append_log, log_entry(order, log.id, LogKind.WRONG_PIN_CODE.value))
        ctx.execute_activity(activities.update_order_document, order.id, logs_patch(order))
        notify(ctx, Audience.USER, order.user.id, NotificationEvent.WRONG_PIN_CODE_ATTEMPT)


def clean_up(ctx: SagaContext, order: Order) -> None:
    ctx.execute_activity(activities.remove_register_entry, order.id)
    notify(ctx, Audience.REGISTER, order.point.register_id, NotificationEvent.ORDER_LIST_UPDATED)
    publish_status(ctx, order)
