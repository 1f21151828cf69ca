"""Payment stage: wait for the gateway's verdict or the payment deadline.

One timer covers every attempt; unsuccessful attempts are logged and the
wait continues against the same deadline.
"""

from datetime import timedelta

from pickup.host.context import SagaContext
from pickup.host.selector import Selector
from pickup.notifications.port import Audience, NotificationEvent
from pickup.order.order import LogKind, Order, OrderStatus
from pickup.order.signals import PaymentOutcome, PaymentSignal, SignalName
from pickup.saga import activities
from pickup.saga.documents import log_entry, logs_patch
from pickup.saga.inbox import parse_signal
from pickup.saga.publish import notify, publish_status

PAYMENT_TIMEOUT = timedelta(hours=1)
PAYMENT_TIMER = "payment_timeout"


def await_payment(ctx: SagaContext, order: Order) -> None:
    timer = ctx.start_timer(PAYMENT_TIMER, PAYMENT_TIMEOUT)
    selector = Selector().on_signal(SignalName.PAYMENT.value).on_timer(timer)

    timed_out = False
    while order.status is OrderStatus.WAITING_FOR_PAYMENT:
        selected = ctx.select(selector)

        if selected.is_timer:
            timed_out = True
            order.expire_payment()
            break

        signal = parse_signal(ctx, PaymentSignal, selected.payload)
        if signal is None:
            continue

        if signal.status is PaymentOutcome.SUCCESSFUL:
            order.mark_paid()
        elif signal.status is PaymentOutcome.CANCELED:
            order.cancel_payment()
        else:
            _record_failed_attempt(ctx, order, signal.reason)

    if not timed_out:
        ctx.cancel_timer(timer)

    ctx.logger.info("payment_settled", order_id=order.id, status=order.status.value)
    publish_status(ctx, order)


def _record_failed_attempt(ctx: SagaContext, order: Order, reason: str | None) -> None:
    log = order.record_payment_failure(ctx.new_id(), reason)

    ctx.execute_activity(activities.append_log, log_entry(order, log.id, LogKind.PAYMENT_FAILURE.value))
    ctx.execute_activity(activities.update_order_document, order.id, logs_patch(order))
    notify(ctx, Audience.USER, order.user.id, NotificationEvent.UNSUCCESSFUL_PAY_ATTEMPT)
