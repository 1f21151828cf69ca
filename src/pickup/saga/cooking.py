"""Cooking stages: hand the lines to the kitchen, then track them until all are ready."""

from pickup.host.context import SagaContext
from pickup.notifications.port import Audience, NotificationEvent
from pickup.order.order import Order, OrderStatus, RegisterStatus
from pickup.order.signals import CookingSignal, SignalName
from pickup.saga import activities
from pickup.saga.documents import cook_items, register_entry
from pickup.saga.inbox import parse_signal
from pickup.saga.publish import notify, publish_status


def launch_cooking(ctx: SagaContext, order: Order) -> None:
    kitchen_id = order.point.kitchen_id
    register_id = order.point.register_id

    ctx.execute_activity(activities.add_cook_items, cook_items(order))
    notify(ctx, Audience.KITCHEN, kitchen_id, NotificationEvent.ITEM_LIST_UPDATED)

    ctx.execute_activity(activities.add_register_entry, register_entry(order))
    notify(ctx, Audience.REGISTER, register_id, NotificationEvent.ORDER_LIST_UPDATED)

    order.start_cooking()
    publish_status(ctx, order)


def await_cooking(ctx: SagaContext, order: Order) -> None:
    kitchen_id = order.point.kitchen_id
    register_id = order.point.register_id

    while order.status is OrderStatus.COOKING:
        signal = parse_signal(ctx, CookingSignal, ctx.wait_signal(SignalName.COOKING.value))
        if signal is None:
            continue

        item = order.mark_item_cooked(signal.order_item_id)
        if item is None:
            ctx.logger.debug("cooking_signal_ignored", order_id=order.id, order_item_id=signal.order_item_id)
            continue

        readiness = order.readiness_percent
        ctx.logger.info("item_cooked", order_id=order.id, order_item_id=item.id, readiness_percent=readiness)

        ctx.execute_activity(activities.remove_cook_item, item.id)
        notify(ctx, Audience.KITCHEN, kitchen_id, NotificationEvent.ITEM_LIST_UPDATED)

        ctx.execute_activity(activities.update_register_readiness, order.id, readiness)
        if readiness == 100:
            ctx.execute_activity(activities.update_register_status, order.id, RegisterStatus.READY.value)
        notify(ctx, Audience.REGISTER, register_id, NotificationEvent.ORDER_LIST_UPDATED)

        if readiness == 100:
            order.mark_ready()
            publish_status(ctx, order)
