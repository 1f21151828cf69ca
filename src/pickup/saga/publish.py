"""Publishing helpers shared by the saga stages."""

from pickup.host.context import SagaContext
from pickup.notifications.port import Audience, NotificationEvent
from pickup.order.order import Order
from pickup.saga import activities
from pickup.saga.documents import status_patch


def notify(ctx: SagaContext, audience: Audience, audience_id: str, event: NotificationEvent) -> None:
    ctx.execute_activity(activities.send_notification, audience.value, audience_id, event.value)


def publish_status(ctx: SagaContext, order: Order) -> None:
    """Persist the current status, merge it into the index and tell the customer."""
    ctx.execute_activity(activities.update_order_status, order.id, order.status.value)
    ctx.execute_activity(activities.update_order_document, order.id, status_patch(order))
    notify(ctx, Audience.USER, order.user.id, NotificationEvent.ORDER_LIST_UPDATED)
    ctx.logger.info("order_status_published", order_id=order.id, status=order.status.value)
