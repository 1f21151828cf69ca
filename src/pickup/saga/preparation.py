"""Prepare stage: turn the customer's request into a payable order.

Everything here happens before the order exists anywhere else, so any
failure aborts the saga without leaving a half-created order behind.
"""

from pydantic import BaseModel, Field

from pickup.errors import InvalidOrderError
from pickup.host.context import SagaContext
from pickup.notifications.port import Audience, NotificationEvent
from pickup.order.order import Order, OrderItem, Point, User
from pickup.saga import activities
from pickup.saga.documents import order_record, search_document
from pickup.saga.publish import notify

PIN_CODE_LENGTH = 4


class RequestedItem(BaseModel):
    item_id: str = Field(min_length=1)
    quantity: float = Field(gt=0)


class OrderInitialData(BaseModel):
    order_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    point_id: str = Field(min_length=1)
    items: list[RequestedItem] = Field(min_length=1)

    def quantities(self) -> dict[str, float]:
        """Quantity per catalog item in request order; repeated items are summed."""
        totals: dict[str, float] = {}
        for item in self.items:
            totals[item.item_id] = totals.get(item.item_id, 0.0) + item.quantity
        return totals


def prepare_order(ctx: SagaContext, initial: OrderInitialData) -> Order:
    created_at = ctx.now()

    user = ctx.execute_activity(activities.fetch_user, initial.user_id)

    quantities = initial.quantities()
    catalog = ctx.execute_activity(activities.fetch_items, list(quantities))
    found = {data["id"] for data in catalog}
    missing = [item_id for item_id in quantities if item_id not in found]
    if missing:
        raise InvalidOrderError(f"Unknown catalog items: {', '.join(missing)}")

    lines = [
        OrderItem.create(
            line_id=ctx.new_id(),
            title=data["title"],
            price=data["price"],
            item_id=data["id"],
            quantity=quantities[data["id"]],
        )
        for data in catalog
    ]

    point = ctx.execute_activity(activities.fetch_point, initial.point_id)

    order = Order.prepare(
        order_id=initial.order_id,
        created_at=created_at,
        user=User(**user),
        point=Point(**point),
        items=lines,
        pin_code=ctx.random_digits(PIN_CODE_LENGTH),
    )

    ctx.execute_activity(activities.create_order, order_record(order))
    ctx.execute_activity(activities.index_order_document, order.id, search_document(order))
    notify(ctx, Audience.USER, order.user.id, NotificationEvent.ORDER_LIST_UPDATED)

    ctx.logger.info("order_prepared", order_id=order.id, total_price=order.total_price, lines=len(order.items))
    return order
