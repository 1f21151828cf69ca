"""The order fulfillment saga.

    prepare → await payment → launch cooking → await cooking → await pickup → clean up

The saga ends early when payment is canceled or times out. It runs one
instance per order, under the execution id ``order:<order id>``.
"""

from pydantic import ValidationError

from pickup.errors import InvalidOrderError
from pickup.host.context import SagaContext
from pickup.host.registry import register_saga
from pickup.order.order import OrderStatus
from pickup.saga.cooking import await_cooking, launch_cooking
from pickup.saga.handoff import await_pickup, clean_up
from pickup.saga.payment import await_payment
from pickup.saga.preparation import OrderInitialData, prepare_order

SAGA_NAME = "order_fulfillment"


def execution_id_for(order_id: str) -> str:
    return f"order:{order_id}"


@register_saga(SAGA_NAME)
def fulfill_order(ctx: SagaContext, saga_input: dict) -> dict:
    try:
        initial = OrderInitialData.model_validate(saga_input)
    except ValidationError as exc:
        raise InvalidOrderError(f"Malformed order data: {exc.error_count()} error(s)") from exc

    order = prepare_order(ctx, initial)

    await_payment(ctx, order)
    if order.status is not OrderStatus.PAID:
        return {"order_id": order.id, "status": order.status.value}

    launch_cooking(ctx, order)
    await_cooking(ctx, order)

    await_pickup(ctx, order)
    clean_up(ctx, order)

    ctx.logger.info("order_fulfilled", order_id=order.id)
    return {"order_id": order.id, "status": order.status.value}
