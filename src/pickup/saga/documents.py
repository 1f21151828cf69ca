"""Copies of the order shaped for each collaborator.

The saga owns the Order; the store, the search projection and the two
screens only ever receive plain dicts built here.
"""

from pickup.order.order import Order, RegisterStatus


def order_record(order: Order) -> dict:
    return {
        "id": order.id,
        "created_at": order.created_at.isoformat(),
        "status": order.status.value,
        "total_price": order.total_price,
        "pin_code": order.pin_code,
        "user_id": order.user.id,
        "point_id": order.point.id,
        "items": [
            {
                "id": item.id,
                "title": item.title,
                "price": item.price,
                "item_id": item.item_id,
                "quantity": item.quantity,
                "total_price": item.total_price,
            }
            for item in order.items
        ],
    }


def _log_items(order: Order) -> list[dict]:
    return [{"id": log.id, "text": log.text, "order_id": order.id} for log in order.logs]


def search_document(order: Order) -> dict:
    """Full document indexed once, when the order is created."""
    return {
        "id": order.id,
        "created_at": order.created_at.isoformat(),
        "status": order.status.value,
        "total_price": order.total_price,
        "pin_code": order.pin_code,
        "user": {"id": order.user.id, "name": order.user.name},
        "point": {
            "id": order.point.id,
            "address": order.point.address,
            "kitchen_id": order.point.kitchen_id,
            "register_id": order.point.register_id,
        },
        "items": [
            {
                "id": item.id,
                "title": item.title,
                "price": item.price,
                "item_id": item.item_id,
                "quantity": item.quantity,
                "total_price": item.total_price,
                "order_id": order.id,
            }
            for item in order.items
        ],
        "log_items": _log_items(order),
    }


def status_patch(order: Order) -> dict:
    return {"status": order.status.value}


def logs_patch(order: Order) -> dict:
    """The whole log list; a partial update replaces lists wholesale."""
    return {"log_items": _log_items(order)}


def log_entry(order: Order, log_id: str, kind: str) -> dict:
    log = next(log for log in order.logs if log.id == log_id)
    return {"id": log.id, "order_id": order.id, "kind": kind, "text": log.text}


def cook_items(order: Order) -> list[dict]:
    return [
        {
            "id": item.id,
            "kitchen_id": order.point.kitchen_id,
            "order_id": order.id,
            "title": item.title,
            "quantity": item.quantity,
        }
        for item in order.items
    ]


def register_entry(order: Order) -> dict:
    return {
        "id": order.id,
        "register_id": order.point.register_id,
        "order_id": order.id,
        "user_name": order.user.name,
        "status": RegisterStatus.COOKING.value,
        "readiness_percent": 0,
        "check_list": order.check_list(),
    }
