"""Activities: the saga's only way to touch the outside world.

Each activity resolves its port from the factory at call time, takes
JSON-serialisable arguments and returns a JSON-serialisable value, so the
host can record the outcome and hand it back on replay. The function name is
what the history records; renaming one breaks replay of running sagas.
"""

from dataclasses import asdict
from datetime import datetime

from pickup.notifications import get_notification_bus
from pickup.notifications.port import Audience, NotificationEvent
from pickup.search import get_search
from pickup.store import get_order_store
from pickup.store.port import CookItem, LogEntry, OrderLineRecord, OrderRecord, RegisterEntry


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------
def fetch_user(user_id: str) -> dict:
    return asdict(get_order_store().fetch_user(user_id))


def fetch_items(item_ids: list[str]) -> list[dict]:
    return [asdict(item) for item in get_order_store().fetch_items(item_ids)]


def fetch_point(point_id: str) -> dict:
    return asdict(get_order_store().fetch_point(point_id))


# ---------------------------------------------------------------------------
# Order record
# ---------------------------------------------------------------------------
def create_order(record: dict) -> None:
    get_order_store().create_order(
        OrderRecord(
            id=record["id"],
            created_at=datetime.fromisoformat(record["created_at"]),
            status=record["status"],
            total_price=record["total_price"],
            pin_code=record["pin_code"],
            user_id=record["user_id"],
            point_id=record["point_id"],
            items=[OrderLineRecord(**line) for line in record["items"]],
        )
    )


def update_order_status(order_id: str, status: str) -> None:
    get_order_store().update_order_status(order_id, status)


def append_log(entry: dict) -> None:
    get_order_store().append_log(LogEntry(**entry))


# ---------------------------------------------------------------------------
# Kitchen and register
# ---------------------------------------------------------------------------
def add_cook_items(items: list[dict]) -> None:
    get_order_store().add_cook_items([CookItem(**item) for item in items])


def remove_cook_item(order_item_id: str) -> None:
    get_order_store().remove_cook_item(order_item_id)


def add_register_entry(entry: dict) -> None:
    get_order_store().add_register_entry(RegisterEntry(**entry))


def update_register_readiness(order_id: str, readiness_percent: int) -> None:
    get_order_store().update_register_readiness(order_id, readiness_percent)


def update_register_status(order_id: str, status: str) -> None:
    get_order_store().update_register_status(order_id, status)


def remove_register_entry(order_id: str) -> None:
    get_order_store().remove_register_entry(order_id)


# ---------------------------------------------------------------------------
# Search projection
# ---------------------------------------------------------------------------
def index_order_document(order_id: str, document: dict) -> None:
    get_search().index_order(order_id, document)


def update_order_document(order_id: str, partial: dict) -> None:
    get_search().update_order(order_id, partial)


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------
def send_notification(audience: str, audience_id: str, event: str) -> None:
    get_notification_bus().send(Audience(audience), audience_id, NotificationEvent(event))
