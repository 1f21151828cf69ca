"""In-memory order store for development and testing.

Keeps every table in plain dicts keyed by record id, so repeating a write
with the same arguments leaves the same end state. Writes can be configured
to fail a number of times first, which exercises the host's retry policy.
"""

from dataclasses import replace

from pickup.errors import NotFoundError
from pickup.store.port import (
    CatalogItemData,
    CookItem,
    LogEntry,
    OrderRecord,
    OrderStore,
    PointData,
    RegisterEntry,
    UserData,
)


class TransientStoreError(ConnectionError):
    """Simulated connectivity failure."""


class FakeOrderStore(OrderStore):
    """Configurable in-memory order store."""

    def __init__(self) -> None:
        self.users: dict[str, UserData] = {}
        self.catalog: dict[str, CatalogItemData] = {}
        self.points: dict[str, PointData] = {}
        self.orders: dict[str, OrderRecord] = {}
        self.logs: dict[str, LogEntry] = {}
        self.cook_items: dict[str, CookItem] = {}
        self.register_entries: dict[str, RegisterEntry] = {}
        self.calls: list[dict] = []
        self._failures: dict[str, int] = {}

    # -------------------------------------------------------------------
    # Seeding and configuration
    # -------------------------------------------------------------------
    def add_user(self, user_id: str, name: str) -> UserData:
        self.users[user_id] = UserData(id=user_id, name=name)
        return self.users[user_id]

    def add_catalog_item(self, item_id: str, title: str, price: float) -> CatalogItemData:
        self.catalog[item_id] = CatalogItemData(id=item_id, title=title, price=price)
        return self.catalog[item_id]

    def add_point(self, point_id: str, address: str, kitchen_id: str, register_id: str) -> PointData:
        self.points[point_id] = PointData(id=point_id, address=address, kitchen_id=kitchen_id, register_id=register_id)
        return self.points[point_id]

    def fail_next(self, method: str, times: int = 1) -> None:
        """Make the next ``times`` calls to ``method`` raise TransientStoreError."""
        self._failures[method] = times

    def _record(self, method: str, **kwargs) -> None:
        self.calls.append({"method": method, **kwargs})
        remaining = self._failures.get(method, 0)
        if remaining:
            self._failures[method] = remaining - 1
            raise TransientStoreError(f"{method} is temporarily unavailable")

    def calls_to(self, method: str) -> list[dict]:
        return [call for call in self.calls if call["method"] == method]

    # -------------------------------------------------------------------
    # Reference data
    # -------------------------------------------------------------------
    def fetch_user(self, user_id: str) -> UserData:
        self._record("fetch_user", user_id=user_id)
        if user_id not in self.users:
            raise NotFoundError("User", user_id)
        return self.users[user_id]

    def fetch_items(self, item_ids: list[str]) -> list[CatalogItemData]:
        self._record("fetch_items", item_ids=list(item_ids))
        return [self.catalog[item_id] for item_id in item_ids if item_id in self.catalog]

    def fetch_point(self, point_id: str) -> PointData:
        self._record("fetch_point", point_id=point_id)
        if point_id not in self.points:
            raise NotFoundError("Point", point_id)
        return self.points[point_id]

    # -------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------
    def create_order(self, order: OrderRecord) -> None:
        self._record("create_order", order_id=order.id)
        self.orders[order.id] = order

    def update_order_status(self, order_id: str, status: str) -> None:
        self._record("update_order_status", order_id=order_id, status=status)
        if order_id in self.orders:
            self.orders[order_id] = replace(self.orders[order_id], status=status)

    def append_log(self, entry: LogEntry) -> None:
        self._record("append_log", log_id=entry.id, kind=entry.kind)
        self.logs[entry.id] = entry

    def logs_for(self, order_id: str) -> list[LogEntry]:
        return [entry for entry in self.logs.values() if entry.order_id == order_id]

    # -------------------------------------------------------------------
    # Kitchen cook queue
    # -------------------------------------------------------------------
    def add_cook_items(self, items: list[CookItem]) -> None:
        self._record("add_cook_items", item_ids=[item.id for item in items])
        for item in items:
            self.cook_items[item.id] = item

    def remove_cook_item(self, order_item_id: str) -> None:
        self._record("remove_cook_item", order_item_id=order_item_id)
        self.cook_items.pop(order_item_id, None)

    def list_cook_items(self, kitchen_id: str) -> list[CookItem]:
        return [item for item in self.cook_items.values() if item.kitchen_id == kitchen_id]

    # -------------------------------------------------------------------
    # Register pending orders
    # -------------------------------------------------------------------
    def add_register_entry(self, entry: RegisterEntry) -> None:
        self._record("add_register_entry", order_id=entry.order_id)
        self.register_entries[entry.id] = entry

    def update_register_readiness(self, order_id: str, readiness_percent: int) -> None:
        self._record("update_register_readiness", order_id=order_id, readiness_percent=readiness_percent)
        if order_id in self.register_entries:
            self.register_entries[order_id] = replace(
                self.register_entries[order_id], readiness_percent=readiness_percent
            )

    def update_register_status(self, order_id: str, status: str) -> None:
        self._record("update_register_status", order_id=order_id, status=status)
        if order_id in self.register_entries:
            self.register_entries[order_id] = replace(self.register_entries[order_id], status=status)

    def remove_register_entry(self, order_id: str) -> None:
        self._record("remove_register_entry", order_id=order_id)
        self.register_entries.pop(order_id, None)

    def list_register_entries(self, register_id: str) -> list[RegisterEntry]:
        return [entry for entry in self.register_entries.values() if entry.register_id == register_id]

    def reset(self) -> None:
        """Clear all tables and recorded calls (useful between tests)."""
        self.__init__()
