"""Order store port (abstract interface).

Defines the contract the fulfillment saga expects from durable order
persistence: reference data lookups, the order record itself, the kitchen's
cook queue, the register's pending-order list and the audit log.

Every write is called at-least-once by the saga's host. Implementations must
make each call safe to repeat with the same arguments: upserts keyed by the
record id, deletes by exact id, absolute (never incremental) updates.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class UserData:
    id: str
    name: str


@dataclass(frozen=True)
class CatalogItemData:
    id: str
    title: str
    price: float


@dataclass(frozen=True)
class PointData:
    id: str
    address: str
    kitchen_id: str
    register_id: str


@dataclass(frozen=True)
class OrderLineRecord:
    id: str
    title: str
    price: float
    item_id: str
    quantity: float
    total_price: float


@dataclass(frozen=True)
class OrderRecord:
    id: str
    created_at: datetime
    status: str
    total_price: float
    pin_code: str
    user_id: str
    point_id: str
    items: list[OrderLineRecord] = field(default_factory=list)


@dataclass(frozen=True)
class LogEntry:
    id: str
    order_id: str
    kind: str
    text: str


@dataclass(frozen=True)
class CookItem:
    """A line waiting on the kitchen screen. ``id`` is the order line id."""

    id: str
    kitchen_id: str
    order_id: str
    title: str
    quantity: float


@dataclass(frozen=True)
class RegisterEntry:
    """An order on the register screen. ``id`` is the order id."""

    id: str
    register_id: str
    order_id: str
    user_name: str
    status: str
    readiness_percent: int
    check_list: str


class OrderStore(ABC):
    """Abstract order store interface."""

    # Reference data -----------------------------------------------------
    @abstractmethod
    def fetch_user(self, user_id: str) -> UserData:
        """Return the user or raise NotFoundError."""
        ...

    @abstractmethod
    def fetch_items(self, item_ids: list[str]) -> list[CatalogItemData]:
        """Return the catalog items that exist among ``item_ids``."""
        ...

    @abstractmethod
    def fetch_point(self, point_id: str) -> PointData:
        """Return the point or raise NotFoundError."""
        ...

    # Orders -------------------------------------------------------------
    @abstractmethod
    def create_order(self, order: OrderRecord) -> None: ...

    @abstractmethod
    def update_order_status(self, order_id: str, status: str) -> None: ...

    @abstractmethod
    def append_log(self, entry: LogEntry) -> None: ...

    # Kitchen cook queue -------------------------------------------------
    @abstractmethod
    def add_cook_items(self, items: list[CookItem]) -> None: ...

    @abstractmethod
    def remove_cook_item(self, order_item_id: str) -> None: ...

    # Register pending orders ---------------------------------------------
    @abstractmethod
    def add_register_entry(self, entry: RegisterEntry) -> None: ...

    @abstractmethod
    def update_register_readiness(self, order_id: str, readiness_percent: int) -> None: ...

    @abstractmethod
    def update_register_status(self, order_id: str, status: str) -> None: ...

    @abstractmethod
    def remove_register_entry(self, order_id: str) -> None: ...
