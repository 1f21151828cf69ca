"""Order store factory.

Provides get_order_store() / set_order_store() to swap implementations.
FakeOrderStore is the default for development and testing.
"""

from pickup.store.fake_adapter import FakeOrderStore
from pickup.store.port import OrderStore

_current_store: OrderStore | None = None


def get_order_store() -> OrderStore:
    """Return the current order store. Defaults to FakeOrderStore."""
    global _current_store
    if _current_store is None:
        _current_store = FakeOrderStore()
    return _current_store


def set_order_store(store: OrderStore) -> None:
    """Override the active order store (useful for tests)."""
    global _current_store
    _current_store = store


def reset_order_store() -> None:
    """Reset to the default store."""
    global _current_store
    _current_store = None
