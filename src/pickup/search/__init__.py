"""Search projection factory.

Provides get_search() / set_search() to swap implementations.
FakeOrderSearch is the default for development and testing.
"""

from pickup.search.fake_adapter import FakeOrderSearch
from pickup.search.port import OrderSearch

_current_search: OrderSearch | None = None


def get_search() -> OrderSearch:
    """Return the current search projection. Defaults to FakeOrderSearch."""
    global _current_search
    if _current_search is None:
        _current_search = FakeOrderSearch()
    return _current_search


def set_search(search: OrderSearch) -> None:
    """Override the active search projection (useful for tests)."""
    global _current_search
    _current_search = search


def reset_search() -> None:
    """Reset to the default search projection."""
    global _current_search
    _current_search = None
