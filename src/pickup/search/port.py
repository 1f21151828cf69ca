"""Search projection port (abstract interface).

A near-real-time, read-optimised copy of each order used by the customer's
order history. The saga writes the full document once and afterwards only
merges partial documents into it.
"""

from abc import ABC, abstractmethod


class OrderSearch(ABC):
    """Abstract search projection interface."""

    @abstractmethod
    def index_order(self, order_id: str, document: dict) -> None:
        """Create or replace the whole document for ``order_id``."""
        ...

    @abstractmethod
    def update_order(self, order_id: str, partial: dict) -> None:
        """Merge ``partial`` into the existing document for ``order_id``."""
        ...
