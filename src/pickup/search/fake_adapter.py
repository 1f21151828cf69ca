"""In-memory search projection that mimics partial-document merge.

Nested objects are merged key by key; lists and scalars are replaced whole,
which is how a document store applies a partial update.
"""

from copy import deepcopy

from pickup.search.port import OrderSearch


def merge_document(target: dict, partial: dict) -> dict:
    merged = deepcopy(target)
    for key, value in partial.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_document(merged[key], value)
        else:
            merged[key] = deepcopy(value)
    return merged


class FakeOrderSearch(OrderSearch):
    """Search adapter that keeps documents in memory for test assertions."""

    def __init__(self) -> None:
        self.documents: dict[str, dict] = {}
        self.calls: list[dict] = []

    def index_order(self, order_id: str, document: dict) -> None:
        self.calls.append({"method": "index_order", "order_id": order_id})
        self.documents[order_id] = deepcopy(document)

    def update_order(self, order_id: str, partial: dict) -> None:
        self.calls.append({"method": "update_order", "order_id": order_id, "fields": sorted(partial)})
        self.documents[order_id] = merge_document(self.documents.get(order_id, {}), partial)

    def reset(self) -> None:
        self.documents.clear()
        self.calls.clear()
