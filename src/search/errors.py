from __future__ import annotations


class SearchError(Exception):
    """Base class for errors raised by the search layer and its collaborators."""


class EngineError(SearchError):
    """The search engine call failed (transport, query or server error)."""


class ItemLookupError(SearchError):
    """The item-lookup collaborator could not materialize an item."""

    def __init__(self, item_id: str, message: str | None = None):
        self.item_id = item_id
        super().__init__(message or f"Item lookup failed for id={item_id}")


class ItemNotFoundError(ItemLookupError):
    def __init__(self, item_id: str):
        super().__init__(item_id, f"Item not found: id={item_id}")
