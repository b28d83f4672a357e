"""Search application layer.

This package turns the two search scenarios used by the API into ranked,
paginated queries against the search index and materializes the hits:
- Search by free-text query
- Related items for an existing item (by id) and/or a title

The search engine and the item store are collaborators passed in by the
caller; see ``src.engine`` and ``src.items`` for the default adapters.
"""

from .config import SearchServiceConfig, load_settings
from .cursor import Cursor, decode_cursor, encode_cursor, next_cursor
from .ranking import SortMode
from .schemas import ContentType, SearchResult, TimeWindow, Viewer
from .service import SearchService

__all__ = [
    "ContentType",
    "Cursor",
    "SearchResult",
    "SearchService",
    "SearchServiceConfig",
    "SortMode",
    "TimeWindow",
    "Viewer",
    "decode_cursor",
    "encode_cursor",
    "load_settings",
    "next_cursor",
]
