from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Protocol, Sequence

from src.engine.hits import SearchHit
from src.items.models import Item
from src.utils.text import join_fragments

from .errors import ItemLookupError
from .schemas import Viewer


logger = logging.getLogger(__name__)

MAX_CONCURRENT_LOOKUPS = 10


class ItemLookup(Protocol):
    async def get_item(self, item_id: str, viewer: Optional[Viewer] = None) -> Item: ...


@dataclass
class MaterializedPage:
    items: List[Item] = field(default_factory=list)
    # hits the engine returned; pagination is based on this, not len(items)
    hit_count: int = 0
    dropped: List[str] = field(default_factory=list)


def apply_highlight(item: Item, highlight: Optional[Dict[str, List[str]]]) -> Item:
    """Return a copy of ``item`` carrying the search overlays.

    Falls back to the stored title; ``search_text`` stays empty unless the
    engine highlighted the body.
    """
    highlight = highlight or {}
    titles = highlight.get("title") or []
    return replace(
        item,
        search_title=titles[0] if titles else item.title,
        search_text=join_fragments(highlight.get("text")),
    )


class ResultMaterializer:
    """Resolves engine hits into full item records, preserving hit order.

    At most ``max_concurrency`` lookups are in flight at once and all of them
    are joined before returning. A hit whose lookup fails with ``ItemLookupError``
    is omitted and reported in ``MaterializedPage.dropped``.
    """

    def __init__(self, items: ItemLookup, max_concurrency: int = MAX_CONCURRENT_LOOKUPS):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self.items = items
        self.max_concurrency = max_concurrency

    async def materialize(
        self,
        hits: Sequence[SearchHit],
        viewer: Optional[Viewer] = None,
        *,
        highlight: bool = True,
    ) -> MaterializedPage:
        if not hits:
            return MaterializedPage()

        sem = asyncio.Semaphore(min(self.max_concurrency, len(hits)))

        async def resolve(hit: SearchHit) -> Optional[Item]:
            async with sem:
                try:
                    item = await self.items.get_item(hit.item_id, viewer)
                except ItemLookupError as e:
                    logger.warning("Dropping search hit id=%s: %s", hit.item_id, e)
                    return None
            return apply_highlight(item, hit.highlight) if highlight else item

        # gather keeps results in hit order regardless of completion order
        resolved = await asyncio.gather(*(resolve(hit) for hit in hits))

        page = MaterializedPage(hit_count=len(hits))
        for hit, item in zip(hits, resolved):
            if item is None:
                page.dropped.append(hit.item_id)
            else:
                page.items.append(item)
        return page

