from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from src.engine.hits import parse_hits
from src.items.models import Item, should_show_related

from .config import SearchServiceConfig
from .cursor import Cursor, decode_cursor, next_cursor_encoded
from .errors import ItemLookupError
from .materializer import ItemLookup, ResultMaterializer
from .planner import QueryPlan, QueryPlanner
from .ranking import SortMode
from .schemas import ContentType, RelatedRequest, SearchRequest, SearchResult, TimeWindow, Viewer


logger = logging.getLogger(__name__)


class SearchEngine(Protocol):
    async def search(
        self,
        *,
        index: str,
        body: Dict[str, Any],
        from_: int,
        size: int,
        source_excludes: Optional[List[str]] = None,
    ) -> Dict[str, Any]: ...


class SearchService:
    """Application-layer search service.

    Implements:
      1) Search by query text
      2) Related items for an anchor item (by id) and/or title
      3) Related items for an item page, when the item gets such a list

    Each call makes at most one search-engine request and then resolves the
    hits through the item-lookup collaborator. None of them raises for
    bad input or engine failures; callers just get an empty page.
    """

    def __init__(
        self,
        engine: SearchEngine,
        items: ItemLookup,
        config: SearchServiceConfig | None = None,
    ):
        self.config = config or SearchServiceConfig()
        self.engine = engine
        self.items = items
        self.planner = QueryPlanner(self.config)
        self.materializer = ResultMaterializer(items)

    async def search(
        self,
        query: Optional[str],
        *,
        sub: Optional[str] = None,
        cursor: Optional[str] = None,
        sort: SortMode | str | None = None,
        what: ContentType | str | None = None,
        when: TimeWindow | str | None = None,
        when_from: Optional[datetime] = None,
        when_to: Optional[datetime] = None,
        viewer: Optional[Viewer] = None,
    ) -> SearchResult:
        """Search by a free-text query string."""

        request = SearchRequest(
            query=query,
            sub=sub,
            sort=SortMode.parse(sort),
            what=ContentType.parse(what),
            when=TimeWindow.parse(when),
            when_from=when_from,
            when_to=when_to,
            cursor=cursor,
            viewer=viewer,
        )
        return await self.search_request(request)

    async def search_request(self, request: SearchRequest) -> SearchResult:
        decoded = decode_cursor(request.cursor)
        limit = self.config.default_limit

        plan = self.planner.plan_search(request, decoded, limit)
        if plan is None:
            return SearchResult.empty()

        return await self._execute(plan, decoded, request.viewer, highlight=True)

    async def related(
        self,
        *,
        title: Optional[str] = None,
        id: Optional[str] = None,
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
        min_match: Optional[str] = None,
        viewer: Optional[Viewer] = None,
    ) -> SearchResult:
        """Items similar to an existing item and/or a title."""

        request = RelatedRequest(
            title=title, id=id, cursor=cursor, limit=limit, min_match=min_match, viewer=viewer
        )
        return await self.related_request(request)

    async def related_request(self, request: RelatedRequest) -> SearchResult:
        anchor: Optional[Item] = None
        if self.config.semantic_enabled and request.id:
            anchor = await self._resolve_anchor(request.id, request.viewer)
        return await self._related(request, anchor)

    async def related_for_item(
        self,
        item_id: str,
        *,
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
        viewer: Optional[Viewer] = None,
    ) -> SearchResult:
        """Related items shown under an item's page.

        Items that do not get a related list (see ``should_show_related``) and
        items that cannot be resolved yield an empty result without querying
        the engine.
        """
        anchor = await self._resolve_anchor(item_id, viewer)
        if anchor is None or not should_show_related(anchor):
            logger.debug("No related items for id=%s", item_id)
            return SearchResult.empty()

        request = RelatedRequest(id=item_id, cursor=cursor, limit=limit, viewer=viewer)
        return await self._related(request, anchor)

    async def _related(self, request: RelatedRequest, anchor: Optional[Item]) -> SearchResult:
        decoded = decode_cursor(request.cursor)
        limit = self.config.clamp_limit(request.limit)

        plan = self.planner.plan_related(request, decoded, limit, anchor=anchor)
        if plan is None:
            return SearchResult.empty()

        return await self._execute(plan, decoded, request.viewer, highlight=False)

    async def _resolve_anchor(self, item_id: str, viewer: Optional[Viewer]) -> Optional[Item]:
        try:
            return await self.items.get_item(item_id, viewer)
        except ItemLookupError as e:
            logger.warning("Could not resolve related anchor id=%s: %s", item_id, e)
            return None

    async def _execute(
        self,
        plan: QueryPlan,
        cursor: Cursor,
        viewer: Optional[Viewer],
        *,
        highlight: bool,
    ) -> SearchResult:
        try:
            response = await self.engine.search(**plan.to_request(self.config.index))
            hits = parse_hits(response)
            logger.debug(
                "Engine returned %d hits (total=%s) from=%d size=%d", hits.returned, hits.total, plan.from_, plan.size
            )
            page = await self.materializer.materialize(hits.hits, viewer, highlight=highlight)
        except Exception as e:
            logger.exception("Search failed on index '%s': %s", self.config.index, e)
            return SearchResult.empty()

        if page.dropped:
            logger.warning(
                "Dropped %d of %d hits that could not be materialized: %s",
                len(page.dropped),
                page.hit_count,
                ", ".join(page.dropped),
            )

        # a full page means there may be more
        next_token = next_cursor_encoded(cursor, plan.size) if hits.returned == plan.size else None
        return SearchResult(items=page.items, cursor=next_token)
