from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, Query, Request
from pydantic import BaseModel, ConfigDict, Field

from src.items.models import Item
from src.search import ContentType, SearchResult, SearchService, SortMode, TimeWindow, Viewer


router = APIRouter(prefix="/search", tags=["search"])


class SearchResultItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = Field(..., description="Item id.")
    title: Optional[str] = None
    text: Optional[str] = None
    url: Optional[str] = None
    parentId: Optional[str] = None
    userId: Optional[str] = None
    subName: Optional[str] = None
    createdAt: Optional[datetime] = None
    ncomments: int = 0
    wvotes: float = 0
    sats: int = 0
    searchTitle: Optional[str] = Field(
        None, description="Title with matched terms wrapped in highlight markers."
    )
    searchText: Optional[str] = Field(
        None, description="Highlighted body fragments joined by ' ... '."
    )

    @classmethod
    def from_item(cls, item: Item) -> "SearchResultItem":
        return cls(**item.to_dict())


class SearchResponse(BaseModel):
    items: List[SearchResultItem] = Field(default_factory=list)
    cursor: Optional[str] = Field(
        None, description="Opaque cursor for the next page; null when there are no more results."
    )

    @classmethod
    def from_result(cls, result: SearchResult) -> "SearchResponse":
        return cls(
            items=[SearchResultItem.from_item(item) for item in result.items],
            cursor=result.cursor,
        )


def get_search_service(request: Request) -> SearchService:
    return request.app.state.search_service


def get_viewer(x_user_id: Optional[str] = Header(None)) -> Optional[Viewer]:
    """Viewer identity as forwarded by the authenticating gateway."""
    return Viewer(id=x_user_id) if x_user_id else None


@router.get(
    "",
    summary="Search items by query",
    response_model=SearchResponse,
)
async def search(
    q: str = Query("", description="Free-text query; supports url: and nym: tokens."),
    sub: Optional[str] = Query(None, description="Restrict to this sub."),
    cursor: Optional[str] = Query(None, description="Cursor from a previous page."),
    sort: SortMode = Query(SortMode.hot),
    what: ContentType = Query(ContentType.any),
    when: TimeWindow = Query(TimeWindow.forever),
    from_: Optional[datetime] = Query(None, alias="from", description="Lower bound for when=custom."),
    to: Optional[datetime] = Query(None, description="Upper bound for when=custom."),
    viewer: Optional[Viewer] = Depends(get_viewer),
    service: SearchService = Depends(get_search_service),
) -> SearchResponse:
    result = await service.search(
        q,
        sub=sub,
        cursor=cursor,
        sort=sort,
        what=what,
        when=when,
        when_from=from_,
        when_to=to,
        viewer=viewer,
    )
    return SearchResponse.from_result(result)


@router.get(
    "/related",
    summary="Items related to an item or title",
    response_model=SearchResponse,
)
async def related(
    title: Optional[str] = Query(None),
    id: Optional[str] = Query(None, description="Id of the anchor item."),
    cursor: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, description="Page size; capped by the deployment maximum."),
    min_match: Optional[str] = Query(
        None, alias="minMatch", description="Override for minimum_should_match, e.g. '20%'."
    ),
    viewer: Optional[Viewer] = Depends(get_viewer),
    service: SearchService = Depends(get_search_service),
) -> SearchResponse:
    result = await service.related(
        title=title, id=id, cursor=cursor, limit=limit, min_match=min_match, viewer=viewer
    )
    return SearchResponse.from_result(result)


@router.get(
    "/related/{item_id}",
    summary="Related items listed under an item",
    response_model=SearchResponse,
)
async def related_for_item(
    item_id: str,
    cursor: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, description="Page size; capped by the deployment maximum."),
    viewer: Optional[Viewer] = Depends(get_viewer),
    service: SearchService = Depends(get_search_service),
) -> SearchResponse:
    """Empty for pinned items, jobs, comments, deleted items, bounties and items outside a sub."""
    result = await service.related_for_item(item_id, cursor=cursor, limit=limit, viewer=viewer)
    return SearchResponse.from_result(result)
