from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from src.items.models import Item

from .ranking import SortMode


class ContentType(str, Enum):
    posts = "posts"
    comments = "comments"
    any = "any"

    @classmethod
    def parse(cls, value: "ContentType | str | None") -> "ContentType":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.any


class TimeWindow(str, Enum):
    day = "day"
    week = "week"
    month = "month"
    year = "year"
    forever = "forever"
    custom = "custom"

    @classmethod
    def parse(cls, value: "TimeWindow | str | None") -> "TimeWindow":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.forever


@dataclass(frozen=True)
class Viewer:
    """Identity of the requesting user, as resolved by the caller."""

    id: str


@dataclass(frozen=True)
class SearchRequest:
    query: Optional[str]
    sub: Optional[str] = None
    sort: SortMode = SortMode.hot
    what: ContentType = ContentType.any
    when: TimeWindow = TimeWindow.forever
    when_from: Optional[datetime] = None
    when_to: Optional[datetime] = None
    cursor: Optional[str] = None
    viewer: Optional[Viewer] = None


@dataclass(frozen=True)
class RelatedRequest:
    title: Optional[str] = None
    id: Optional[str] = None
    cursor: Optional[str] = None
    limit: Optional[int] = None
    min_match: Optional[str] = None
    viewer: Optional[Viewer] = None


@dataclass
class SearchResult:
    items: List[Item] = field(default_factory=list)
    # encoded next-page cursor; None once the results are exhausted
    cursor: Optional[str] = None

    @classmethod
    def empty(cls) -> "SearchResult":
        return cls(items=[], cursor=None)
