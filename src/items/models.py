from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class Item:
    """An item record as materialized by the item-lookup service.

    ``search_title`` and ``search_text`` are presentation overlays set on a
    copy of the record when it is returned from a search; they are never
    part of the stored item.
    """

    id: str
    title: Optional[str] = None
    text: Optional[str] = None
    url: Optional[str] = None
    parent_id: Optional[str] = None
    user_id: Optional[str] = None
    sub_name: Optional[str] = None
    status: Optional[str] = None
    created_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    ncomments: int = 0
    wvotes: float = 0
    sats: int = 0
    bounty: Optional[int] = None
    position: Optional[int] = None
    is_job: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)
    search_title: Optional[str] = None
    search_text: Optional[str] = None

    # camelCase keys used by the item API and the search index
    _ALIASES = {
        "parentId": "parent_id",
        "userId": "user_id",
        "subName": "sub_name",
        "createdAt": "created_at",
        "deletedAt": "deleted_at",
        "isJob": "is_job",
        "searchTitle": "search_title",
        "searchText": "search_text",
    }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Item":
        known = {f.name for f in fields(cls)} - {"extra"}
        kwargs: Dict[str, Any] = {}
        extra: Dict[str, Any] = {}
        for key, value in data.items():
            name = cls._ALIASES.get(key, key)
            if name in known:
                kwargs[name] = value
            else:
                extra[key] = value
        for name in ("created_at", "deleted_at"):
            value = kwargs.get(name)
            if isinstance(value, str):
                kwargs[name] = datetime.fromisoformat(value.replace("Z", "+00:00"))
        kwargs["id"] = str(kwargs.get("id", ""))
        return cls(**kwargs, extra=extra)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        extra = data.pop("extra")
        reverse = {v: k for k, v in self._ALIASES.items()}
        out = {reverse.get(k, k): v for k, v in data.items()}
        out.update(extra)
        return out


def should_show_related(item: Item) -> bool:
    """Whether a "related items" list belongs under this item.

    Only unpinned items that belong to a sub qualify; jobs, comments (child
    items), deleted items and items carrying a bounty never do.
    """
    if item.position or not item.sub_name:
        return False
    if item.is_job:
        return False
    if item.parent_id:
        return False
    if item.deleted_at:
        return False
    if item.bounty and item.bounty > 0:
        return False
    return True
