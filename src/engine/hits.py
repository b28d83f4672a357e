from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class SearchHit:
    item_id: str
    highlight: Optional[Dict[str, List[str]]] = None


def _hit_to_search_hit(hit: Dict[str, Any]) -> Optional[SearchHit]:
    source = hit.get("_source") if isinstance(hit.get("_source"), dict) else {}
    # the item id is stored in the document; _id is the engine's own key
    raw_id = source.get("id", hit.get("_id"))
    if raw_id is None:
        return None

    highlight = hit.get("highlight")
    return SearchHit(
        item_id=str(raw_id),
        highlight=highlight if isinstance(highlight, dict) else None,
    )


@dataclass
class SearchHits:
    hits: List[SearchHit] = field(default_factory=list)
    # raw hits in the response, including any that could not be parsed
    returned: int = 0
    total: Optional[int] = None

    def __len__(self) -> int:
        return len(self.hits)

    def __iter__(self):
        return iter(self.hits)


def parse_hits(response: Dict[str, Any] | None) -> SearchHits:
    """Convert an OpenSearch search response into ordered ``SearchHit``s.

    Hits without any identifier are skipped but still counted in ``returned``.
    """
    if not response:
        return SearchHits()

    envelope = response.get("hits") or {}
    raw_hits = envelope.get("hits") or []
    total = envelope.get("total")
    if isinstance(total, dict):
        total = total.get("value")

    hits: List[SearchHit] = []
    for raw in raw_hits:
        if not isinstance(raw, dict):
            continue
        hit = _hit_to_search_hit(raw)
        if hit is not None:
            hits.append(hit)
    return SearchHits(
        hits=hits,
        returned=len(raw_hits),
        total=total if isinstance(total, int) else None,
    )
