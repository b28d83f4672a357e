"""Query planning for the two search scenarios.

``QueryPlanner`` turns request parameters into a ``QueryPlan``: a boolean
clause tree wrapped in a ``function_score`` with the scoring functions picked
by the sort mode. Planning is pure; the only inputs are the request, the
pagination cursor and (for neural "related" queries) an already resolved
anchor item.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from src.items.models import Item
from src.utils.text import split_terms

from .config import SearchServiceConfig
from .cursor import Cursor
from .hybrid import HybridQueryComposer
from .ranking import RELATED_RANKING, RankingStrategy, SortMode, ranking_for
from .schemas import ContentType, RelatedRequest, SearchRequest, TimeWindow, Viewer


logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

URL_PREFIX = "url:"
NYM_PREFIX = "nym:"

TEXT_FIELDS = ["title^100", "text"]
VISIBLE_STATUSES = ("ACTIVE", "NOSATS")
DEFAULT_MIN_MATCH = "10%"

WINDOW_PERIODS: Dict[TimeWindow, Optional[timedelta]] = {
    TimeWindow.day: timedelta(days=1),
    TimeWindow.week: timedelta(days=7),
    TimeWindow.month: timedelta(days=30),
    TimeWindow.year: timedelta(days=365),
    TimeWindow.forever: None,
}


@dataclass(frozen=True)
class ParsedQuery:
    text: str
    url: Optional[str] = None
    nym: Optional[str] = None


@dataclass
class QueryPlan:
    query: Dict[str, Any]
    ranking: RankingStrategy
    from_: int
    size: int
    source_excludes: Tuple[str, ...] = ()
    highlight: Optional[Dict[str, Any]] = None

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "query": {
                "function_score": {
                    "query": self.query,
                    "functions": self.ranking.functions_dsl(),
                    "boost_mode": self.ranking.boost_mode.value,
                }
            }
        }
        if self.highlight:
            body["highlight"] = self.highlight
        return body

    def to_request(self, index: str) -> Dict[str, Any]:
        return {
            "index": index,
            "body": self.to_body(),
            "from_": self.from_,
            "size": self.size,
            "source_excludes": list(self.source_excludes),
        }


def parse_query(query: str) -> ParsedQuery:
    """Pull ``url:`` and ``nym:`` tokens out of a free-text query.

    Only the first token with each prefix is used as a filter; every copy of
    that token is removed from the remaining text.
    """
    terms = split_terms(query)
    url = next((t for t in terms if t.startswith(URL_PREFIX)), None)
    nym = next((t for t in terms if t.startswith(NYM_PREFIX)), None)
    exclude = {t for t in (url, nym) if t is not None}
    text = " ".join(t for t in terms if t not in exclude)
    return ParsedQuery(
        text=text,
        url=url[len(URL_PREFIX):].lower() if url else None,
        nym=nym[len(NYM_PREFIX):].lower() if nym else None,
    )


def resolve_window(
    when: TimeWindow,
    cursor_time: datetime,
    *,
    when_from: Optional[datetime] = None,
    when_to: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> Dict[str, str]:
    """Creation-time bounds for a search; never later than the cursor time."""

    cursor_time = _as_utc(cursor_time)
    if when is TimeWindow.custom:
        lower = _custom_bound(when_from, "from")
        upper = _custom_bound(when_to, "to")
        gte = lower or EPOCH
        lte = min(upper, cursor_time) if upper else cursor_time
    else:
        period = WINDOW_PERIODS[when]
        gte = (now or datetime.now(timezone.utc)) - period if period else EPOCH
        lte = cursor_time
    return {"gte": _as_utc(gte).isoformat(), "lte": lte.isoformat()}


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _custom_bound(value: Optional[datetime], name: str) -> Optional[datetime]:
    """A custom window bound in UTC; bounds that cannot be expressed in UTC are ignored."""
    if value is None:
        return None
    try:
        return _as_utc(value)
    except OverflowError:
        logger.debug("Ignoring out-of-range custom window bound %s=%s", name, value.isoformat())
        return None


def _status_filter(viewer: Optional[Viewer] = None, must_not: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    should: List[Dict[str, Any]] = [{"match": {"status": s}} for s in VISIBLE_STATUSES]
    if viewer is not None:
        # authors always see their own items, whatever the status
        should.append({"match": {"userId": viewer.id}})
    clause: Dict[str, Any] = {"should": should}
    if must_not:
        clause["must_not"] = must_not
    return {"bool": clause}


class QueryPlanner:
    def __init__(self, config: SearchServiceConfig | None = None):
        self.config = config or SearchServiceConfig()
        self.hybrid = HybridQueryComposer(model_id=self.config.model_id)

    def highlight(self) -> Dict[str, Any]:
        tag = [self.config.highlight_tag]
        return {
            "fields": {
                "title": {"number_of_fragments": 0, "pre_tags": tag, "post_tags": tag},
                "text": {"number_of_fragments": 5, "order": "score", "pre_tags": tag, "post_tags": tag},
            }
        }

    def plan_search(
        self,
        request: SearchRequest,
        cursor: Cursor,
        limit: int,
        *,
        now: Optional[datetime] = None,
    ) -> Optional[QueryPlan]:
        """Plan a free-text search; ``None`` when there is nothing to search for."""

        if not request.query or not request.query.strip():
            return None

        sort = SortMode.parse(request.sort)
        parsed = parse_query(request.query)

        filters: List[Dict[str, Any]] = self._content_filters(ContentType.parse(request.what))
        if parsed.url:
            filters.append({"match_phrase_prefix": {"url": parsed.url}})
        if parsed.nym:
            filters.append({"wildcard": {"user.name": f"*{parsed.nym}*"}})
        if request.sub:
            filters.append({"match": {"sub.name": request.sub}})

        term_queries: Any = self._term_queries(parsed.text, sort)
        if parsed.text and self.hybrid.applies_to(sort):
            term_queries = self.hybrid.compose(term_queries, parsed.text, cursor.offset + limit)

        window = resolve_window(
            TimeWindow.parse(request.when),
            cursor.time,
            when_from=request.when_from,
            when_to=request.when_to,
            now=now,
        )
        filters.extend(
            [
                _status_filter(request.viewer),
                {"range": {"createdAt": window}},
                {"range": {"wvotes": {"gte": 0}}},
            ]
        )

        occur = "must" if sort is SortMode.recent else "should"
        plan = QueryPlan(
            query={"bool": {occur: term_queries, "filter": filters}},
            ranking=ranking_for(sort),
            from_=cursor.offset,
            size=limit,
            source_excludes=self.config.source_excludes,
            highlight=self.highlight(),
        )
        logger.debug(
            "Planned search text=%r sort=%s hybrid=%s from=%s size=%s",
            parsed.text,
            sort.value,
            "hybrid" in term_queries if isinstance(term_queries, dict) else False,
            plan.from_,
            plan.size,
        )
        return plan

    def plan_related(
        self,
        request: RelatedRequest,
        cursor: Cursor,
        limit: int,
        *,
        anchor: Optional[Item] = None,
    ) -> Optional[QueryPlan]:
        """Plan a similarity query around an anchor item and/or title.

        ``anchor`` is the resolved anchor record; it only matters when
        semantic search is enabled, where it seeds the neural clauses.
        """

        title = request.title.strip() if request.title and split_terms(request.title) else None
        if not request.id and not title:
            return None

        should = [self._more_like_this(request.id, title, request.min_match)]
        if self.hybrid.enabled:
            seeds = self._anchor_seeds(title, anchor)
            if seeds is not None:
                seed_title, seed_text = seeds
                # title embeddings are compared against the anchor body, and vice versa
                should = self.hybrid.neural_clauses(seed_text, seed_title, cursor.offset + limit)
            else:
                logger.warning("No anchor text for neural related query id=%s; using more_like_this", request.id)

        must_not: List[Dict[str, Any]] = [{"exists": {"field": "parentId"}}]
        if request.id:
            must_not.append({"term": {"id": request.id}})

        filters = [
            _status_filter(must_not=must_not),
            {"range": {"wvotes": {"gte": 0 if request.min_match else 0.2}}},
        ]

        return QueryPlan(
            query={"bool": {"should": should, "filter": filters}},
            ranking=RELATED_RANKING,
            from_=cursor.offset,
            size=limit,
            source_excludes=self.config.source_excludes,
        )

    def _content_filters(self, what: ContentType) -> List[Dict[str, Any]]:
        parent = {"exists": {"field": "parentId"}}
        if what is ContentType.posts:
            return [{"bool": {"must_not": parent}}]
        if what is ContentType.comments:
            return [{"bool": {"must": parent}}]
        return []

    def _term_queries(self, text: str, sort: SortMode) -> List[Dict[str, Any]]:
        if not text:
            return []

        queries: List[Dict[str, Any]] = [
            {
                # all terms are matched in fields
                "multi_match": {
                    "query": text,
                    "type": "best_fields",
                    "fields": list(TEXT_FIELDS),
                    "minimum_should_match": "100%",
                    "boost": 1000,
                }
            }
        ]
        if sort is SortMode.recent:
            # prioritize exact matches
            queries.append(
                {
                    "multi_match": {
                        "query": text,
                        "type": "phrase",
                        "fields": list(TEXT_FIELDS),
                        "boost": 1000,
                    }
                }
            )
        else:
            # allow fuzzy matching with partial matches
            queries.append(
                {
                    "multi_match": {
                        "query": text,
                        "type": "most_fields",
                        "fields": list(TEXT_FIELDS),
                        "fuzziness": "AUTO",
                        "prefix_length": 3,
                        "minimum_should_match": "60%",
                    }
                }
            )
        return queries

    def _more_like_this(self, item_id: Optional[str], title: Optional[str], min_match: Optional[str]) -> Dict[str, Any]:
        like: List[Any] = []
        if item_id:
            like.append({"_index": self.config.index, "_id": item_id})
        if title:
            like.append(title)
        return {
            "more_like_this": {
                "fields": ["title", "text"],
                "like": like,
                "min_term_freq": 1,
                "min_doc_freq": 1,
                "max_doc_freq": 5,
                "min_word_length": 2,
                "max_query_terms": 25,
                "minimum_should_match": min_match or DEFAULT_MIN_MATCH,
            }
        }

    def _anchor_seeds(self, title: Optional[str], anchor: Optional[Item]) -> Optional[Tuple[str, str]]:
        if anchor is not None and (anchor.title or anchor.text):
            return (anchor.title or anchor.text or "", anchor.text or anchor.title or "")
        if title:
            return (title, title)
        return None
