"""Shared test fixtures: in-memory search engine and item lookup fakes."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest

from src.items.models import Item
from src.search import SearchService, SearchServiceConfig
from src.search.errors import EngineError, ItemNotFoundError


NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def find_filter(body: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    """All filter clauses of the function_score bool query that contain ``key``."""
    filters = body["query"]["function_score"]["query"]["bool"]["filter"]
    return [f for f in filters if key in f]


class FakeEngine:
    """Serves documents from memory, honouring the createdAt upper bound and window."""

    def __init__(self, docs: Optional[List[Dict[str, Any]]] = None, error: Optional[Exception] = None):
        self.docs: List[Dict[str, Any]] = list(docs or [])
        self.error = error
        self.calls: List[Dict[str, Any]] = []
        self.highlights: Dict[str, Dict[str, List[str]]] = {}

    async def search(self, *, index, body, from_, size, source_excludes=None):
        self.calls.append(
            {"index": index, "body": body, "from_": from_, "size": size, "source_excludes": source_excludes}
        )
        if self.error is not None:
            raise self.error

        docs = self.docs
        ranges = [
            f["range"]["createdAt"]
            for f in body["query"]["function_score"]["query"]["bool"].get("filter", [])
            if "range" in f and "createdAt" in f["range"]
        ]
        if ranges:
            lte = datetime.fromisoformat(ranges[0]["lte"])
            docs = [d for d in docs if d["createdAt"] <= lte]

        window = docs[from_:from_ + size]
        hits = []
        for d in window:
            hit: Dict[str, Any] = {"_id": d["id"], "_score": 1.0, "_source": {"id": d["id"]}}
            if d["id"] in self.highlights:
                hit["highlight"] = self.highlights[d["id"]]
            hits.append(hit)
        return {"hits": {"total": {"value": len(docs), "relation": "eq"}, "hits": hits}}


class FakeItems:
    def __init__(self, items: Optional[Dict[str, Item]] = None, missing: Optional[set] = None):
        self.items: Dict[str, Item] = dict(items or {})
        self.missing = set(missing or ())
        self.calls: List[str] = []

    async def get_item(self, item_id, viewer=None):
        self.calls.append(item_id)
        if item_id in self.missing or item_id not in self.items:
            raise ItemNotFoundError(item_id)
        return self.items[item_id]


def make_docs(n: int, start: datetime = NOW - timedelta(days=1)) -> List[Dict[str, Any]]:
    return [{"id": str(i), "createdAt": start + timedelta(minutes=i)} for i in range(1, n + 1)]


def make_items(docs: List[Dict[str, Any]]) -> Dict[str, Item]:
    return {
        d["id"]: Item(id=d["id"], title=f"Item {d['id']}", text=f"body {d['id']}", created_at=d["createdAt"])
        for d in docs
    }


@pytest.fixture
def config() -> SearchServiceConfig:
    return SearchServiceConfig(index="test-items", default_limit=3, max_limit=10)


@pytest.fixture
def semantic_config() -> SearchServiceConfig:
    return SearchServiceConfig(index="test-items", model_id="model-1", default_limit=3, max_limit=10)


@pytest.fixture
def docs() -> List[Dict[str, Any]]:
    return make_docs(5)


@pytest.fixture
def engine(docs) -> FakeEngine:
    return FakeEngine(docs)


@pytest.fixture
def items(docs) -> FakeItems:
    return FakeItems(make_items(docs))


@pytest.fixture
def service(engine, items, config) -> SearchService:
    return SearchService(engine=engine, items=items, config=config)


@pytest.fixture
def failing_engine() -> FakeEngine:
    return FakeEngine(error=EngineError("boom"))
