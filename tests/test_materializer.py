import asyncio

import pytest

from src.engine.hits import SearchHit
from src.items.models import Item
from src.search.materializer import ResultMaterializer, apply_highlight

from tests.conftest import FakeItems


class TestApplyHighlight:
    def test_no_highlight_falls_back_to_title(self):
        item = Item(id="1", title="Plain title", text="body")
        out = apply_highlight(item, None)
        assert out.search_title == "Plain title"
        assert out.search_text is None
        assert out is not item

    def test_title_and_text_fragments(self):
        item = Item(id="1", title="Plain title")
        out = apply_highlight(item, {"title": ["***Plain*** title"], "text": ["one ***hit***", "two"]})
        assert out.search_title == "***Plain*** title"
        assert out.search_text == "one ***hit*** ... two"

    def test_empty_title_highlight_list(self):
        out = apply_highlight(Item(id="1", title="T"), {"title": [], "text": []})
        assert out.search_title == "T"
        assert out.search_text is None


class TestResultMaterializer:
    async def test_empty_hits(self):
        page = await ResultMaterializer(FakeItems()).materialize([])
        assert page.items == []
        assert page.hit_count == 0

    async def test_drops_missing_and_reports_them(self):
        items = FakeItems({"1": Item(id="1", title="a"), "3": Item(id="3", title="c")})
        hits = [SearchHit(item_id="1"), SearchHit(item_id="2"), SearchHit(item_id="3")]
        page = await ResultMaterializer(items).materialize(hits)
        assert [i.id for i in page.items] == ["1", "3"]
        assert page.dropped == ["2"]
        assert page.hit_count == 3

    async def test_highlight_can_be_disabled(self):
        items = FakeItems({"1": Item(id="1", title="a")})
        hits = [SearchHit(item_id="1", highlight={"title": ["***a***"]})]
        page = await ResultMaterializer(items).materialize(hits, highlight=False)
        assert page.items[0].search_title is None

    async def test_in_flight_lookups_are_bounded(self):
        class Tracking(FakeItems):
            in_flight = 0
            peak = 0

            async def get_item(self, item_id, viewer=None):
                Tracking.in_flight += 1
                Tracking.peak = max(Tracking.peak, Tracking.in_flight)
                await asyncio.sleep(0.01)
                Tracking.in_flight -= 1
                return await super().get_item(item_id, viewer)

        items = Tracking({str(i): Item(id=str(i)) for i in range(8)})
        hits = [SearchHit(item_id=str(i)) for i in range(8)]
        page = await ResultMaterializer(items, max_concurrency=2).materialize(hits)
        assert [i.id for i in page.items] == [str(i) for i in range(8)]
        assert Tracking.peak == 2

    def test_rejects_non_positive_concurrency(self):
        with pytest.raises(ValueError):
            ResultMaterializer(FakeItems(), max_concurrency=0)
