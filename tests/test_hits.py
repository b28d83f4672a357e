from src.engine.hits import parse_hits


class TestParseHits:
    def test_reads_ordered_hits(self):
        response = {
            "hits": {
                "total": {"value": 12, "relation": "eq"},
                "hits": [
                    {"_id": "a", "_score": 3.5, "_source": {"id": 10}, "highlight": {"title": ["***x***"]}},
                    {"_id": "b", "_score": "1.25", "_source": {"id": 11}},
                ],
            }
        }
        result = parse_hits(response)
        assert [h.item_id for h in result.hits] == ["10", "11"]
        assert result.hits[0].highlight == {"title": ["***x***"]}
        assert result.hits[1].highlight is None
        assert result.returned == 2
        assert result.total == 12

    def test_falls_back_to_engine_id(self):
        result = parse_hits({"hits": {"hits": [{"_id": "42", "_score": None}]}})
        assert result.hits[0].item_id == "42"

    def test_skipped_hits_are_still_counted(self):
        result = parse_hits({"hits": {"hits": [{"_score": 1.0, "_source": {}}, "junk"]}})
        assert result.hits == []
        assert result.returned == 2

    def test_plain_integer_total(self):
        result = parse_hits({"hits": {"total": 1, "hits": [{"_id": "1", "_source": {"id": "1"}}]}})
        assert len(result) == 1
        assert result.total == 1

    def test_empty_response(self):
        assert parse_hits(None).returned == 0
        assert parse_hits({}).hits == []
