import pytest
from opensearchpy.exceptions import ConnectionError as OpenSearchConnectionError

from src.engine.client import OpenSearchEngine
from src.search.errors import EngineError


class StubClient:
    def __init__(self, response=None, error=None):
        self.response = response or {"hits": {"total": {"value": 0}, "hits": []}}
        self.error = error
        self.kwargs = None
        self.closed = False

    async def search(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return self.response

    async def close(self):
        self.closed = True


class TestOpenSearchEngine:
    async def test_passes_paging_and_source_excludes(self):
        client = StubClient()
        engine = OpenSearchEngine(client)
        response = await engine.search(
            index="item", body={"query": {}}, from_=21, size=21, source_excludes=["text"]
        )
        assert response == client.response
        assert client.kwargs == {
            "index": "item",
            "body": {"query": {}},
            "from_": 21,
            "size": 21,
            "_source_excludes": ["text"],
        }

    async def test_omits_empty_source_excludes(self):
        client = StubClient()
        await OpenSearchEngine(client).search(index="item", body={}, from_=0, size=5)
        assert "_source_excludes" not in client.kwargs

    async def test_client_errors_become_engine_errors(self):
        client = StubClient(error=OpenSearchConnectionError("N/A", "refused", None))
        with pytest.raises(EngineError):
            await OpenSearchEngine(client).search(index="item", body={}, from_=0, size=5)

    async def test_close(self):
        client = StubClient()
        await OpenSearchEngine(client).close()
        assert client.closed
