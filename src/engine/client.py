from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from opensearchpy import AsyncOpenSearch
from opensearchpy.exceptions import OpenSearchException

from src.search.errors import EngineError

load_dotenv(override=False)

logger = logging.getLogger(__name__)


def get_opensearch_client(
    url: Optional[str] = None,
    user: Optional[str] = None,
    password: Optional[str] = None,
    *,
    timeout: float = 10.0,
) -> AsyncOpenSearch:
    """Create an async OpenSearch client using env defaults if not provided.

    Env overrides:
      - OPENSEARCH_URL (default http://localhost:9200)
      - OPENSEARCH_USER / OPENSEARCH_PASSWORD (basic auth, optional)
    """
    url = url or os.environ.get("OPENSEARCH_URL", "http://localhost:9200")
    user = user or os.environ.get("OPENSEARCH_USER")
    password = password or os.environ.get("OPENSEARCH_PASSWORD")
    http_auth = (user, password) if user and password else None
    return AsyncOpenSearch(hosts=[url], http_auth=http_auth, timeout=timeout)


class OpenSearchEngine:
    """``SearchEngine`` backed by opensearch-py; transport failures become ``EngineError``."""

    def __init__(self, client: Optional[AsyncOpenSearch] = None):
        self.client = client or get_opensearch_client()

    async def search(
        self,
        *,
        index: str,
        body: Dict[str, Any],
        from_: int,
        size: int,
        source_excludes: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"from_": from_, "size": size}
        if source_excludes:
            params["_source_excludes"] = source_excludes
        logger.debug("OpenSearch query index=%s from=%s size=%s", index, from_, size)
        try:
            return await self.client.search(index=index, body=body, **params)
        except OpenSearchException as e:
            raise EngineError(f"Search on index '{index}' failed: {e}") from e

    async def close(self) -> None:
        await self.client.close()
