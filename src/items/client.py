from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import httpx
from dotenv import load_dotenv

from src.search.errors import ItemLookupError, ItemNotFoundError
from src.search.schemas import Viewer

from .models import Item

load_dotenv(override=False)

logger = logging.getLogger(__name__)

TIMEOUT_SECONDS = 10
MAX_CONNECTIONS = 100


def get_item_http_client(base_url: Optional[str] = None) -> httpx.AsyncClient:
    """Async HTTP client for the item API.

    Env overrides:
      - ITEM_API_URL (default http://localhost:3000/api)
    """
    base_url = base_url or os.environ.get("ITEM_API_URL", "http://localhost:3000/api")
    limits = httpx.Limits(max_keepalive_connections=MAX_CONNECTIONS, max_connections=MAX_CONNECTIONS)
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=httpx.Timeout(TIMEOUT_SECONDS),
        limits=limits,
        headers={"Accept": "application/json"},
    )


class HttpItemLookup:
    """Materializes items through the item API (``GET /items/{id}``).

    The viewer id is forwarded so the API can apply its own visibility rules.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self.client = client or get_item_http_client()

    async def get_item(self, item_id: str, viewer: Optional[Viewer] = None) -> Item:
        headers: Dict[str, str] = {}
        if viewer is not None:
            headers["X-User-Id"] = viewer.id
        try:
            r = await self.client.get(f"/items/{item_id}", headers=headers)
            r.raise_for_status()
            payload: Any = r.json()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise ItemNotFoundError(item_id) from e
            raise ItemLookupError(
                item_id, f"HTTP error on /items/{item_id}: {e.response.status_code} {e.response.text[:200]}"
            ) from e
        except httpx.RequestError as e:
            raise ItemLookupError(item_id, f"Request error on /items/{item_id}: {e}") from e
        except ValueError as e:
            raise ItemLookupError(item_id, f"Invalid JSON for item {item_id}: {e}") from e

        data = payload.get("item", payload) if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            raise ItemLookupError(item_id, f"Unexpected payload for item {item_id}")
        try:
            return Item.from_dict(data)
        except (TypeError, ValueError) as e:
            raise ItemLookupError(item_id, f"Malformed item {item_id}: {e}") from e

    async def close(self) -> None:
        await self.client.aclose()
