"""Run one search against the configured deployment and log the results.

Configuration via constants below (no CLI args). Run:
	uv run python scripts/search.py

Environment:
	OPENSEARCH_URL       (default http://localhost:9200)
	OPENSEARCH_INDEX     (default item)
	OPENSEARCH_MODEL_ID  (optional; enables hybrid search)
	ITEM_API_URL         (default http://localhost:3000/api)
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
import sys
from typing import List

# Ensure the repository root is importable
CURRENT_DIR = Path(__file__).resolve().parent
ROOT_DIR = CURRENT_DIR.parent
if str(ROOT_DIR) not in sys.path:
	sys.path.insert(0, str(ROOT_DIR))

from src.engine.client import OpenSearchEngine  # noqa: E402
from src.items.client import HttpItemLookup  # noqa: E402
from src.search import SearchResult, SearchService, load_settings  # noqa: E402
from src.utils.text import highlight_segments  # noqa: E402


# ---------------------------------------------------------------------------
# Configuration Constants
# ---------------------------------------------------------------------------
QUERY_TEXT: str = "lightning network"
SORT: str = "hot"
WHEN: str = "forever"
PAGES: int = 2
LOG_LEVEL: str = "INFO"


def render_matches(text: str | None) -> str:
	"""Show highlighted matches as [match] in plain log output."""
	return "".join(f"[{seg}]" if is_match else seg for seg, is_match in highlight_segments(text))


async def search(query: str, pages: int = PAGES) -> List[SearchResult]:
	"""Fetch up to ``pages`` pages for ``query``, following the returned cursor."""
	logger = logging.getLogger(__name__)

	engine = OpenSearchEngine()
	items = HttpItemLookup()
	service = SearchService(engine=engine, items=items, config=load_settings())

	results: List[SearchResult] = []
	cursor = None
	try:
		for page in range(1, pages + 1):
			result = await service.search(query, cursor=cursor, sort=SORT, when=WHEN)
			results.append(result)
			lines: List[str] = [f"Page {page}: {len(result.items)} items for {query!r}"]
			for idx, item in enumerate(result.items, start=1):
				lines.append(f"{idx}. id={item.id}; title={render_matches(item.search_title or item.title)}")
				if item.search_text:
					lines.append(f"    {render_matches(item.search_text)[:160]}")
			logger.info("\n".join(lines))
			cursor = result.cursor
			if not cursor:
				break
	finally:
		await engine.close()
		await items.close()
	return results


def main() -> int:
	logging.basicConfig(
		level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
		format="%(asctime)s %(levelname)s %(name)s - %(message)s",
	)
	try:
		asyncio.run(search(QUERY_TEXT, PAGES))
		return 0
	except Exception as e:  # pragma: no cover
		logging.exception("Search failed: %s", e)
		return 1

if __name__ == "__main__":  # pragma: no cover
	raise SystemExit(main())
