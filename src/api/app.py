from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import os
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.middleware.cors import CORSMiddleware

from src.engine.client import OpenSearchEngine
from src.items.client import HttpItemLookup
from src.search import SearchService, load_settings
from .routers.search import router as search_router


# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Tests (or an embedding application) may install their own service.
    if getattr(app.state, "search_service", None) is not None:
        yield
        return

    config = load_settings()
    engine = OpenSearchEngine()
    items = HttpItemLookup()
    app.state.search_service = SearchService(engine=engine, items=items, config=config)
    logger.info("Search service ready (index=%s)", config.index)
    try:
        yield
    finally:
        await engine.close()
        await items.close()
        app.state.search_service = None


"""
FastAPI application

Note on OpenAPI/Swagger docs:
Some recent combinations of FastAPI/Starlette serve the OpenAPI schema with
the vendor media type "application/vnd.oai.openapi+json". In certain client
environments (or with strict Accept headers), this can cause a 406 Not
Acceptable when the Swagger UI tries to fetch /openapi.json.

To avoid that, we disable the auto-registered OpenAPI/docs routes and add
explicit JSONResponse-based endpoints for the schema and Swagger UI.
"""

# Optional base path for deployments under a subpath; used as the ASGI
# root_path and advertised via OpenAPI "servers".
_env_base_path = os.getenv("API_BASE_PATH", "").strip()
if _env_base_path and not _env_base_path.startswith("/"):
    _env_base_path = "/" + _env_base_path
if _env_base_path.endswith("/") and _env_base_path != "/":
    _env_base_path = _env_base_path.rstrip("/")

# Disable built-in docs/openapi routes; we'll provide explicit JSON-based ones
app = FastAPI(
    title="Item search",
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
    root_path=_env_base_path or "",
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)


app.include_router(search_router)


@app.get("/health", tags=["ops"], summary="Health check")
async def health():
    return {"status": "ok"}


def _with_servers(base_path: str | None):
    """Return OpenAPI schema optionally annotated with servers -> [{url: base_path}]."""
    schema = app.openapi()
    if base_path and base_path != "/":
        # FastAPI caches app.openapi(); copy instead of mutating it
        schema = {**schema, "servers": [{"url": base_path}]}
    return schema


@app.get("/openapi.json", include_in_schema=False)
def openapi_json():
    return JSONResponse(_with_servers(_env_base_path or None))


# Relative openapi_url so the UI also works behind a subpath proxy.
@app.get("/docs", include_in_schema=False)
def swagger_ui():
    return get_swagger_ui_html(openapi_url="openapi.json", title="API Docs")
