"""FastAPI application exposing the product card search.

Collaborators (catalog store, category resolution, hierarchy) are provided by
the deployment: wire them with :func:`build_orchestrator` and pass the result
to :func:`create_app`, or assign it to ``app.state.orchestrator``.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from elasticsearch import Elasticsearch
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from .backend import ElasticsearchBackend
from .cache import CacheBackend, CategoryAggregationCache, get_cache
from .config import settings
from .errors import SearchError
from .es_client import get_client
from .interfaces import CatalogStore, CategoryResolutionService, HierarchyService
from .models import SearchParams, SearchResponse
from .search import SearchOrchestrator

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_LEVEL = logging.getLevelName(settings.log_level.upper())

logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT, force=True)
for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "elastic_transport"):
    logging.getLogger(name).setLevel(LOG_LEVEL)

logger = logging.getLogger(__name__)


def build_orchestrator(
    store: CatalogStore,
    resolution_service: CategoryResolutionService,
    hierarchy: HierarchyService,
    es: Elasticsearch | None = None,
    cache: CacheBackend | None = None,
) -> SearchOrchestrator:
    """Wire the Elasticsearch backend and the category cache around the given collaborators."""
    backend = ElasticsearchBackend(es if es is not None else get_client())
    category_cache = CategoryAggregationCache(cache if cache is not None else get_cache())
    logger.info("Search orchestrator built index=%s cache=%s", backend.index, type(category_cache.backend).__name__)
    return SearchOrchestrator(
        backend=backend,
        store=store,
        resolution_service=resolution_service,
        hierarchy=hierarchy,
        category_cache=category_cache,
    )


def get_orchestrator(request: Request) -> SearchOrchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Search orchestrator is not configured")
    return orchestrator


async def search_error_handler(request: Request, exc: SearchError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("search failed path=%s status=%s: %s", request.url.path, exc.status_code, exc.message)
    else:
        logger.info("search rejected path=%s status=%s: %s", request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def create_app(orchestrator: SearchOrchestrator | None = None) -> FastAPI:
    app = FastAPI(title="Product Card Search Service")
    app.state.orchestrator = orchestrator
    app.add_exception_handler(SearchError, search_error_handler)

    @app.get("/health")
    async def health() -> dict:
        es = get_client()
        status = await asyncio.to_thread(es.cluster.health)
        return {
            "elasticsearch": status.get("status"),
            "index": settings.es_index,
            "orchestrator": app.state.orchestrator is not None,
        }

    @app.get("/search", response_model=SearchResponse)
    async def search(
        query: str = Query("", description="Search query"),
        lang: str = Query("ru", description="Language code"),
        category: Optional[int] = Query(None, gt=0),
        priceFrom: Optional[float] = None,
        priceTo: Optional[float] = None,
        feedId: Optional[int] = None,
        status: Optional[str] = None,
        marketplace: Optional[int] = None,
        marketTypeIndividual: bool = False,
        isAutocomplete: bool = False,
        orchestrator: SearchOrchestrator = Depends(get_orchestrator),
    ) -> SearchResponse:
        params = SearchParams(
            query=query,
            lang=lang,
            category=category,
            priceFrom=priceFrom,
            priceTo=priceTo,
            feedId=feedId,
            status=status,
            marketplace=marketplace,
            marketTypeIndividual=marketTypeIndividual,
            isAutocomplete=isAutocomplete,
        )
        payload, total_count = await orchestrator.get(params)
        return SearchResponse(**payload.model_dump(), totalCount=total_count)

    return app


app = create_app()
