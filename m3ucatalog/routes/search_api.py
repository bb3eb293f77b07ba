"""Search API route."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from m3ucatalog.dependencies import get_catalog_service
from m3ucatalog.routes.catalog_api import unavailable_response
from m3ucatalog.services.catalog_service import CatalogService

router = APIRouter(tags=["search"])


@router.get("/api/search")
async def search(
    q: str = Query(""),
    catalog: CatalogService = Depends(get_catalog_service),
):
    error = unavailable_response(catalog)
    if error:
        return error

    results = catalog.search(q)
    stats = catalog.last_search if q.strip() else {"elapsed_ms": 0.0, "indexed": catalog.index_ready}
    return {
        "results": results,
        "count": len(results),
        "elapsed_ms": stats["elapsed_ms"],
        "indexed": stats["indexed"],
    }
