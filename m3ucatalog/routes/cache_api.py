"""Cache management API routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from m3ucatalog.dependencies import get_cache_service, get_catalog_service, get_metadata_service
from m3ucatalog.services.cache_service import CacheService
from m3ucatalog.services.catalog_service import CatalogService
from m3ucatalog.services.metadata_service import MetadataService

router = APIRouter(tags=["cache"])


@router.get("/api/cache/status")
async def cache_status(
    cache: CacheService = Depends(get_cache_service),
    catalog: CatalogService = Depends(get_catalog_service),
):
    status = cache.status()
    status["search_index_ready"] = catalog.index_ready
    status["generation"] = catalog.snapshot.generation if catalog.snapshot else 0
    return status


@router.post("/api/cache/clear")
async def clear_cache(
    cache: CacheService = Depends(get_cache_service),
    catalog: CatalogService = Depends(get_catalog_service),
    metadata: MetadataService = Depends(get_metadata_service),
):
    cache.clear_cache()
    catalog.store.invalidate_search_index()
    metadata.clear_cache()
    return {"status": "ok", "message": "Cache cleared"}
