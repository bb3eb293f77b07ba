"""Detail API routes — single item lookup, related items, episodes, enrichment."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from m3ucatalog.dependencies import get_catalog_service, get_metadata_service
from m3ucatalog.services.catalog_service import CatalogService
from m3ucatalog.services.metadata_service import MetadataService

router = APIRouter(tags=["detail"])

NOT_FOUND = {"error": "not found"}


@router.get("/api/items/{item_id}")
async def get_item(item_id: str, catalog: CatalogService = Depends(get_catalog_service)):
    item = await catalog.find_item(item_id)
    if item is None:
        return JSONResponse(status_code=404, content=NOT_FOUND)
    return item


@router.get("/api/items/{item_id}/related")
async def related_items(item_id: str, catalog: CatalogService = Depends(get_catalog_service)):
    item = await catalog.find_item(item_id)
    if item is None:
        return JSONResponse(status_code=404, content=NOT_FOUND)
    related = catalog.get_related_items(item)
    return {"item_id": item.id, "related": related, "count": len(related)}


@router.get("/api/series/{series_id}/episodes")
async def series_episodes(series_id: str, catalog: CatalogService = Depends(get_catalog_service)):
    episodes = catalog.get_series_episodes(series_id)
    if not episodes:
        return JSONResponse(status_code=404, content=NOT_FOUND)
    return {
        "series_id": series_id,
        "episodes": episodes,
        "seasons": catalog.get_episodes_by_seasons(series_id),
    }


@router.post("/api/items/{item_id}/enrich")
async def enrich_item(
    item_id: str,
    catalog: CatalogService = Depends(get_catalog_service),
    metadata: MetadataService = Depends(get_metadata_service),
):
    item = await catalog.find_item(item_id)
    if item is None:
        return JSONResponse(status_code=404, content=NOT_FOUND)
    return await metadata.enrich(item)
