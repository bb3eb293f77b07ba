"""Catalog API routes — state summary, listing, categories, genres, featured."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from m3ucatalog.dependencies import get_catalog_service, get_config_service
from m3ucatalog.services.catalog_service import CatalogService
from m3ucatalog.services.config_service import ConfigService

router = APIRouter(tags=["catalog"])


def unavailable_response(catalog: CatalogService) -> Optional[JSONResponse]:
    """503 when no catalog has been published and the last run failed."""
    if catalog.snapshot is None and catalog.error is not None:
        return JSONResponse(
            status_code=503,
            content={"status": "error", "retryable": True, "message": str(catalog.error)},
        )
    return None


@router.get("/api/catalog")
async def catalog_summary(catalog: CatalogService = Depends(get_catalog_service)):
    return catalog.summary()


@router.get("/api/items")
async def list_items(
    type: str = Query(""),
    genre: str = Query(""),
    page: int = Query(1),
    per_page: Optional[int] = Query(None, ge=1, le=500),
    catalog: CatalogService = Depends(get_catalog_service),
    cfg: ConfigService = Depends(get_config_service),
):
    error = unavailable_response(catalog)
    if error:
        return error

    items = catalog.items
    if type:
        items = [i for i in items if i.type == type]
    if genre:
        genre_lower = genre.lower()
        items = [i for i in items if i.genre.lower() == genre_lower]

    per_page = per_page or cfg.page_size
    return {
        "items": catalog.get_paginated_items(items, page, per_page),
        "total": len(items),
        "page": max(page, 1),
        "per_page": per_page,
        "total_pages": catalog.get_total_pages(items, per_page),
    }


@router.get("/api/categories")
async def categories(catalog: CatalogService = Depends(get_catalog_service)):
    error = unavailable_response(catalog)
    if error:
        return error
    return {"categories": catalog.categories}


@router.get("/api/genres")
async def genres(catalog: CatalogService = Depends(get_catalog_service)):
    error = unavailable_response(catalog)
    if error:
        return error
    return {"genres": catalog.genres}


@router.get("/api/featured")
async def featured(catalog: CatalogService = Depends(get_catalog_service)):
    error = unavailable_response(catalog)
    if error:
        return error
    return {"featured": catalog.featured}


@router.get("/api/content-by-type")
async def content_by_type(catalog: CatalogService = Depends(get_catalog_service)):
    error = unavailable_response(catalog)
    if error:
        return error
    return catalog.content_by_type


@router.get("/api/content-by-genre")
async def content_by_genre(catalog: CatalogService = Depends(get_catalog_service)):
    error = unavailable_response(catalog)
    if error:
        return error
    return catalog.content_by_genre


@router.post("/api/refresh")
async def refresh(catalog: CatalogService = Depends(get_catalog_service)):
    await catalog.refresh_data()
    if catalog.error is not None:
        return JSONResponse(
            status_code=503,
            content={"status": "error", "retryable": True, "message": str(catalog.error)},
        )
    return catalog.summary()
