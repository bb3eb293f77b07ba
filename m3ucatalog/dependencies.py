"""FastAPI dependency injection — provides services via Depends()."""
from __future__ import annotations

from fastapi import Request

from m3ucatalog.services.cache_service import CacheService
from m3ucatalog.services.catalog_service import CatalogService
from m3ucatalog.services.config_service import ConfigService
from m3ucatalog.services.metadata_service import MetadataService


def get_config_service(request: Request) -> ConfigService:
    return request.app.state.config_service


def get_cache_service(request: Request) -> CacheService:
    return request.app.state.cache_service


def get_catalog_service(request: Request) -> CatalogService:
    return request.app.state.catalog_service


def get_metadata_service(request: Request) -> MetadataService:
    return request.app.state.metadata_service
