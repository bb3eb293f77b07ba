"""Application entry point: wiring, lifespan and the uvicorn runner."""
from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request

from m3ucatalog.database import DB_NAME, init_db
from m3ucatalog.routes import cache_api, catalog_api, detail_api, health, search_api
from m3ucatalog.services.cache_service import CacheService
from m3ucatalog.services.catalog_service import CatalogService
from m3ucatalog.services.config_service import ConfigService
from m3ucatalog.services.http_client import HttpClientService
from m3ucatalog.services.m3u_service import FlagPolicy, M3uParser
from m3ucatalog.services.metadata_service import MetadataService
from m3ucatalog.services.playlist_source import PlaylistSource

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
logger = logging.getLogger(__name__)

DATA_DIR = os.environ.get("DATA_DIR", "/data" if os.path.exists("/data") else "./data")


def wire_services(app: FastAPI, data_dir: str, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
    """Build every service for *data_dir* and attach it to ``app.state``."""
    os.makedirs(data_dir, exist_ok=True)
    cfg = ConfigService(data_dir)
    cfg.load()
    init_db(os.path.join(data_dir, DB_NAME))

    curation = cfg.get_curation()
    flag_policy = FlagPolicy(
        recent_years=cfg.get_recent_years(),
        featured=curation.get("featured", []),
        new=curation.get("new", []),
    )

    http = HttpClientService(transport=transport)
    cache = CacheService(cfg)
    source = PlaylistSource(cfg, http)

    app.state.config_service = cfg
    app.state.http_client = http
    app.state.cache_service = cache
    app.state.catalog_service = CatalogService(cfg, cache, source, parser=M3uParser(flag_policy))
    app.state.metadata_service = MetadataService(cfg, http)


def create_app(data_dir: str = DATA_DIR, transport: Optional[httpx.AsyncBaseTransport] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager - handles startup and shutdown"""
        wire_services(app, data_dir, transport)
        app.state.initial_load = asyncio.create_task(app.state.catalog_service.load())

        yield

        task = app.state.initial_load
        if not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await app.state.catalog_service.shutdown()
        await app.state.http_client.close()
        logger.info("Application shutdown complete")

    app = FastAPI(title="M3U Catalog", lifespan=lifespan)

    # Middleware to ensure UTF-8 charset in JSON responses
    @app.middleware("http")
    async def add_utf8_charset(request: Request, call_next):
        response = await call_next(request)
        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type and "charset" not in content_type:
            response.headers["content-type"] = "application/json; charset=utf-8"
        return response

    for r in (health, catalog_api, search_api, detail_api, cache_api):
        app.include_router(r.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=5000)
