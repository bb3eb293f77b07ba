"""Catalog service — the stateful query façade over the ingestion pipeline.

Runs source -> parser -> series reassembly -> organizer, publishes the
result as a :class:`CatalogSnapshot`, builds the search index shortly
after, and answers search, pagination and lookup queries.
"""
from __future__ import annotations

import asyncio
import logging
import math
import time
from typing import TYPE_CHECKING, Optional

from m3ucatalog.models.media import ContentByType, MediaItem
from m3ucatalog.services.catalog_store import CatalogSnapshot, CatalogStore
from m3ucatalog.services.m3u_service import M3uParser
from m3ucatalog.services.organizer_service import (
    get_featured_content,
    get_related_items,
    organize_by_categories,
    organize_by_content_type,
    organize_by_genre,
    organize_content_by_genre,
    reconcile_types,
)
from m3ucatalog.services.playlist_source import PlaylistUnavailableError
from m3ucatalog.services.position_index import find_item_lines
from m3ucatalog.services.search_service import SearchIndex, linear_search
from m3ucatalog.services.series_service import (
    get_episodes_by_seasons,
    get_series_episodes,
    organize_series_content,
)

if TYPE_CHECKING:
    from m3ucatalog.services.cache_service import CacheService
    from m3ucatalog.services.config_service import ConfigService
    from m3ucatalog.services.playlist_source import PlaylistSource

logger = logging.getLogger(__name__)


def build_snapshot(raw_items: list[MediaItem], generation: int) -> CatalogSnapshot:
    """Derive every catalog view from the parsed items.

    Category types are settled on the parsed items before series
    reassembly so every view sees the same type for an item.
    """
    layout = organize_series_content(reconcile_types(raw_items))
    items = layout.listing_items
    return CatalogSnapshot(
        generation=generation,
        items=items,
        all_items=layout.all_items,
        raw_items=raw_items,
        categories=organize_by_categories(items),
        content_by_type=organize_by_content_type(items),
        genres=organize_by_genre(items),
        featured=get_featured_content(items),
        content_by_genre=organize_content_by_genre(items),
        episodes_by_parent=layout.episodes_by_parent,
    )


def find_in_items(items: list[MediaItem], query: str) -> Optional[MediaItem]:
    """Exact id, then id containment, then exact name, then name containment."""
    query_lower = query.lower()
    for match in (
        lambda i: i.id == query,
        lambda i: query in i.id,
        lambda i: i.name.lower() == query_lower or (i.tvg_name or "").lower() == query_lower,
        lambda i: query_lower in i.name.lower(),
    ):
        for item in items:
            if match(item):
                return item
    return None


class CatalogService:
    """Owns the pipeline run state and the current catalog snapshot."""

    def __init__(
        self,
        config_service: "ConfigService",
        cache_service: "CacheService",
        playlist_source: "PlaylistSource",
        parser: Optional[M3uParser] = None,
        store: Optional[CatalogStore] = None,
    ):
        self.config_service = config_service
        self.cache_service = cache_service
        self.playlist_source = playlist_source
        self.parser = parser or M3uParser()
        self.store = store or CatalogStore()

        self.loading = False
        self.error: Optional[Exception] = None
        self.search_term = ""
        self.search_results: list[MediaItem] = []
        self.last_search: dict = {"term": "", "count": 0, "elapsed_ms": 0.0, "indexed": False}

        self._search_request = 0
        self._search_task: Optional[asyncio.Task] = None
        self._index_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Snapshot accessors
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> Optional[CatalogSnapshot]:
        return self.store.snapshot

    @property
    def items(self) -> list[MediaItem]:
        return self.snapshot.items if self.snapshot else []

    @property
    def all_items(self) -> list[MediaItem]:
        return self.snapshot.all_items if self.snapshot else []

    @property
    def categories(self) -> list:
        return self.snapshot.categories if self.snapshot else []

    @property
    def content_by_type(self) -> ContentByType:
        return self.snapshot.content_by_type if self.snapshot else ContentByType()

    @property
    def genres(self) -> list:
        return self.snapshot.genres if self.snapshot else []

    @property
    def featured(self) -> list:
        return self.snapshot.featured if self.snapshot else []

    @property
    def content_by_genre(self) -> dict:
        return self.snapshot.content_by_genre if self.snapshot else {"movies": {}, "series": {}, "channels": {}}

    @property
    def index_ready(self) -> bool:
        return self.snapshot is not None and self.snapshot.search_index is not None

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def load(self, force: bool = False) -> Optional[CatalogSnapshot]:
        """Run the pipeline; a cached snapshot short-circuits fetch and parse unless *force*."""
        generation = self.store.next_generation()
        self.loading = True
        self.error = None
        start_time = time.time()

        try:
            raw_items = None if force else self.cache_service.load_items()
            if raw_items is None:
                text = await self.playlist_source.fetch_playlist_text()
                raw_items = self.parser.parse(text)
                self.cache_service.set_file_content(text)
                self.cache_service.save_items(raw_items)
            snapshot = build_snapshot(raw_items, generation)
        except PlaylistUnavailableError as e:
            logger.error(f"Catalog load failed: {e}")
            if generation == self.store.latest_generation:
                self.error = e
                self.loading = False
            return None

        if not self.store.publish(snapshot):
            return None

        self.loading = False
        logger.info(
            f"Catalog generation {generation} ready: {len(snapshot.items)} items, "
            f"{len(snapshot.all_items)} total in {time.time() - start_time:.2f}s"
        )
        self.schedule_search_index(snapshot)
        return snapshot

    async def refresh_data(self) -> Optional[CatalogSnapshot]:
        """Drop every cached structure and re-run the pipeline from the source."""
        self.cache_service.clear_cache()
        self.store.invalidate_search_index()
        return await self.load(force=True)

    def schedule_search_index(self, snapshot: CatalogSnapshot) -> asyncio.Task:
        if self._index_task is not None and not self._index_task.done():
            self._index_task.cancel()
        self._index_task = asyncio.create_task(self._build_search_index(snapshot))
        return self._index_task

    async def _build_search_index(self, snapshot: CatalogSnapshot) -> Optional[SearchIndex]:
        # yield to pending work before the synchronous indexing pass
        await asyncio.sleep(self.config_service.get_index_build_delay())
        if snapshot.generation != self.store.latest_generation:
            return None
        index = SearchIndex(snapshot.all_items)
        if not self.store.attach_search_index(snapshot.generation, index):
            return None
        return index

    async def wait_for_index(self) -> None:
        if self._index_task is not None:
            await self._index_task

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search(self, term: str) -> list[MediaItem]:
        snapshot = self.snapshot
        if snapshot is None or not term.strip():
            return []

        start = time.perf_counter()
        if snapshot.search_index is not None:
            results = snapshot.search_index.search(term)
            indexed = True
        else:
            results = linear_search(snapshot.all_items, term)
            indexed = False
        elapsed_ms = (time.perf_counter() - start) * 1000

        self.last_search = {
            "term": term,
            "count": len(results),
            "elapsed_ms": round(elapsed_ms, 2),
            "indexed": indexed,
        }
        logger.info(
            f'Search "{term}" found {len(results)} items in {elapsed_ms:.1f}ms '
            f'({"index" if indexed else "scan"})'
        )
        return results

    def set_search_term(self, term: str) -> asyncio.Task:
        """Debounced search; only the latest request commits its results."""
        self.search_term = term
        self._search_request += 1
        if self._search_task is not None and not self._search_task.done():
            self._search_task.cancel()
        self._search_task = asyncio.create_task(self._debounced_search(self._search_request, term))
        return self._search_task

    async def _debounced_search(self, request_id: int, term: str) -> Optional[list[MediaItem]]:
        if term.strip():
            await asyncio.sleep(self.config_service.get_search_debounce())
        results = self.search(term)
        if request_id != self._search_request:
            return None
        self.search_results = results
        return results

    # ------------------------------------------------------------------
    # Pagination
    # ------------------------------------------------------------------

    def get_paginated_items(self, items: list, page: int, per_page: Optional[int] = None) -> list:
        per_page = per_page or self.config_service.page_size
        start = (max(page, 1) - 1) * per_page
        return items[start:start + per_page]

    def get_total_pages(self, items: list, per_page: Optional[int] = None) -> int:
        per_page = per_page or self.config_service.page_size
        return math.ceil(len(items) / per_page)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def find_item(self, query: str) -> Optional[MediaItem]:
        """Resolve one item by id or name; None when nothing matches."""
        query = query.strip()
        if not query:
            return None

        known = self.all_items or reconcile_types(self.cache_service.items or [])
        item = find_in_items(known, query)
        if item is not None:
            return item

        content = self.cache_service.file_content
        if content is None:
            try:
                content = await self.playlist_source.fetch_playlist_text()
            except PlaylistUnavailableError as e:
                logger.warning(f"Lookup of {query!r} cannot read the playlist: {e}")
                return None
            self.cache_service.set_file_content(content)

        index = self.cache_service.get_position_index(content)
        lines = content.splitlines()
        span = find_item_lines(index, lines, query)
        if span is not None:
            start, end = span
            fragment = "\n".join(lines[start:end])
            parsed = self.parser.parse(fragment, id_offset=index.ordinals.get(start, 0))
            parsed = reconcile_types(parsed)
            if parsed:
                logger.info(f"Item {query!r} resolved through the position index")
                return parsed[0]

        logger.info(f"Item {query!r} not in the position index, scanning the full playlist")
        return find_in_items(reconcile_types(self.parser.parse(content)), query)

    def get_series_episodes(self, series_id: str) -> list[MediaItem]:
        snapshot = self.snapshot
        if snapshot is None:
            return []
        return get_series_episodes(series_id, snapshot.all_items, snapshot.episodes_by_parent)

    def get_episodes_by_seasons(self, series_id: str) -> dict[str, list[MediaItem]]:
        snapshot = self.snapshot
        if snapshot is None:
            return {}
        return get_episodes_by_seasons(series_id, snapshot.all_items, snapshot.episodes_by_parent)

    def get_related_items(self, item: MediaItem) -> list[MediaItem]:
        return get_related_items(item, self.items)

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    def summary(self) -> dict:
        snapshot = self.snapshot
        content = self.content_by_type
        return {
            "loading": self.loading,
            "error": str(self.error) if self.error else None,
            "generation": snapshot.generation if snapshot else 0,
            "index_ready": self.index_ready,
            "counts": {
                "items": len(self.items),
                "all_items": len(self.all_items),
                "movies": len(content.movies),
                "series": len(content.series),
                "channels": len(content.channels),
                "categories": len(self.categories),
                "genres": len(self.genres),
            },
            "search_term": self.search_term,
            "last_search": self.last_search,
        }

    async def shutdown(self) -> None:
        """Cancel pending search and index tasks."""
        for task in (self._search_task, self._index_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
