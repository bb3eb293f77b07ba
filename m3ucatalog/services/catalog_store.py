"""Catalog store — immutable snapshots of one pipeline run, published atomically."""
from __future__ import annotations

import logging
from typing import NamedTuple, Optional

from m3ucatalog.models.media import Category, ContentByType, FeaturedContent, Genre, MediaItem
from m3ucatalog.services.search_service import SearchIndex

logger = logging.getLogger(__name__)


class CatalogSnapshot(NamedTuple):
    generation: int
    items: list[MediaItem]
    all_items: list[MediaItem]
    raw_items: list[MediaItem]
    categories: list[Category]
    content_by_type: ContentByType
    genres: list[Genre]
    featured: list[FeaturedContent]
    content_by_genre: dict[str, dict[str, list[MediaItem]]]
    episodes_by_parent: dict[str, list[MediaItem]]
    search_index: Optional[SearchIndex] = None


class CatalogStore:
    """Holds the current snapshot; results of superseded runs are discarded."""

    def __init__(self):
        self._issued = 0
        self._snapshot: Optional[CatalogSnapshot] = None

    def next_generation(self) -> int:
        self._issued += 1
        return self._issued

    @property
    def latest_generation(self) -> int:
        return self._issued

    @property
    def snapshot(self) -> Optional[CatalogSnapshot]:
        return self._snapshot

    def publish(self, snapshot: CatalogSnapshot) -> bool:
        if snapshot.generation != self._issued:
            logger.info(
                f"Discarding catalog generation {snapshot.generation} (latest is {self._issued})"
            )
            return False
        self._snapshot = snapshot
        return True

    def attach_search_index(self, generation: int, index: SearchIndex) -> bool:
        current = self._snapshot
        if current is None or current.generation != generation:
            return False
        self._snapshot = current._replace(search_index=index)
        return True

    def invalidate_search_index(self) -> None:
        if self._snapshot is not None:
            self._snapshot = self._snapshot._replace(search_index=None)
