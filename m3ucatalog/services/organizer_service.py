"""Organizer service — category, type, genre and featured views over catalog items."""
from __future__ import annotations

import logging

from m3ucatalog.models.media import (
    DEFAULT_GENRE,
    Category,
    ContentByType,
    FeaturedContent,
    Genre,
    MediaItem,
)
from m3ucatalog.services.classifier import infer_group_type

logger = logging.getLogger(__name__)

FEATURED_LIMIT = 10
RELATED_LIMIT = 10

TYPE_BUCKETS = {"movie": "movies", "series": "series", "channel": "channels"}


def organize_by_categories(items: list[MediaItem]) -> list[Category]:
    """One category per raw group, typed once from the group name."""
    categories: dict[str, Category] = {}
    for item in items:
        category = categories.get(item.group)
        if category is None:
            inferred = infer_group_type(item.group)
            category = Category(
                id=f"category-{len(categories) + 1}",
                name=item.group,
                type=inferred or "channel",
                decisive=inferred is not None,
            )
            categories[item.group] = category
        category.items.append(item)
    return list(categories.values())


def keeps_series_type(item: MediaItem) -> bool:
    """Parents, episodes and SxxEyy entries stay series whatever their group says."""
    if item.type != "series":
        return False
    return item.is_parent or item.is_episode or bool(item.season and item.episode)


def reconcile_types(items: list[MediaItem]) -> list[MediaItem]:
    """Apply decisive category types to their members.

    Groups whose name names a type win over the item's own classification;
    members of ambiguous groups keep their parse-time type, and so do
    series parents and episodes.
    """
    group_types: dict[str, str | None] = {}
    result: list[MediaItem] = []
    overridden = 0
    for item in items:
        if item.group not in group_types:
            group_types[item.group] = infer_group_type(item.group)
        category_type = group_types[item.group]
        if category_type and category_type != item.type and not keeps_series_type(item):
            item = item.model_copy(update={"type": category_type})
            overridden += 1
        result.append(item)
    if overridden:
        logger.info(f"Reclassified {overridden} item(s) from their category type")
    return result


def organize_by_content_type(items: list[MediaItem]) -> ContentByType:
    buckets = ContentByType()
    for item in reconcile_types(items):
        getattr(buckets, TYPE_BUCKETS[item.type]).append(item)
    return buckets


def organize_by_genre(items: list[MediaItem]) -> list[Genre]:
    genres: dict[str, Genre] = {}
    for item in items:
        if not item.genre:
            continue
        genre = genres.get(item.genre)
        if genre is None:
            genre = Genre(id=f"genre-{len(genres) + 1}", name=item.genre)
            genres[item.genre] = genre
        genre.items.append(item)
    return list(genres.values())


def organize_content_by_genre(items: list[MediaItem]) -> dict[str, dict[str, list[MediaItem]]]:
    """``{"movies": {genre: [...]}, "series": {...}, "channels": {...}}``.

    Series buckets only hold parent or standalone records.
    """
    by_genre: dict[str, dict[str, list[MediaItem]]] = {"movies": {}, "series": {}, "channels": {}}
    seen: set[tuple[str, str]] = set()
    for item in items:
        bucket = TYPE_BUCKETS.get(item.type)
        if bucket is None:
            continue
        genre = item.genre or DEFAULT_GENRE
        target = by_genre[bucket].setdefault(genre, [])
        if bucket == "series":
            if item.is_episode or (item.url and item.season and item.episode):
                continue
            if (genre, item.id) in seen:
                continue
            seen.add((genre, item.id))
        target.append(item)
    return by_genre


def get_featured_content(items: list[MediaItem]) -> list[FeaturedContent]:
    featured_items = [item for item in items if item.is_featured]
    return [
        FeaturedContent(
            id="featured-new",
            title="Novidades",
            items=[item for item in items if item.is_new][:FEATURED_LIMIT],
        ),
        FeaturedContent(
            id="featured-movies",
            title="Filmes em Destaque",
            items=[item for item in featured_items if item.type == "movie"][:FEATURED_LIMIT],
        ),
        FeaturedContent(
            id="featured-series",
            title="Séries em Destaque",
            items=[item for item in featured_items if item.type == "series"][:FEATURED_LIMIT],
        ),
    ]


def get_related_items(item: MediaItem, items: list[MediaItem], limit: int = RELATED_LIMIT) -> list[MediaItem]:
    """Same-type items, same genre first."""
    same_type = [i for i in items if i.id != item.id and i.type == item.type]
    related = [i for i in same_type if item.genre and i.genre == item.genre]
    if len(related) < limit:
        related += [i for i in same_type if not item.genre or i.genre != item.genre]
    return related[:limit]
