"""Series service — regroups episode-shaped items under synthetic parent series."""
from __future__ import annotations

import logging
from typing import NamedTuple

from m3ucatalog.models.media import MediaItem
from m3ucatalog.services.classifier import slugify, split_episode

logger = logging.getLogger(__name__)


class SeriesLayout(NamedTuple):
    listing_items: list[MediaItem]
    all_items: list[MediaItem]
    episodes_by_parent: dict[str, list[MediaItem]]


def clean_series_item(item: MediaItem) -> MediaItem:
    """Apply the name/season/episode cleanup; a no-op on already-cleaned items."""
    parts = split_episode(item.name)
    if not parts:
        return item
    series_name, season, episode = parts
    update = {"season": season, "episode": episode}
    if series_name:
        update["description"] = item.description or item.name
        update["name"] = series_name
    return item.model_copy(update=update)


def episode_sort_key(item: MediaItem) -> tuple[int, int]:
    return int(item.season or 0), int(item.episode or 0)


def organize_series_content(items: list[MediaItem]) -> SeriesLayout:
    """Build parent series records and their episodes.

    ``listing_items`` holds the non-series items, standalone series and one
    parent per show; ``all_items`` adds every original item and every
    synthesized episode.  Parent records already present in *items* are
    reused and episode records are regenerated, so the pass can run again
    on its own ``all_items``.
    """
    existing_parents = {item.name.lower(): item for item in items if item.is_parent}
    parents: dict[str, MediaItem] = {}
    reused: set[str] = set()
    parent_ids: set[str] = {item.id for item in existing_parents.values()}
    episodes: list[MediaItem] = []
    episode_ids: set[str] = set()
    episode_source_ids: set[str] = set()

    for original in items:
        if original.type != "series" or original.is_episode:
            continue
        item = clean_series_item(original)
        if not item.season or not item.episode:
            continue

        key = item.name.lower()
        parent = parents.get(key)
        if parent is None and key in existing_parents:
            parent = parents[key] = existing_parents[key]
            reused.add(key)
        if parent is None:
            parent_id = _unique_id(f"series-{slugify(key)}", parent_ids)
            parent = MediaItem(
                id=parent_id,
                name=item.name,
                url="",
                group=item.group,
                type="series",
                genre=item.genre,
                logo=item.logo,
                poster=item.poster,
                description=f"Coletânea de episódios de {item.name}",
                is_new=item.is_new,
                is_featured=item.is_featured,
                tvg_id=item.tvg_id,
                tvg_name=item.tvg_name,
                tvg_logo=item.tvg_logo,
            )
            parents[key] = parent

        episode_id = _unique_id(f"{parent.id}-s{item.season}e{item.episode}", episode_ids)
        description = f"{item.name} - Temporada {int(item.season)} Episódio {int(item.episode)}"
        if item.description:
            description += f" - {item.description}"
        episodes.append(
            item.model_copy(update={"id": episode_id, "parent_id": parent.id, "description": description})
        )
        episode_source_ids.add(original.id)

    parent_items = [parent for key, parent in parents.items() if key not in reused]
    items = [item for item in items if not item.is_episode]
    listing_items = [item for item in items if item.id not in episode_source_ids]
    listing_items.extend(parent_items)
    all_items = [*items, *parent_items, *episodes]

    episodes_by_parent: dict[str, list[MediaItem]] = {}
    for episode in episodes:
        episodes_by_parent.setdefault(episode.parent_id, []).append(episode)
    for group in episodes_by_parent.values():
        group.sort(key=episode_sort_key)

    logger.info(
        f"Series reassembly: {len(parents)} series, {len(episodes)} episodes, "
        f"{len(listing_items)} listing items"
    )
    return SeriesLayout(listing_items, all_items, episodes_by_parent)


def get_series_episodes(
    series_id: str,
    all_items: list[MediaItem],
    episodes_by_parent: dict[str, list[MediaItem]] | None = None,
) -> list[MediaItem]:
    """Episodes of a series sorted by season then episode."""
    if episodes_by_parent and series_id in episodes_by_parent:
        return list(episodes_by_parent[series_id])
    found = [
        item for item in all_items
        if item.type == "series" and item.parent_id == series_id and item.season and item.episode
    ]
    return sorted(found, key=episode_sort_key)


def get_episodes_by_seasons(
    series_id: str,
    all_items: list[MediaItem],
    episodes_by_parent: dict[str, list[MediaItem]] | None = None,
) -> dict[str, list[MediaItem]]:
    seasons: dict[str, list[MediaItem]] = {}
    for episode in get_series_episodes(series_id, all_items, episodes_by_parent):
        if not episode.season:
            continue
        seasons.setdefault(f"Season {int(episode.season)}", []).append(episode)
    return seasons


def _unique_id(candidate: str, used: set[str]) -> str:
    unique = candidate
    n = 2
    while unique in used:
        unique = f"{candidate}-{n}"
        n += 1
    used.add(unique)
    return unique
