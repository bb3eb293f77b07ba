"""M3U parsing service — turns raw playlist text into typed MediaItem records.

The parser is a two-state line machine: it waits for an ``#EXTINF`` line,
then for the first non-comment line that carries the playback URL.  A new
``#EXTINF`` line while a URL is still pending discards the pending entry.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, Optional, Union

from m3ucatalog.models.media import MediaItem
from m3ucatalog.services.classifier import (
    classify_type,
    derive_genre,
    extract_year,
    is_dropped_group,
    split_episode,
)

logger = logging.getLogger(__name__)

EXTINF_PREFIX = "#EXTINF:"
UNKNOWN_GROUP = "Unknown"

ATTR_PATTERNS = {
    "tvg_id": re.compile(r'tvg-id="([^"]*)"'),
    "tvg_name": re.compile(r'tvg-name="([^"]*)"'),
    "tvg_logo": re.compile(r'tvg-logo="([^"]*)"'),
    "group": re.compile(r'group-title="([^"]*)"'),
}

# duration, well-formed attributes, then the display name after the separating comma
EXTINF_RE = re.compile(r'^#EXTINF:\s*(?:-?[\d.]+)?((?:\s*[\w-]+="[^"]*")*)\s*,(.*)$')


def extract_display_name(line: str) -> Optional[str]:
    """Display name of an ``#EXTINF`` line; malformed lines fall back to the last comma."""
    m = EXTINF_RE.match(line)
    if m:
        name = m.group(2).strip()
    elif "," in line:
        name = line.rsplit(",", 1)[1].strip()
    else:
        return None
    return name or None


def extract_attributes(line: str) -> dict[str, Optional[str]]:
    attrs: dict[str, Optional[str]] = {}
    for key, pattern in ATTR_PATTERNS.items():
        m = pattern.search(line)
        attrs[key] = m.group(1) if m else None
    return attrs


# ---------------------------------------------------------------------------
# Highlight flags
# ---------------------------------------------------------------------------

class FlagPolicy:
    """Decides ``is_new`` / ``is_featured`` from curation lists and release year."""

    def __init__(
        self,
        clock: Optional[Callable[[], datetime]] = None,
        recent_years: int = 1,
        featured: Iterable[str] = (),
        new: Iterable[str] = (),
    ):
        self.clock = clock or datetime.now
        self.recent_years = recent_years
        self.featured = {s.strip().lower() for s in featured if s and s.strip()}
        self.new = {s.strip().lower() for s in new if s and s.strip()}

    def _keys(self, fields: dict) -> set[str]:
        keys = set()
        for key in ("name", "tvg_id", "tvg_name"):
            value = fields.get(key)
            if value:
                keys.add(value.strip().lower())
        return keys

    def flags(self, fields: dict, current_year: int) -> tuple[bool, bool]:
        keys = self._keys(fields)
        is_featured = bool(keys & self.featured)
        is_new = bool(keys & self.new)
        year = fields.get("year")
        if not is_new and year and year.isdigit() and self.recent_years >= 0:
            is_new = int(year) >= current_year - self.recent_years
        return is_new, is_featured


# ---------------------------------------------------------------------------
# Parser states
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AwaitingEntry:
    pass


@dataclass(frozen=True)
class AwaitingUrl:
    fields: dict


ParserState = Union[AwaitingEntry, AwaitingUrl]


class M3uParser:
    """Parses extended M3U text into MediaItem records."""

    def __init__(self, flag_policy: Optional[FlagPolicy] = None):
        self.flag_policy = flag_policy or FlagPolicy()

    def parse(self, content: str, id_offset: int = 0) -> list[MediaItem]:
        """Parse *content*; ids are ``media-<n>`` counted from ``id_offset + 1``."""
        lines = content.splitlines()
        items: list[MediaItem] = []
        stats = {"entries": 0, "dropped": 0, "orphaned": 0}
        current_year = self.flag_policy.clock().year

        state: ParserState = AwaitingEntry()
        for raw_line in lines:
            line = raw_line.strip()
            if not line:
                continue

            if line.startswith(EXTINF_PREFIX):
                stats["entries"] += 1
                if isinstance(state, AwaitingUrl):
                    stats["orphaned"] += 1
                fields = self._read_entry(line)
                if fields is None:
                    stats["dropped"] += 1
                    state = AwaitingEntry()
                else:
                    state = AwaitingUrl(fields)
                continue

            if line.startswith("#"):
                continue

            if isinstance(state, AwaitingUrl):
                item_id = f"media-{id_offset + len(items) + 1}"
                items.append(self._build_item(state.fields, line, item_id, current_year))
                state = AwaitingEntry()

        if isinstance(state, AwaitingUrl):
            stats["orphaned"] += 1

        logger.info(
            f"Parsed M3U: {stats['entries']} entries, {len(items)} items, "
            f"{stats['dropped']} dropped (Canais), {stats['orphaned']} without URL"
        )
        return items

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _read_entry(self, line: str) -> Optional[dict]:
        """Extract and classify one ``#EXTINF`` line, or None when it is dropped."""
        attrs = extract_attributes(line)
        group = attrs["group"] if attrs["group"] is not None else UNKNOWN_GROUP
        if is_dropped_group(group):
            return None

        name = extract_display_name(line) or UNKNOWN_GROUP
        content_type = classify_type(group, name)
        genre, name = derive_genre(group, name, content_type)
        year, name = extract_year(name)

        fields: dict = {
            "name": name,
            "type": content_type,
            "group": group,
            "genre": genre,
            "year": year,
            "tvg_id": attrs["tvg_id"] or None,
            "tvg_name": attrs["tvg_name"] or None,
            "tvg_logo": attrs["tvg_logo"] or None,
        }

        if content_type == "series":
            parts = split_episode(name)
            if parts:
                series_name, fields["season"], fields["episode"] = parts
                if series_name:
                    fields["description"] = name
                    fields["name"] = series_name

        logger.debug(f"Entry: {fields['name']} | group={group} | genre={genre} | type={content_type}")
        return fields

    def _build_item(self, fields: dict, url: str, item_id: str, current_year: int) -> MediaItem:
        is_new, is_featured = self.flag_policy.flags(fields, current_year)
        logo = fields.get("tvg_logo")
        return MediaItem(
            id=item_id,
            url=url,
            logo=logo,
            poster=logo,
            is_new=is_new,
            is_featured=is_featured,
            **fields,
        )


def parse_m3u_playlist(content: str, flag_policy: Optional[FlagPolicy] = None) -> list[MediaItem]:
    return M3uParser(flag_policy).parse(content)
