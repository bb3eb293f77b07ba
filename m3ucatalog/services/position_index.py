"""Position index — raw-text line offsets for single-entry lookups.

Built by one lightweight pass over the playlist text (no classification),
so a detail lookup can slice out and parse a single entry instead of the
whole file.
"""
from __future__ import annotations

import hashlib
import logging
import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from m3ucatalog.services.classifier import is_dropped_group
from m3ucatalog.services.m3u_service import ATTR_PATTERNS, EXTINF_PREFIX, UNKNOWN_GROUP, extract_display_name

logger = logging.getLogger(__name__)

MIN_PARTIAL_WORD_LENGTH = 4
MAX_ENTRY_SPAN = 5


class PositionIndex(BaseModel):
    model_config = ConfigDict(extra="allow")

    by_id: dict[str, int] = Field(default_factory=dict)
    by_name: dict[str, int] = Field(default_factory=dict)
    by_partial_name: dict[str, list[int]] = Field(default_factory=dict)
    # EXTINF line -> number of items emitted before it
    ordinals: dict[int, int] = Field(default_factory=dict)
    content_hash: str = ""


def content_digest(content: str) -> str:
    return hashlib.sha1(content.encode("utf-8")).hexdigest()


def build_position_index(content: str) -> PositionIndex:
    index = PositionIndex(content_hash=content_digest(content))
    pending: Optional[int] = None
    entries = 0
    emitted = 0

    for i, raw_line in enumerate(content.splitlines()):
        line = raw_line.strip()
        if line.startswith(EXTINF_PREFIX):
            m = ATTR_PATTERNS["tvg_id"].search(line)
            tvg_id = m.group(1) if m and m.group(1) else f"item-{entries}"
            name = extract_display_name(line) or f"Item {entries}"

            index.by_id.setdefault(tvg_id, i)
            index.by_name.setdefault(name.lower(), i)
            for word in re.split(r"\s+", name.lower()):
                if len(word) >= MIN_PARTIAL_WORD_LENGTH:
                    positions = index.by_partial_name.setdefault(word, [])
                    if i not in positions:
                        positions.append(i)

            g = ATTR_PATTERNS["group"].search(line)
            group = g.group(1) if g else UNKNOWN_GROUP
            pending = None if is_dropped_group(group) else i
            entries += 1
        elif line and not line.startswith("#") and pending is not None:
            index.ordinals[pending] = emitted
            emitted += 1
            index.by_id.setdefault(f"media-{emitted}", pending)
            pending = None

    logger.info(f"Position index created: {entries} entries, {len(index.by_partial_name)} words")
    return index


def find_end_of_entry(lines: list[str], start: int) -> int:
    """Exclusive end line of the entry starting at *start* (its URL line included)."""
    for i in range(start + 1, min(len(lines), start + MAX_ENTRY_SPAN)):
        line = lines[i].strip()
        if line and not line.startswith("#"):
            return i + 1
    return start + 2


def find_item_lines(index: PositionIndex, lines: list[str], search_term: str) -> Optional[tuple[int, int]]:
    """Line span of the first entry matching *search_term* by id, name, or name word."""
    start = index.by_id.get(search_term)
    if start is None:
        term_lower = search_term.lower()
        start = index.by_name.get(term_lower)
        if start is None:
            for word in re.split(r"\s+", term_lower):
                if len(word) >= MIN_PARTIAL_WORD_LENGTH and index.by_partial_name.get(word):
                    start = index.by_partial_name[word][0]
                    break
    if start is None:
        return None
    return start, find_end_of_entry(lines, start)
