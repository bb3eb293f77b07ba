"""Search service — inverted word index over parsed catalog items."""
from __future__ import annotations

import logging
import re
import time
from typing import Iterable

from m3ucatalog.models.media import MediaItem

logger = logging.getLogger(__name__)

MIN_WORD_LENGTH = 2

_WORD_SPLIT_RE = re.compile(r"[\W_]+", re.UNICODE)


def indexed_fields(item: MediaItem) -> list[str]:
    return [f for f in (item.name, item.tvg_name, item.genre, item.group) if f]


def tokenize(text: str, min_length: int = 1) -> list[str]:
    return [w for w in _WORD_SPLIT_RE.split(text.lower()) if len(w) >= min_length]


class SearchIndex:
    """Maps lower-cased words of name/tvg-name/genre/group to item ids."""

    def __init__(self, items: Iterable[MediaItem]):
        self._items: dict[str, MediaItem] = {}
        self._order: dict[str, int] = {}
        self._words: dict[str, set[str]] = {}
        start = time.time()
        for item in items:
            if item.id in self._items:
                continue
            self._order[item.id] = len(self._order)
            self._items[item.id] = item
            for field in indexed_fields(item):
                for word in tokenize(field, MIN_WORD_LENGTH):
                    self._words.setdefault(word, set()).add(item.id)
        logger.info(
            f"Search index built: {len(self._words)} words, {len(self._items)} items "
            f"in {(time.time() - start) * 1000:.0f}ms"
        )

    def __len__(self) -> int:
        return len(self._items)

    @property
    def word_count(self) -> int:
        return len(self._words)

    def _candidates(self, word: str) -> set[str]:
        """Ids whose indexed words equal or contain *word*."""
        ids = set(self._words.get(word, ()))
        for key, key_ids in self._words.items():
            if word in key:
                ids |= key_ids
        return ids

    def search(self, term: str) -> list[MediaItem]:
        words = tokenize(term)
        if not words:
            return []
        result = self._candidates(words[0])
        for word in words[1:]:
            if not result:
                break
            result &= self._candidates(word)
        return [self._items[i] for i in sorted(result, key=self._order.__getitem__)]


def linear_search(items: Iterable[MediaItem], term: str) -> list[MediaItem]:
    """Scan used while the index is not ready.

    Query and fields are split into words as the index splits them, so both
    paths return the same items for a term.
    """
    words = tokenize(term)
    if not words:
        return []
    results = []
    for item in items:
        item_words = [w for field in indexed_fields(item) for w in tokenize(field, MIN_WORD_LENGTH)]
        if all(any(word in item_word for item_word in item_words) for word in words):
            results.append(item)
    return results
