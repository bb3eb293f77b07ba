"""Cache service — persisted catalog snapshot and position index with expiry.

Three keys live in the ``cache_entries`` table: the parsed item list, the
position index, and their shared timestamp (epoch millis).  In-memory
mirrors are authoritative for the lifetime of the process; the persisted
copies are only trusted while younger than the configured TTL.
"""
from __future__ import annotations

import json
import logging
import os
import sqlite3
import time
from typing import TYPE_CHECKING, Callable, Optional

from pydantic import ValidationError

from m3ucatalog.database import DB_NAME, db_connect
from m3ucatalog.models.media import MediaItem
from m3ucatalog.services.position_index import PositionIndex, build_position_index, content_digest

if TYPE_CHECKING:
    from m3ucatalog.services.config_service import ConfigService

logger = logging.getLogger(__name__)

CACHE_KEY = "m3u_cache_v1"
INDEX_KEY = "m3u_index_v1"
TIMESTAMP_KEY = "m3u_timestamp_v1"


class CacheService:
    """Owns the persisted snapshot, the position index and the raw playlist text."""

    def __init__(self, config_service: "ConfigService", clock: Optional[Callable[[], float]] = None):
        self.config_service = config_service
        self.clock = clock or time.time
        self.db_path = os.path.join(config_service.data_dir, DB_NAME)

        self._items: Optional[list[MediaItem]] = None
        self._position_index: Optional[PositionIndex] = None
        self._file_content: Optional[str] = None

    # ------------------------------------------------------------------
    # Key-value helpers
    # ------------------------------------------------------------------

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def _read_entry(self, key: str) -> Optional[str]:
        conn = db_connect(self.db_path)
        try:
            row = conn.execute("SELECT value FROM cache_entries WHERE key = ?", (key,)).fetchone()
            return row["value"] if row else None
        finally:
            conn.close()

    def _write_entries(self, entries: dict[str, str]) -> None:
        now = self._now_ms()
        conn = db_connect(self.db_path)
        try:
            conn.executemany(
                "INSERT OR REPLACE INTO cache_entries (key, value, updated_at) VALUES (?,?,?)",
                [(key, value, now) for key, value in entries.items()],
            )
            conn.commit()
        finally:
            conn.close()

    def _delete_entries(self, keys: tuple[str, ...]) -> None:
        conn = db_connect(self.db_path)
        try:
            placeholders = ",".join("?" * len(keys))
            conn.execute(f"DELETE FROM cache_entries WHERE key IN ({placeholders})", keys)
            conn.commit()
        finally:
            conn.close()

    def get_timestamp(self) -> Optional[int]:
        try:
            raw = self._read_entry(TIMESTAMP_KEY)
            return int(raw) if raw else None
        except (sqlite3.Error, ValueError) as e:
            logger.warning(f"Failed to read cache timestamp: {e}")
            return None

    # ------------------------------------------------------------------
    # Cache validity
    # ------------------------------------------------------------------

    def is_cache_valid(self) -> bool:
        timestamp = self.get_timestamp()
        if timestamp is None:
            return False
        age_ms = self._now_ms() - timestamp
        return age_ms < self.config_service.get_cache_ttl() * 1000

    # ------------------------------------------------------------------
    # Parsed items
    # ------------------------------------------------------------------

    def load_items(self) -> Optional[list[MediaItem]]:
        """In-memory items, else a persisted snapshot that has not expired."""
        if self._items is not None:
            return self._items
        if not self.is_cache_valid():
            return None
        try:
            raw = self._read_entry(CACHE_KEY)
            if not raw:
                return None
            self._items = [MediaItem.model_validate(entry) for entry in json.loads(raw)]
            logger.info(f"Loaded {len(self._items)} items from cache snapshot")
            return self._items
        except (sqlite3.Error, json.JSONDecodeError, ValidationError, TypeError) as e:
            logger.error(f"Failed to load cache snapshot: {e}")
            return None

    def save_items(self, items: list[MediaItem]) -> None:
        """Persist a new snapshot; the position index of the previous text is dropped."""
        self._items = items
        self._position_index = None
        try:
            payload = json.dumps([item.model_dump(exclude_none=True) for item in items], ensure_ascii=False)
            self._delete_entries((INDEX_KEY,))
            self._write_entries({CACHE_KEY: payload, TIMESTAMP_KEY: str(self._now_ms())})
            logger.info(f"Cache snapshot saved: {len(items)} items")
        except sqlite3.Error as e:
            logger.error(f"Failed to save cache snapshot: {e}")

    @property
    def items(self) -> Optional[list[MediaItem]]:
        return self._items

    # ------------------------------------------------------------------
    # Raw text and position index
    # ------------------------------------------------------------------

    @property
    def file_content(self) -> Optional[str]:
        return self._file_content

    def set_file_content(self, content: str) -> None:
        if content != self._file_content:
            self._position_index = None
        self._file_content = content

    def load_position_index(self) -> Optional[PositionIndex]:
        if self._position_index is not None:
            return self._position_index
        if not self.is_cache_valid():
            return None
        try:
            raw = self._read_entry(INDEX_KEY)
            if not raw:
                return None
            self._position_index = PositionIndex.model_validate_json(raw)
            return self._position_index
        except (sqlite3.Error, ValidationError) as e:
            logger.error(f"Failed to load position index: {e}")
            return None

    def get_position_index(self, content: str) -> PositionIndex:
        """Cached index for *content*, or one built from it and persisted."""
        index = self.load_position_index()
        if index is not None and index.content_hash == content_digest(content):
            return index
        if index is not None:
            logger.info("Position index was built from another playlist text, rebuilding")
        index = build_position_index(content)
        self._position_index = index
        try:
            self._write_entries({INDEX_KEY: index.model_dump_json(), TIMESTAMP_KEY: str(self._now_ms())})
        except sqlite3.Error as e:
            logger.error(f"Failed to save position index: {e}")
        return index

    # ------------------------------------------------------------------
    # Clear / status
    # ------------------------------------------------------------------

    def clear_cache(self) -> None:
        self._items = None
        self._position_index = None
        self._file_content = None
        try:
            self._delete_entries((CACHE_KEY, INDEX_KEY, TIMESTAMP_KEY))
            logger.info("Cache cleared")
        except sqlite3.Error as e:
            logger.error(f"Failed to clear cache in DB: {e}")

    def status(self) -> dict:
        timestamp = self.get_timestamp()
        return {
            "timestamp": timestamp,
            "age_seconds": (self._now_ms() - timestamp) / 1000 if timestamp else None,
            "cache_valid": self.is_cache_valid(),
            "ttl_seconds": self.config_service.get_cache_ttl(),
            "items_in_memory": len(self._items) if self._items is not None else 0,
            "position_index_ready": self._position_index is not None,
            "raw_text_in_memory": self._file_content is not None,
        }
