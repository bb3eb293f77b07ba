"""Configuration service — loads, saves, and provides access to AppConfig."""
from __future__ import annotations

import json
import logging
import os

from pydantic import ValidationError

from m3ucatalog.models.config import AppConfig

logger = logging.getLogger(__name__)


class ConfigService:
    """Manages application configuration with file persistence.

    The config is kept in-memory after first load and re-read on explicit
    ``load()`` or ``reload()`` calls.  Every service that needs a setting
    should go through this service rather than reading the JSON directly.
    """

    def __init__(self, data_dir: str):
        self.data_dir = data_dir
        self.config_file = os.path.join(data_dir, "config.json")
        self._config: dict = self._default_config()

    @staticmethod
    def _default_config() -> dict:
        return AppConfig().model_dump()

    # ------------------------------------------------------------------
    # Load / Save
    # ------------------------------------------------------------------

    def load(self) -> dict:
        """Load configuration from disk, filling every missing key from defaults."""
        if os.path.exists(self.config_file):
            try:
                with open(self.config_file, encoding="utf-8") as f:
                    raw = json.load(f)
                self._config = AppConfig.model_validate(raw).model_dump()
                return self._config
            except (OSError, json.JSONDecodeError, ValidationError) as e:
                logger.error(f"Error loading config: {e}")

        self._config = self._default_config()
        return self._config

    def reload(self) -> dict:
        """Alias for ``load()``."""
        return self.load()

    def save(self, config: dict | None = None) -> None:
        """Persist the config to disk."""
        if config is not None:
            self._config = AppConfig.model_validate(config).model_dump()
        os.makedirs(os.path.dirname(self.config_file) or ".", exist_ok=True)
        with open(self.config_file, "w", encoding="utf-8") as f:
            json.dump(self._config, f, indent=2, ensure_ascii=False)

    @property
    def config(self) -> dict:
        return self._config

    # ------------------------------------------------------------------
    # Convenience accessors
    # ------------------------------------------------------------------

    def get_playlist_settings(self) -> dict:
        return self._config.get("playlist", {})

    def get_playlist_url(self) -> str:
        return self.get_playlist_settings().get("url", "")

    def resolve_data_path(self, path: str) -> str:
        """Relative paths are taken from the data directory."""
        if not path or os.path.isabs(path):
            return path
        return os.path.join(self.data_dir, path)

    def get_cache_ttl(self) -> int:
        return self._config.get("options", {}).get("cache_ttl", 86400)

    def get_page_size(self) -> int:
        return max(self._config.get("options", {}).get("page_size", 30), 1)

    page_size = property(get_page_size)

    def get_search_debounce(self) -> float:
        return self._config.get("options", {}).get("search_debounce_ms", 300) / 1000

    def get_index_build_delay(self) -> float:
        return self._config.get("options", {}).get("index_build_delay_ms", 100) / 1000

    def get_recent_years(self) -> int:
        return self._config.get("options", {}).get("recent_years", 1)

    def get_curation(self) -> dict:
        return self._config.get("curation", {"featured": [], "new": []})

    def get_metadata_settings(self) -> dict:
        return self._config.get("metadata", {})
