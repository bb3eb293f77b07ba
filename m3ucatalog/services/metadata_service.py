"""Metadata service — best-effort enrichment from an OMDb-compatible API."""
from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any, Optional

import httpx
from rapidfuzz import fuzz

from m3ucatalog.models.media import DEFAULT_GENRE, MediaItem
from m3ucatalog.services.classifier import EPISODE_RE, YEAR_RE

if TYPE_CHECKING:
    from m3ucatalog.services.config_service import ConfigService
    from m3ucatalog.services.http_client import HttpClientService

logger = logging.getLogger(__name__)

NO_DESCRIPTION = "Sem descrição disponível."
PLACEHOLDER_DESCRIPTIONS = {"", NO_DESCRIPTION, "No description available."}

# search results below this title similarity are ignored
MATCH_THRESHOLD = 60


def clean_title(item: MediaItem) -> tuple[str, Optional[str]]:
    """Title without episode markers, plus the year to query with."""
    title = EPISODE_RE.sub("", item.name).strip()
    year = item.year
    m = YEAR_RE.search(title)
    if m:
        year = m.group(1)
        title = YEAR_RE.sub("", title, count=1).strip()
    title = re.sub(r"\s{2,}", " ", title)
    return title, year


def first_of(value: Optional[str]) -> Optional[str]:
    if not value or value == "N/A":
        return None
    return value.split(",")[0].strip() or None


class MetadataService:
    """Looks up plot/genre/country/year by title; never raises to callers."""

    def __init__(self, config_service: "ConfigService", http_client: "HttpClientService"):
        self.config_service = config_service
        self.http_client = http_client
        self._cache: dict[str, dict] = {}

    def clear_cache(self) -> None:
        self._cache.clear()

    async def _query(self, params: dict) -> Optional[dict]:
        settings = self.config_service.get_metadata_settings()
        client = await self.http_client.get_client()
        try:
            response = await client.get(
                settings.get("base_url", "https://www.omdbapi.com/"),
                params={"apikey": settings.get("api_key", ""), **params},
                timeout=settings.get("timeout", 10.0),
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Metadata request failed ({params}): {e}")
            return None
        if not isinstance(data, dict) or data.get("Response") != "True":
            return None
        return data

    async def fetch_movie_info(self, title: str, year: Optional[str] = None) -> Optional[dict]:
        cache_key = f"{title}-{year}".lower() if year else title.lower()
        if cache_key in self._cache:
            return self._cache[cache_key]

        params: dict[str, Any] = {"t": title}
        if year:
            params["y"] = year
        data = await self._query(params)

        if data is None:
            search = await self._query({"s": title})
            best = self._best_match(title, search.get("Search", []) if search else [])
            if best and best.get("imdbID"):
                data = await self._query({"i": best["imdbID"]})

        if data is None:
            logger.info(f"No metadata found for: {title}")
            return None

        logger.info(f"Metadata found for: {title} -> {data.get('Title')}")
        self._cache[cache_key] = data
        return data

    @staticmethod
    def _best_match(title: str, results: list) -> Optional[dict]:
        best, best_score = None, 0.0
        for result in results:
            if not isinstance(result, dict):
                continue
            score = fuzz.token_sort_ratio(title.lower(), str(result.get("Title", "")).lower())
            if score >= MATCH_THRESHOLD and score > best_score:
                best, best_score = result, score
        return best

    async def enrich(self, item: MediaItem) -> MediaItem:
        if item.description not in PLACEHOLDER_DESCRIPTIONS:
            return item
        if not self.config_service.get_metadata_settings().get("enabled", True):
            return item.model_copy(update={"description": item.description or NO_DESCRIPTION})

        title, year = clean_title(item)
        info = await self.fetch_movie_info(title, year) if title else None
        if not info:
            return item.model_copy(update={"description": item.description or NO_DESCRIPTION})

        plot = info.get("Plot")
        update = {
            "description": plot if plot and plot != "N/A" else (item.description or NO_DESCRIPTION),
            "country": item.country or first_of(info.get("Country")),
            "year": item.year or (info.get("Year") if info.get("Year") not in (None, "N/A") else None),
        }
        # keep a derived genre unless it is the catch-all
        if not item.genre or item.genre == DEFAULT_GENRE:
            update["genre"] = first_of(info.get("Genre")) or item.genre
        return item.model_copy(update=update)
