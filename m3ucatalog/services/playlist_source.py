"""Playlist source — resolves the raw M3U text from local files, memory, or the network."""
from __future__ import annotations

import logging
import os
import time
from typing import TYPE_CHECKING, Optional

import httpx

if TYPE_CHECKING:
    from m3ucatalog.services.config_service import ConfigService
    from m3ucatalog.services.http_client import HttpClientService

logger = logging.getLogger(__name__)

M3U_SIGNATURE = "#EXTM3U"

FETCH_HEADERS = {
    "Accept": "*/*",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}


class PlaylistUnavailableError(Exception):
    """Every playlist source failed."""


class PlaylistSource:
    """Tries each source in a fixed order; the first success wins."""

    def __init__(self, config_service: "ConfigService", http_client: "HttpClientService"):
        self.config_service = config_service
        self.http_client = http_client

    async def fetch_playlist_text(self) -> str:
        settings = self.config_service.get_playlist_settings()

        for label, path in (
            ("local file", settings.get("local_file", "")),
            ("served file", settings.get("served_file", "")),
        ):
            text = self._read_local(self.config_service.resolve_data_path(path))
            if text is not None:
                logger.info(f"Playlist loaded from {label} {path} ({len(text)} bytes)")
                return text

        fallback = settings.get("fallback_text", "")
        if fallback:
            logger.info("Using in-memory fallback playlist")
            return fallback

        url = self.config_service.get_playlist_url()
        timeout = settings.get("timeout", 15.0)
        if url:
            text = await self._fetch_remote(url, timeout)
            if text is not None:
                return text

            location = await self._resolve_redirect(url, timeout)
            if location:
                text = await self._fetch_remote(location, timeout)
                if text is not None:
                    return text

        raise PlaylistUnavailableError("Could not load the M3U playlist from any source")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _read_local(path: str) -> Optional[str]:
        if not path or not os.path.isfile(path):
            return None
        try:
            with open(path, encoding="utf-8", errors="replace") as f:
                content = f.read()
        except OSError as e:
            logger.warning(f"Failed to read playlist file {path}: {e}")
            return None
        if M3U_SIGNATURE not in content:
            logger.warning(f"Playlist file {path} has no {M3U_SIGNATURE} header, skipping")
            return None
        return content

    async def _fetch_remote(self, url: str, timeout: float) -> Optional[str]:
        client = await self.http_client.get_client()
        start_time = time.time()
        try:
            response = await client.get(url, headers=FETCH_HEADERS, timeout=timeout)
            response.raise_for_status()
        except httpx.TimeoutException:
            logger.error(f"Timeout fetching playlist from {url}")
            return None
        except httpx.HTTPError as e:
            logger.error(f"Error fetching playlist from {url}: {e}")
            return None

        elapsed = time.time() - start_time
        content_type = response.headers.get("content-type", "")
        text = response.text
        if "html" in content_type and M3U_SIGNATURE not in text:
            logger.error(f"Response from {url} is not an M3U playlist ({content_type})")
            return None

        logger.info(f"Remote playlist loaded: {len(text)} bytes in {elapsed:.1f}s")
        return text

    async def _resolve_redirect(self, url: str, timeout: float) -> Optional[str]:
        """Read the Location header once with auto-follow disabled."""
        client = await self.http_client.get_client()
        try:
            response = await client.get(url, follow_redirects=False, timeout=timeout)
        except httpx.HTTPError as e:
            logger.error(f"Error resolving redirect for {url}: {e}")
            return None

        if not 200 <= response.status_code < 400:
            return None
        location = response.headers.get("location")
        if not location:
            return None
        # Relative Location headers are resolved against the original URL
        location = str(response.url.join(location))
        logger.info(f"Playlist URL redirects to {location}")
        return location
