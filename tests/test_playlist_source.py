"""Tests for playlist source resolution."""

import asyncio

import httpx
import pytest
from conftest import SAMPLE_PLAYLIST, write_data_dir

from m3ucatalog.services.config_service import ConfigService
from m3ucatalog.services.http_client import HttpClientService
from m3ucatalog.services.playlist_source import PlaylistSource, PlaylistUnavailableError


def _source(data_dir, handler=None):
    cfg = ConfigService(data_dir)
    cfg.load()
    transport = httpx.MockTransport(handler) if handler else None
    return PlaylistSource(cfg, HttpClientService(transport=transport))


def _fetch(source):
    async def run():
        try:
            return await source.fetch_playlist_text()
        finally:
            await source.http_client.close()

    return asyncio.run(run())


class TestLocalSources:
    """Files and the in-memory fallback come before the network."""

    def test_local_file_first(self, tmp_path):
        source = _source(write_data_dir(tmp_path), handler=lambda r: httpx.Response(500))
        assert _fetch(source) == SAMPLE_PLAYLIST

    def test_served_file(self, tmp_path):
        data_dir = write_data_dir(tmp_path, playlist_text=None)
        (tmp_path / "public").mkdir()
        (tmp_path / "public" / "lista-iptv.m3u").write_text("#EXTM3U\n", encoding="utf-8")
        assert _fetch(_source(data_dir)) == "#EXTM3U\n"

    def test_file_without_signature_is_skipped(self, tmp_path):
        data_dir = write_data_dir(
            tmp_path,
            playlist_text="<html>nope</html>",
            playlist={"fallback_text": "#EXTM3U\nfallback"},
        )
        assert _fetch(_source(data_dir)) == "#EXTM3U\nfallback"


class TestRemoteSource:
    """Network fetch, HTML rejection and manual redirect resolution."""

    def test_remote_fetch_sends_no_cache_headers(self, tmp_path):
        seen = {}

        def handler(request):
            seen["headers"] = request.headers
            return httpx.Response(200, text=SAMPLE_PLAYLIST, headers={"content-type": "audio/x-mpegurl"})

        source = _source(write_data_dir(tmp_path, playlist_text=None), handler)
        assert _fetch(source) == SAMPLE_PLAYLIST
        headers = seen["headers"]
        assert headers.get("cache-control") == "no-cache"
        assert headers.get("pragma") == "no-cache"
        assert headers.get("accept") == "*/*"

    def test_html_landing_page_is_rejected(self, tmp_path):
        def handler(request):
            return httpx.Response(200, text="<html>login</html>", headers={"content-type": "text/html"})

        source = _source(write_data_dir(tmp_path, playlist_text=None), handler)
        with pytest.raises(PlaylistUnavailableError):
            _fetch(source)

    def test_html_content_type_with_signature_is_accepted(self, tmp_path):
        def handler(request):
            return httpx.Response(200, text=SAMPLE_PLAYLIST, headers={"content-type": "text/html"})

        source = _source(write_data_dir(tmp_path, playlist_text=None), handler)
        assert _fetch(source) == SAMPLE_PLAYLIST

    def test_manual_redirect_is_retried_once(self, tmp_path):
        calls = []

        def handler(request):
            calls.append(request.url.path)
            if request.url.path == "/list.m3u":
                if calls.count("/list.m3u") == 1:
                    return httpx.Response(503)
                return httpx.Response(302, headers={"location": "/real.m3u"})
            if request.url.path == "/real.m3u":
                return httpx.Response(200, text=SAMPLE_PLAYLIST)
            return httpx.Response(404)

        source = _source(write_data_dir(tmp_path, playlist_text=None), handler)
        assert _fetch(source) == SAMPLE_PLAYLIST
        assert calls == ["/list.m3u", "/list.m3u", "/real.m3u"]

    def test_all_sources_exhausted(self, tmp_path):
        def handler(request):
            raise httpx.ConnectError("offline", request=request)

        source = _source(write_data_dir(tmp_path, playlist_text=None), handler)
        with pytest.raises(PlaylistUnavailableError):
            _fetch(source)
