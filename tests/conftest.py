"""Shared fixtures: a small playlist covering every classification path."""

import json
from datetime import datetime

import pytest

from m3ucatalog.database import DB_NAME, init_db
from m3ucatalog.services.config_service import ConfigService
from m3ucatalog.services.m3u_service import FlagPolicy

SAMPLE_PLAYLIST = """#EXTM3U
#EXTINF:-1 tvg-id="" tvg-name="" tvg-logo="" group-title="Filmes | Ação",Duro de Matar (1988)
http://example/x.mp4
#EXTINF:-1 tvg-id="bb" tvg-name="Breaking Bad S01E03" tvg-logo="http://img/bb.png" group-title="Séries",Breaking Bad S01E03
http://example/bb103.mp4
#EXTINF:-1 tvg-id="bb" tvg-name="Breaking Bad S01E01" tvg-logo="http://img/bb.png" group-title="Séries",Breaking Bad S01E01
http://example/bb101.mp4
#EXTINF:-1 tvg-id="bb" tvg-name="Breaking Bad S02E01" tvg-logo="http://img/bb.png" group-title="Séries",Breaking Bad S02E01
http://example/bb201.mp4
#EXTINF:-1 tvg-id="globo" tvg-name="Globo" tvg-logo="" group-title="Canais | Abertos",Globo HD
http://example/globo.ts
#EXTINF:-1 tvg-id="espn" tvg-name="ESPN" tvg-logo="" group-title="Esportes",ESPN
http://example/espn.ts
#EXTINF:-1 tvg-id="" tvg-name="" tvg-logo="" group-title="Filmes | Comédia",Se Beber Não Case (2009)
http://example/hangover.mp4
#EXTINF:-1 tvg-id="" tvg-name="" tvg-logo="" group-title="Lançamentos",Oppenheimer (2023)
http://example/opp.mp4
#EXTINF:-1 tvg-id="" tvg-name="" tvg-logo="" group-title="Documentários TV",Planeta Terra (2006)
http://example/planet.mp4
#EXTINF:-1 tvg-id="orphan" tvg-name="" tvg-logo="" group-title="Filmes",Sem URL
#EXTINF:-1 tvg-id="" tvg-name="" tvg-logo="" group-title="Séries | Drama",The Crown
http://example/crown.mp4
"""

FIXED_NOW = datetime(2024, 6, 1, 12, 0, 0)


def fixed_clock():
    return FIXED_NOW


def make_flag_policy(featured=(), new=()):
    return FlagPolicy(clock=fixed_clock, recent_years=1, featured=featured, new=new)


def write_data_dir(path, playlist_text=SAMPLE_PLAYLIST, **overrides):
    """Write config.json (and the local playlist file when given) under *path*."""
    config = {
        "playlist": {"url": "http://playlist.test/list.m3u", "fallback_text": ""},
        "options": {"search_debounce_ms": 10, "index_build_delay_ms": 0},
        "curation": {"featured": ["Duro de Matar"], "new": []},
        "metadata": {"api_key": "test", "base_url": "http://meta.test/"},
    }
    for section, values in overrides.items():
        config.setdefault(section, {}).update(values)
    (path / "config.json").write_text(json.dumps(config), encoding="utf-8")
    if playlist_text is not None:
        (path / "lista-iptv.m3u").write_text(playlist_text, encoding="utf-8")
    return str(path)


@pytest.fixture()
def data_dir(tmp_path):
    return write_data_dir(tmp_path)


@pytest.fixture()
def config_service(data_dir):
    cfg = ConfigService(data_dir)
    cfg.load()
    init_db(f"{data_dir}/{DB_NAME}")
    return cfg
