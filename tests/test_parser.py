"""Tests for the M3U parser."""

from conftest import SAMPLE_PLAYLIST, make_flag_policy

from m3ucatalog.models.media import DEFAULT_GENRE
from m3ucatalog.services.m3u_service import (
    AwaitingEntry,
    M3uParser,
    extract_attributes,
    extract_display_name,
    parse_m3u_playlist,
)


def _parse(content, **policy):
    return M3uParser(make_flag_policy(**policy)).parse(content)


class TestParseScenarios:
    """End-to-end behaviour on single entries."""

    def test_movie_with_year_and_genre(self):
        items = _parse(
            '#EXTM3U\n'
            '#EXTINF:-1 tvg-id="" tvg-name="" tvg-logo="" group-title="Filmes | Ação",Duro de Matar (1988)\n'
            'http://example/x.mp4\n'
        )
        assert len(items) == 1
        item = items[0]
        assert item.name == "Duro de Matar"
        assert item.year == "1988"
        assert item.type == "movie"
        assert item.genre == "Ação"
        assert item.url == "http://example/x.mp4"
        assert item.id == "media-1"

    def test_series_episode_is_cleaned(self):
        items = _parse(
            '#EXTINF:-1 tvg-id="" tvg-name="" tvg-logo="" group-title="Séries",Breaking Bad S01E03\n'
            'http://example/bb.mp4\n'
        )
        item = items[0]
        assert item.name == "Breaking Bad"
        assert item.season == "01"
        assert item.episode == "03"
        assert item.type == "series"
        assert item.description == "Breaking Bad S01E03"

    def test_channel_group_is_dropped(self):
        base = (
            '#EXTINF:-1 tvg-id="" group-title="Esportes",ESPN\n'
            'http://example/espn.ts\n'
        )
        dropped = (
            '#EXTINF:-1 tvg-id="" group-title="Canais | Abertos",Globo\n'
            'http://example/globo.ts\n'
        )
        assert len(_parse(base + dropped)) == len(_parse(base)) == 1
        assert all(i.name != "Globo" for i in _parse(dropped + base))

    def test_dropped_group_is_case_insensitive(self):
        items = _parse('#EXTINF:-1 group-title="CANAIS HD",Record\nhttp://example/r.ts\n')
        assert items == []

    def test_sequential_ids_skip_dropped_entries(self):
        items = _parse(SAMPLE_PLAYLIST)
        assert [i.id for i in items] == [f"media-{n}" for n in range(1, len(items) + 1)]

    def test_id_offset(self):
        items = M3uParser(make_flag_policy()).parse(
            '#EXTINF:-1 group-title="Filmes",Alien (1979)\nhttp://example/a.mp4\n', id_offset=41
        )
        assert items[0].id == "media-42"


class TestMalformedInput:
    """Broken entries are skipped without aborting the pass."""

    def test_extinf_without_url_is_discarded(self):
        items = _parse(
            '#EXTINF:-1 group-title="Filmes",Sem URL\n'
            '#EXTINF:-1 group-title="Filmes",Com URL (2001)\n'
            'http://example/ok.mp4\n'
        )
        assert [i.name for i in items] == ["Com URL"]

    def test_trailing_extinf_is_discarded(self):
        items = _parse('#EXTINF:-1 group-title="Filmes",Último\n')
        assert items == []

    def test_comment_lines_are_not_urls(self):
        items = _parse(
            '#EXTINF:-1 group-title="Filmes",Matrix (1999)\n'
            '#EXTVLCOPT:http-user-agent=Mozilla\n'
            'http://example/matrix.mp4\n'
        )
        assert items[0].url == "http://example/matrix.mp4"

    def test_missing_attributes_are_none(self):
        items = _parse('#EXTINF:-1,Canal Sem Atributos\nhttp://example/c.ts\n')
        item = items[0]
        assert item.tvg_id is None
        assert item.tvg_logo is None
        assert item.group == "Unknown"

    def test_unquoted_attribute_degrades(self):
        attrs = extract_attributes('#EXTINF:-1 tvg-id=abc group-title="Filmes",X')
        assert attrs["tvg_id"] is None
        assert attrs["group"] == "Filmes"

    def test_display_name_with_comma_in_attribute(self):
        line = '#EXTINF:-1 tvg-name="Tom, Jerry" group-title="Infantil",Tom e Jerry'
        assert extract_display_name(line) == "Tom e Jerry"

    def test_display_name_fallback_to_last_comma(self):
        assert extract_display_name('#EXTINF:-1 tvg-id="x group-title="y",Nome') == "Nome"

    def test_empty_input(self):
        assert parse_m3u_playlist("") == []


class TestParseProperties:
    """Invariants over the sample playlist."""

    def test_idempotent(self):
        first = _parse(SAMPLE_PLAYLIST, featured=["Duro de Matar"])
        second = _parse(SAMPLE_PLAYLIST, featured=["Duro de Matar"])
        assert [i.model_dump() for i in first] == [i.model_dump() for i in second]

    def test_no_dropped_groups(self):
        for item in _parse(SAMPLE_PLAYLIST):
            assert not item.group.lower().startswith("canais")

    def test_type_and_genre_always_set(self):
        for item in _parse(SAMPLE_PLAYLIST):
            assert item.type in ("movie", "series", "channel")
            assert item.genre

    def test_genre_floor(self):
        items = _parse('#EXTINF:-1 group-title="",Sem Grupo\nhttp://example/s.ts\n')
        assert items[0].genre == DEFAULT_GENRE

    def test_episode_padding(self):
        items = _parse('#EXTINF:-1 group-title="Séries",Dark S1E2\nhttp://example/d.mp4\n')
        assert items[0].season == "01"
        assert items[0].episode == "02"

    def test_orphan_and_drop_counts(self):
        items = _parse(SAMPLE_PLAYLIST)
        names = [i.name for i in items]
        assert "Globo HD" not in names
        assert "Sem URL" not in names
        assert len(items) == 9


class TestFlagPolicy:
    """Highlight flags are deterministic."""

    def test_recent_year_is_new(self):
        items = {i.name: i for i in _parse(SAMPLE_PLAYLIST)}
        assert items["Oppenheimer"].is_new is True
        assert items["Duro de Matar"].is_new is False

    def test_curated_featured(self):
        items = {i.name: i for i in _parse(SAMPLE_PLAYLIST, featured=["duro de matar"])}
        assert items["Duro de Matar"].is_featured is True
        assert items["Oppenheimer"].is_featured is False

    def test_curated_new_by_tvg_id(self):
        items = {i.name: i for i in _parse(SAMPLE_PLAYLIST, new=["espn"])}
        assert items["ESPN"].is_new is True

    def test_logo_mirrors_tvg_logo(self):
        item = next(i for i in _parse(SAMPLE_PLAYLIST) if i.tvg_id == "bb")
        assert item.logo == item.poster == "http://img/bb.png"


def test_parser_states_are_values():
    assert AwaitingEntry() == AwaitingEntry()
