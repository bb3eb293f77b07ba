"""Tests for the raw-text position index."""

from conftest import SAMPLE_PLAYLIST, make_flag_policy

from m3ucatalog.services.m3u_service import M3uParser
from m3ucatalog.services.position_index import (
    build_position_index,
    find_end_of_entry,
    find_item_lines,
)


def _fragment(term):
    index = build_position_index(SAMPLE_PLAYLIST)
    lines = SAMPLE_PLAYLIST.splitlines()
    span = find_item_lines(index, lines, term)
    if span is None:
        return None
    start, end = span
    parser = M3uParser(make_flag_policy())
    return parser.parse("\n".join(lines[start:end]), id_offset=index.ordinals.get(start, 0))


class TestBuildPositionIndex:
    """Offsets recorded by the single pass."""

    def test_tvg_id_and_name(self):
        index = build_position_index(SAMPLE_PLAYLIST)
        lines = SAMPLE_PLAYLIST.splitlines()
        assert "ESPN" in lines[index.by_id["espn"]]
        assert "Oppenheimer" in lines[index.by_name["oppenheimer (2023)"]]

    def test_first_occurrence_wins(self):
        index = build_position_index(SAMPLE_PLAYLIST)
        assert "S01E03" in SAMPLE_PLAYLIST.splitlines()[index.by_id["bb"]]

    def test_partial_words(self):
        index = build_position_index(SAMPLE_PLAYLIST)
        assert len(index.by_partial_name["breaking"]) == 3
        assert "bad" not in index.by_partial_name

    def test_media_ids_match_parser(self):
        index = build_position_index(SAMPLE_PLAYLIST)
        parsed = M3uParser(make_flag_policy()).parse(SAMPLE_PLAYLIST)
        lines = SAMPLE_PLAYLIST.splitlines()
        for item in parsed:
            assert item.url == lines[index.by_id[item.id] + 1].strip()

    def test_serializes(self):
        index = build_position_index(SAMPLE_PLAYLIST)
        restored = type(index).model_validate_json(index.model_dump_json())
        assert restored.ordinals == index.ordinals


class TestFindItemLines:
    """Fragment lookups."""

    def test_by_media_id(self):
        items = _fragment("media-9")
        assert [(i.id, i.name) for i in items] == [("media-9", "The Crown")]

    def test_by_partial_name(self):
        items = _fragment("Oppenheimer")
        assert items[0].id == "media-7"
        assert items[0].year == "2023"

    def test_miss(self):
        assert _fragment("nada por aqui") is None

    def test_end_of_entry_skips_comments(self):
        lines = ["#EXTINF:-1,X", "#EXTVLCOPT:foo", "http://x", "#EXTINF:-1,Y"]
        assert find_end_of_entry(lines, 0) == 3
