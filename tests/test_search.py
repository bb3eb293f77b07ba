"""Tests for the inverted search index and the linear fallback."""

from conftest import SAMPLE_PLAYLIST, make_flag_policy

from m3ucatalog.services.m3u_service import M3uParser
from m3ucatalog.services.search_service import SearchIndex, indexed_fields, linear_search, tokenize
from m3ucatalog.services.series_service import organize_series_content

SCI_FI_PLAYLIST = """#EXTM3U
#EXTINF:-1 tvg-id="" tvg-name="" tvg-logo="" group-title="Filmes | Sci-Fi",Blade Runner (1982)
http://example/blade.mp4
#EXTINF:-1 tvg-id="" tvg-name="" tvg-logo="" group-title="Filmes | Fi Sci",Duna (2021)
http://example/dune.mp4
"""


def _all_items():
    return organize_series_content(M3uParser(make_flag_policy()).parse(SAMPLE_PLAYLIST)).all_items


def _matches(item, word):
    return any(word in field.lower() for field in indexed_fields(item))


class TestSearchIndex:
    """Index lookups."""

    def test_single_word_substring(self):
        index = SearchIndex(_all_items())
        results = index.search("break")
        assert results
        assert all(_matches(i, "break") for i in results)
        assert "series-breaking-bad" in {i.id for i in results}

    def test_multi_word_is_and(self):
        index = SearchIndex(_all_items())
        results = index.search("filmes ação")
        assert [i.name for i in results] == ["Duro de Matar"]
        for item in results:
            assert _matches(item, "filmes") and _matches(item, "ação")

    def test_case_insensitive(self):
        index = SearchIndex(_all_items())
        assert [i.id for i in index.search("ESPN")] == [i.id for i in index.search("espn")]

    def test_no_match(self):
        assert SearchIndex(_all_items()).search("inexistente") == []

    def test_blank_term(self):
        assert SearchIndex(_all_items()).search("   ") == []

    def test_results_keep_catalog_order(self):
        items = _all_items()
        order = {item.id: n for n, item in enumerate(items)}
        results = SearchIndex(items).search("bad")
        positions = [order[i.id] for i in results]
        assert positions == sorted(positions)

    def test_index_size(self):
        items = _all_items()
        index = SearchIndex(items)
        assert len(index) == len({i.id for i in items})
        assert index.word_count > 0


class TestLinearSearch:
    """Scan used until the index is ready."""

    def test_agrees_with_index_for_single_word(self):
        items = _all_items()
        index = SearchIndex(items)
        for term in ("crown", "séries", "terra"):
            assert {i.id for i in linear_search(items, term)} == {i.id for i in index.search(term)}

    def test_monotonic(self):
        for item in linear_search(_all_items(), "Bad"):
            assert _matches(item, "bad")

    def test_blank(self):
        assert linear_search(_all_items(), "") == []

    def test_punctuated_and_multi_word_terms_agree_with_index(self):
        items = [*_all_items(), *M3uParser(make_flag_policy()).parse(SCI_FI_PLAYLIST, id_offset=100)]
        index = SearchIndex(items)
        for term in ("sci-fi", "fi sci", "filmes ação", "breaking-bad", "bad s01"):
            assert [i.id for i in linear_search(items, term)] == [i.id for i in index.search(term)]
        assert [i.name for i in linear_search(items, "sci-fi")] == ["Blade Runner", "Duna"]


def test_tokenize():
    assert tokenize("Filmes | Ação") == ["filmes", "ação"]
    assert tokenize("a b cd", min_length=2) == ["cd"]
