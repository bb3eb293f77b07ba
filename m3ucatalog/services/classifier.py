"""Classifier — ordered keyword rules for content type and genre inference.

Every rule table is evaluated top-down and the first match wins, so each
rule can be unit-tested in isolation and the precedence is visible in one
place.
"""
from __future__ import annotations

import re
from typing import Callable, NamedTuple, Optional

from m3ucatalog.models.media import DEFAULT_GENRE

EPISODE_RE = re.compile(r"S(\d+)E(\d+)", re.IGNORECASE)
YEAR_RE = re.compile(r"\((\d{4})\)")
BRACKET_TAG_RE = re.compile(r"\[(.*?)\]")

# group-title prefix of entries removed from the catalog altogether
DROPPED_GROUP_PREFIX = "canais"

MOVIE_KEYWORDS = ("filme", "movie")
SERIES_KEYWORDS = ("série", "serie", "series")
CHANNEL_KEYWORDS = ("canal", "canais", "channel", "tv ")
# category-level inference also accepts a bare "tv"
CATEGORY_CHANNEL_KEYWORDS = ("canal", "canais", "channel", "tv")

GROUP_SEPARATORS = ("|", "-", ":")

_TRAILING_SEPARATORS = " -_|:."


class TypeRule(NamedTuple):
    name: str
    predicate: Callable[[str, str], bool]  # (lower-cased group, display name)
    outcome: str


class GenreRule(NamedTuple):
    keywords: tuple[str, ...]
    label: str


def has_keyword(text: str, keywords: tuple[str, ...]) -> bool:
    return any(k in text for k in keywords)


def has_episode_marker(name: str) -> bool:
    return EPISODE_RE.search(name or "") is not None


TYPE_RULES: list[TypeRule] = [
    TypeRule("movie_group", lambda g, n: has_keyword(g, MOVIE_KEYWORDS), "movie"),
    TypeRule(
        "series_marker_or_group",
        lambda g, n: has_episode_marker(n) or has_keyword(g, SERIES_KEYWORDS),
        "series",
    ),
    TypeRule("channel_group", lambda g, n: has_keyword(g, CHANNEL_KEYWORDS), "channel"),
    TypeRule("year_in_name", lambda g, n: YEAR_RE.search(n) is not None, "movie"),
    TypeRule("default", lambda g, n: True, "channel"),
]

GENRE_RULES: dict[str, list[GenreRule]] = {
    "movie": [
        GenreRule(("ação", "action"), "Ação"),
        GenreRule(("comédia", "comedy"), "Comédia"),
        GenreRule(("drama",), "Drama"),
        GenreRule(("terror", "horror"), "Terror"),
        GenreRule(("ficção", "sci-fi"), "Ficção Científica"),
        GenreRule(("netflix",), "Netflix"),
        GenreRule(("disney",), "Disney+"),
        GenreRule(("prime", "amazon"), "Prime Video"),
        GenreRule(("hbo",), "HBO"),
    ],
    "series": [
        GenreRule(("netflix",), "Netflix"),
        GenreRule(("disney",), "Disney+"),
        GenreRule(("prime", "amazon"), "Prime Video"),
        GenreRule(("hbo",), "HBO"),
        GenreRule(("discovery",), "Discovery"),
        GenreRule(("apple",), "Apple TV+"),
        GenreRule(("ação", "action"), "Ação"),
        GenreRule(("comédia", "comedy"), "Comédia"),
        GenreRule(("drama",), "Drama"),
    ],
    "channel": [
        GenreRule(("aberto", "tv aberta"), "Abertos"),
        GenreRule(("sport", "esporte"), "Esportes"),
        GenreRule(("documentário", "documentary"), "Documentários"),
        GenreRule(("notícia", "news"), "Notícias"),
        GenreRule(("premium", "hbo"), "Filmes e Séries"),
        GenreRule(("infantil", "kids"), "Infantil"),
    ],
}


# ---------------------------------------------------------------------------
# Type
# ---------------------------------------------------------------------------

def is_dropped_group(group: Optional[str]) -> bool:
    """Entries whose group starts with "Canais" never enter the catalog."""
    return (group or "").strip().lower().startswith(DROPPED_GROUP_PREFIX)


def classify_type(group: str, name: str) -> str:
    group_lower = (group or "").lower()
    for rule in TYPE_RULES:
        if rule.predicate(group_lower, name or ""):
            return rule.outcome
    return "channel"


def infer_group_type(group: str) -> Optional[str]:
    """Type implied by a group name alone, or None when the name is ambiguous."""
    group_lower = (group or "").lower()
    if has_keyword(group_lower, MOVIE_KEYWORDS):
        return "movie"
    if has_keyword(group_lower, SERIES_KEYWORDS):
        return "series"
    if has_keyword(group_lower, CATEGORY_CHANNEL_KEYWORDS):
        return "channel"
    return None


# ---------------------------------------------------------------------------
# Genre
# ---------------------------------------------------------------------------

def genre_from_group(group: str) -> str:
    """Second segment of "Filmes | Ação" style groups.

    Only the first separator present in the text is considered.
    """
    for sep in GROUP_SEPARATORS:
        if sep in group:
            return group.split(sep)[1].strip()
    return ""


def genre_from_keywords(group: str, content_type: str) -> str:
    group_lower = (group or "").lower()
    for rule in GENRE_RULES.get(content_type, []):
        if has_keyword(group_lower, rule.keywords):
            return rule.label
    return ""


def derive_genre(group: str, name: str, content_type: str) -> tuple[str, str]:
    """Return ``(genre, name)``; a bracketed tag used as genre is removed from the name."""
    genre = genre_from_group(group or "")

    if not genre:
        m = BRACKET_TAG_RE.search(name)
        if m and m.group(1):
            genre = m.group(1).strip()
            name = BRACKET_TAG_RE.sub("", name, count=1).strip()

    if not genre:
        genre = genre_from_keywords(group, content_type)

    if not genre:
        genre = group or ""

    return genre or DEFAULT_GENRE, name


# ---------------------------------------------------------------------------
# Name cleanup
# ---------------------------------------------------------------------------

def extract_year(name: str) -> tuple[Optional[str], str]:
    m = YEAR_RE.search(name)
    if not m:
        return None, name
    cleaned = (name[:m.start()] + name[m.end():]).strip()
    cleaned = re.sub(r"\s{2,}", " ", cleaned)
    return m.group(1), cleaned


def split_episode(name: str) -> Optional[tuple[str, str, str]]:
    """Return ``(series_name, season, episode)`` for "Show S01E03" names.

    *series_name* is empty when nothing precedes the marker.
    """
    m = EPISODE_RE.search(name or "")
    if not m:
        return None
    season = f"{int(m.group(1)):02d}"
    episode = f"{int(m.group(2)):02d}"
    series_name = name[:m.start()].strip().rstrip(_TRAILING_SEPARATORS).strip()
    return series_name, season, episode


def slugify(text: str) -> str:
    return re.sub(r"[^a-z0-9]", "-", text.lower())
