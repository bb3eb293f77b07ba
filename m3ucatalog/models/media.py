"""Pydantic models for catalog records and the views built over them."""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ContentType = Literal["movie", "series", "channel"]

DEFAULT_GENRE = "Sem Categoria"


class MediaItem(BaseModel):
    """One playable or browsable entry of the catalog."""
    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    url: str = ""  # empty for synthetic parent series
    type: ContentType = "channel"
    group: str = ""
    genre: str = DEFAULT_GENRE
    description: str = ""
    year: Optional[str] = None
    season: Optional[str] = None
    episode: Optional[str] = None
    parent_id: Optional[str] = None
    tvg_id: Optional[str] = None
    tvg_name: Optional[str] = None
    tvg_logo: Optional[str] = None
    logo: Optional[str] = None
    poster: Optional[str] = None
    country: Optional[str] = None
    is_new: bool = False
    is_featured: bool = False

    @property
    def is_parent(self) -> bool:
        return self.type == "series" and not self.url

    @property
    def is_episode(self) -> bool:
        return bool(self.parent_id) and self.parent_id != self.id


class Category(BaseModel):
    """One bucket per distinct raw group-title."""
    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    type: ContentType = "channel"
    decisive: bool = False  # group text carried a type keyword
    items: list[MediaItem] = Field(default_factory=list)


class Genre(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    items: list[MediaItem] = Field(default_factory=list)


class FeaturedContent(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    title: str
    items: list[MediaItem] = Field(default_factory=list)


class ContentByType(BaseModel):
    model_config = ConfigDict(extra="allow")

    movies: list[MediaItem] = Field(default_factory=list)
    series: list[MediaItem] = Field(default_factory=list)
    channels: list[MediaItem] = Field(default_factory=list)
