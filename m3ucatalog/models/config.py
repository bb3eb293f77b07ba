"""Pydantic models for application configuration."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class PlaylistSettings(BaseModel):
    """Where the raw playlist text comes from."""
    model_config = ConfigDict(extra="allow")

    url: str = "https://is.gd/angeexx"
    local_file: str = "lista-iptv.m3u"
    served_file: str = "public/lista-iptv.m3u"
    fallback_text: str = ""
    timeout: float = 15.0


class Options(BaseModel):
    """Application options."""
    model_config = ConfigDict(extra="allow")

    cache_ttl: int = 86400  # 24 hours
    page_size: int = 30
    search_debounce_ms: int = 300
    index_build_delay_ms: int = 100
    recent_years: int = 1


class Curation(BaseModel):
    """Titles or tvg-ids pinned as featured / new."""
    model_config = ConfigDict(extra="allow")

    featured: list[str] = Field(default_factory=list)
    new: list[str] = Field(default_factory=list)


class MetadataSettings(BaseModel):
    """OMDb-compatible enrichment service."""
    model_config = ConfigDict(extra="allow")

    enabled: bool = True
    api_key: str = ""
    base_url: str = "https://www.omdbapi.com/"
    timeout: float = 10.0


class AppConfig(BaseModel):
    """Root application configuration."""
    model_config = ConfigDict(extra="allow")

    playlist: PlaylistSettings = Field(default_factory=PlaylistSettings)
    options: Options = Field(default_factory=Options)
    curation: Curation = Field(default_factory=Curation)
    metadata: MetadataSettings = Field(default_factory=MetadataSettings)
