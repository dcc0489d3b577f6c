"""Normalized catalog models returned by the TMDB, TVDB and OMDB clients.

Raw API payloads vary in field naming between API versions; the clients map
them onto these fixed shapes so the resolver never sees the variants.
"""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def year_from_date(value: object) -> int | None:
    """Extract a year from "2019-05-01", "2019" or 2019."""
    if value is None or value == "":
        return None
    text = str(value).strip()
    if len(text) >= 4 and text[:4].isdigit():
        return int(text[:4])
    return None


class CatalogTitle(BaseModel):
    """A movie or TV show as returned by TMDB."""

    id: int
    title: str
    original_title: str | None = None
    year: int | None = None
    original_language: str | None = None
    imdb_id: str | None = None
    tvdb_id: int | None = None
    popularity: float = 0.0


class RemoteIdEntry(BaseModel):
    """One linked external ID on a TVDB record."""

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    source: str = Field(
        default="",
        validation_alias=AliasChoices("sourceName", "source_name", "source"),
    )

    @field_validator("id", mode="before")
    @classmethod
    def _stringify(cls, value: object) -> str:
        return str(value)


class RemoteIds(BaseModel):
    """TMDB and IMDB IDs linked from a TVDB record."""

    tmdb_id: int | None = None
    imdb_id: str | None = None

    @classmethod
    def from_entries(cls, entries: list[RemoteIdEntry]) -> RemoteIds:
        """Pick the TMDB and IMDB entries out of a remote ID list."""
        tmdb_id: int | None = None
        imdb_id: str | None = None
        for entry in entries:
            source = entry.source.lower()
            if tmdb_id is None and source.startswith("themoviedb") and entry.id.isdigit():
                tmdb_id = int(entry.id)
            elif imdb_id is None and source == "imdb" and entry.id:
                imdb_id = entry.id
        return cls(tmdb_id=tmdb_id, imdb_id=imdb_id)


class TvdbSeries(BaseModel):
    """A TVDB series from search results or the extended record."""

    id: int
    name: str
    year: int | None = None
    slug: str | None = None
    popularity: float = 0.0
    remote_ids: RemoteIds = Field(default_factory=RemoteIds)
