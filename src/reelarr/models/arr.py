"""Pydantic models for the Radarr and Sonarr library endpoints."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _ArrModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class MovieFile(_ArrModel):
    """The file Radarr holds for a movie."""

    id: int = 0
    relative_path: str = Field(default="", alias="relativePath")
    size: int = 0

    @property
    def size_mb(self) -> float:
        """File size in MB."""
        return self.size / (1024 * 1024)


class Language(_ArrModel):
    """A language reference as Radarr/Sonarr report it."""

    id: int = 0
    name: str = ""


class Movie(_ArrModel):
    """A movie in the Radarr library."""

    id: int
    title: str
    year: int = 0
    tmdb_id: int | None = Field(default=None, alias="tmdbId")
    imdb_id: str | None = Field(default=None, alias="imdbId")
    has_file: bool = Field(default=False, alias="hasFile")
    movie_file: MovieFile | None = Field(default=None, alias="movieFile")
    original_language: Language | None = Field(default=None, alias="originalLanguage")


class Series(_ArrModel):
    """A series in the Sonarr library."""

    id: int
    title: str
    year: int = 0
    tvdb_id: int | None = Field(default=None, alias="tvdbId")
    tmdb_id: int | None = Field(default=None, alias="tmdbId")
    imdb_id: str | None = Field(default=None, alias="imdbId")
    original_language: Language | None = Field(default=None, alias="originalLanguage")


class EpisodeFile(_ArrModel):
    """An episode file held by Sonarr."""

    id: int
    series_id: int = Field(default=0, alias="seriesId")
    season_number: int = Field(default=0, alias="seasonNumber")
    relative_path: str = Field(default="", alias="relativePath")
    size: int = 0
