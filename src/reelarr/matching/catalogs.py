"""Catalog contracts the identity resolver depends on.

The concrete httpx clients in `reelarr.clients` satisfy these protocols;
tests substitute in-memory fakes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from reelarr.models.catalog import CatalogTitle, TvdbSeries
from reelarr.models.common import MediaKind


class TitleCatalog(Protocol):
    """Movie and TV catalog keyed by TMDB ID."""

    async def get_title(self, tmdb_id: int, kind: MediaKind) -> CatalogTitle | None: ...

    async def search(
        self, title: str, kind: MediaKind, year: int | None = None
    ) -> list[CatalogTitle]: ...

    async def find_by_imdb_id(self, imdb_id: str, kind: MediaKind) -> CatalogTitle | None: ...


class SeriesCatalog(Protocol):
    """TV catalog keyed by TVDB ID."""

    async def search_series(self, name: str, year: int | None = None) -> list[TvdbSeries]: ...

    async def get_series_extended(self, tvdb_id: int) -> TvdbSeries | None: ...


class ImdbLookup(Protocol):
    """Dedicated title -> IMDB ID lookup service."""

    async def find_imdb_id(
        self, title: str, kind: MediaKind, year: int | None = None
    ) -> str | None: ...


class WebSearch(Protocol):
    """Web search able to pull IMDB IDs out of result URLs."""

    async def find_imdb_id(self, title: str, year: int | None = None) -> str | None: ...


@dataclass
class Catalogs:
    """The catalogs available to a resolver; any of them may be missing.

    Attributes:
        tmdb: TMDB, for movie/TV search and external ID cross-reference
        tvdb: TVDB, the primary catalog for TV shows
        omdb: OMDB, title -> IMDB ID
        brave: Web search fallback for IMDB IDs
    """

    tmdb: TitleCatalog | None = None
    tvdb: SeriesCatalog | None = None
    omdb: ImdbLookup | None = None
    brave: WebSearch | None = None
