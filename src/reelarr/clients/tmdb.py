"""TMDB v3 API client."""

from __future__ import annotations

import logging
from typing import Any

from reelarr.clients.base import BaseApiClient
from reelarr.models.catalog import CatalogTitle, year_from_date
from reelarr.models.common import MediaKind

logger = logging.getLogger(__name__)

TMDB_BASE_URL = "https://api.themoviedb.org/3"


def _path_segment(kind: MediaKind) -> str:
    return "movie" if kind == MediaKind.MOVIE else "tv"


def parse_title(data: dict[str, Any], kind: MediaKind) -> CatalogTitle:
    """Map a TMDB movie or TV payload onto a CatalogTitle.

    Movies carry `title`/`release_date`, TV shows `name`/`first_air_date`.
    External IDs come from `external_ids` when the payload was requested with
    `append_to_response=external_ids`; movie details also carry `imdb_id`.
    """
    external = data.get("external_ids") or {}
    if kind == MediaKind.MOVIE:
        title = data.get("title") or data.get("original_title") or ""
        original = data.get("original_title")
        year = year_from_date(data.get("release_date"))
    else:
        title = data.get("name") or data.get("original_name") or ""
        original = data.get("original_name")
        year = year_from_date(data.get("first_air_date"))

    tvdb_id = external.get("tvdb_id")
    return CatalogTitle(
        id=int(data["id"]),
        title=title,
        original_title=original,
        year=year,
        original_language=data.get("original_language"),
        imdb_id=data.get("imdb_id") or external.get("imdb_id") or None,
        tvdb_id=int(tvdb_id) if tvdb_id else None,
        popularity=float(data.get("popularity") or 0.0),
    )


class TmdbClient(BaseApiClient):
    """Client for movie and TV lookups against TMDB.

    Authenticates with the v3 `api_key` query parameter.
    """

    source_name = "tmdb"

    def __init__(self, api_key: str, *, base_url: str = TMDB_BASE_URL, **kwargs: Any) -> None:
        super().__init__(base_url, api_key, **kwargs)

    def _default_params(self) -> dict[str, str]:
        return {"api_key": self.api_key}

    async def get_title(self, tmdb_id: int, kind: MediaKind) -> CatalogTitle | None:
        """Fetch a movie or TV show with its external IDs.

        Args:
            tmdb_id: The TMDB ID
            kind: Whether the ID names a movie or a TV show

        Returns:
            The title, or None if TMDB has no such record
        """
        endpoint = f"/{_path_segment(kind)}/{tmdb_id}"
        data = await self._get(
            endpoint, params={"append_to_response": "external_ids", "language": "en-US"}
        )
        if not data:
            return None
        with self._parsing(endpoint):
            return parse_title(data, kind)

    async def search(
        self, title: str, kind: MediaKind, year: int | None = None
    ) -> list[CatalogTitle]:
        """Search TMDB by title, optionally narrowed by year.

        Results keep TMDB's relevance order.

        Args:
            title: The title to search for
            kind: Movie or TV search
            year: Optional release or first-air year

        Returns:
            Matching titles, possibly empty
        """
        params: dict[str, Any] = {"query": title, "language": "en-US"}
        if year is not None:
            if kind == MediaKind.MOVIE:
                params["year"] = year
            else:
                params["first_air_date_year"] = year

        endpoint = f"/search/{_path_segment(kind)}"
        data = await self._get(endpoint, params=params)
        if not data:
            return []
        with self._parsing(endpoint):
            results = [parse_title(item, kind) for item in data.get("results") or []]
        logger.debug("TMDB %s search %r returned %d results", kind.value, title, len(results))
        return results

    async def find_by_imdb_id(self, imdb_id: str, kind: MediaKind) -> CatalogTitle | None:
        """Find the TMDB record linked to an IMDB ID.

        Args:
            imdb_id: An IMDB title ID (tt...)
            kind: Which result bucket to read

        Returns:
            The first match, or None
        """
        data = await self._get(f"/find/{imdb_id}", params={"external_source": "imdb_id"})
        if not data:
            return None
        bucket = "movie_results" if kind == MediaKind.MOVIE else "tv_results"
        with self._parsing(f"/find/{imdb_id}"):
            results = data.get(bucket) or []
            return parse_title(results[0], kind) if results else None
