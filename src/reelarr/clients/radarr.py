"""Radarr API client."""

from __future__ import annotations

from typing import Any

from reelarr.clients.base import BaseApiClient
from reelarr.models.arr import Movie


class RadarrClient(BaseApiClient):
    """Read-only client for the Radarr movie library.

    Example:
        async with RadarrClient("http://localhost:7878", "api-key") as client:
            movie = await client.find_movie_by_tmdb_id(603)
    """

    source_name = "radarr"

    def __init__(self, base_url: str, api_key: str, **kwargs: Any) -> None:
        kwargs.setdefault("timeout", 120.0)
        super().__init__(base_url, api_key, **kwargs)

    def _default_headers(self) -> dict[str, str]:
        return {"X-Api-Key": self.api_key}

    async def find_movie_by_tmdb_id(self, tmdb_id: int) -> Movie | None:
        """Find the library movie with the given TMDB ID.

        Args:
            tmdb_id: The TMDB movie ID

        Returns:
            Movie if Radarr holds it, None otherwise
        """
        data = await self._get("/api/v3/movie", params={"tmdbId": tmdb_id})
        with self._parsing("/api/v3/movie"):
            movies = [Movie.model_validate(item) for item in data or []]
        for movie in movies:
            if movie.tmdb_id == tmdb_id:
                return movie
        return None
