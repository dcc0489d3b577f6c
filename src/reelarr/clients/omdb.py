"""OMDB API client for title -> IMDB ID lookups."""

from __future__ import annotations

import logging
from typing import Any

from reelarr.clients.base import BaseApiClient, CatalogRateLimitError
from reelarr.models.common import MediaKind

logger = logging.getLogger(__name__)

OMDB_BASE_URL = "https://www.omdbapi.com"


class OmdbClient(BaseApiClient):
    """Client for the OMDB title lookup.

    Requests are held to at least one second apart.
    """

    source_name = "omdb"

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = OMDB_BASE_URL,
        min_request_interval: float = 1.0,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            base_url, api_key, min_request_interval=min_request_interval, **kwargs
        )

    def _default_params(self) -> dict[str, str]:
        return {"apikey": self.api_key}

    async def find_imdb_id(
        self, title: str, kind: MediaKind, year: int | None = None
    ) -> str | None:
        """Look up the IMDB ID for an exact title.

        Args:
            title: The title to look up
            kind: Movie or series lookup
            year: Optional year to narrow the lookup

        Returns:
            The IMDB ID, or None when OMDB found nothing

        Raises:
            CatalogRateLimitError: When OMDB reports the daily limit reached
        """
        params: dict[str, Any] = {
            "t": title,
            "type": "movie" if kind == MediaKind.MOVIE else "series",
        }
        if year is not None:
            params["y"] = year

        data = await self._get("/", params)
        if not data:
            return None
        with self._parsing("/"):
            if data.get("Response") != "True":
                error = data.get("Error", "")
                if "limit" in error.lower():
                    raise CatalogRateLimitError(self.source_name, error)
                logger.debug("OMDB found nothing for %r: %s", title, error)
                return None
            imdb_id = data.get("imdbID")
            return imdb_id if imdb_id and imdb_id.startswith("tt") else None
