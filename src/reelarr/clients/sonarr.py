"""Sonarr API client."""

from __future__ import annotations

from typing import Any

from reelarr.clients.base import BaseApiClient
from reelarr.models.arr import EpisodeFile, Series


class SonarrClient(BaseApiClient):
    """Read-only client for the Sonarr series library.

    Example:
        async with SonarrClient("http://localhost:8989", "api-key") as client:
            series = await client.find_series_by_tvdb_id(81189)
            files = await client.get_episode_files(series.id)
    """

    source_name = "sonarr"

    def __init__(self, base_url: str, api_key: str, **kwargs: Any) -> None:
        kwargs.setdefault("timeout", 120.0)
        super().__init__(base_url, api_key, **kwargs)

    def _default_headers(self) -> dict[str, str]:
        return {"X-Api-Key": self.api_key}

    async def find_series_by_tvdb_id(self, tvdb_id: int) -> Series | None:
        """Find the library series with the given TVDB ID.

        Args:
            tvdb_id: The TVDB series ID

        Returns:
            Series if Sonarr holds it, None otherwise
        """
        data = await self._get("/api/v3/series", params={"tvdbId": tvdb_id})
        with self._parsing("/api/v3/series"):
            matches = [Series.model_validate(item) for item in data or []]
        for series in matches:
            if series.tvdb_id == tvdb_id:
                return series
        return None

    async def get_episode_files(self, series_id: int) -> list[EpisodeFile]:
        """Fetch every episode file Sonarr holds for a series.

        Args:
            series_id: The Sonarr series ID

        Returns:
            List of EpisodeFile models
        """
        data = await self._get("/api/v3/episodefile", params={"seriesId": series_id})
        with self._parsing("/api/v3/episodefile"):
            return [EpisodeFile.model_validate(item) for item in data or []]
