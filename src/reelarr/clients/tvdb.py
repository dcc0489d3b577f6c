"""TheTVDB v4 API client."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import TypeAdapter

from reelarr.clients.base import BaseApiClient, CatalogError
from reelarr.models.catalog import RemoteIdEntry, RemoteIds, TvdbSeries, year_from_date

logger = logging.getLogger(__name__)

TVDB_BASE_URL = "https://api4.thetvdb.com/v4"

_remote_ids_adapter = TypeAdapter(list[RemoteIdEntry])


def _first(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value:
            return value
    return None


def parse_remote_ids(raw: Any) -> RemoteIds:
    """Normalize a TVDB remote ID list into TMDB and IMDB IDs."""
    if not isinstance(raw, list):
        return RemoteIds()
    entries = _remote_ids_adapter.validate_python([r for r in raw if isinstance(r, dict)])
    return RemoteIds.from_entries(entries)


def parse_series(data: dict[str, Any]) -> TvdbSeries:
    """Map a TVDB search hit or extended series record onto TvdbSeries.

    Search hits use `tvdb_id` (string) and `remote_ids`; extended records use
    `id` (int) and `remoteIds`.
    """
    raw_id = _first(data, "tvdb_id", "id")
    if raw_id is None:
        raise CatalogError("tvdb", "series payload without an id")
    year = year_from_date(_first(data, "year", "first_air_time", "firstAired"))
    popularity = _first(data, "score", "popularity") or 0
    return TvdbSeries(
        id=int(str(raw_id).removeprefix("series-")),
        name=_first(data, "name", "title") or "",
        year=year,
        slug=_first(data, "slug", "nameSlug", "name_slug"),
        popularity=float(popularity),
        remote_ids=parse_remote_ids(_first(data, "remoteIds", "remote_ids")),
    )


class TvdbClient(BaseApiClient):
    """Client for TVDB series search and extended records.

    TVDB v4 exchanges the API key for a bearer token via `POST /login`. The
    token is requested on first use and kept for the life of the client.
    """

    source_name = "tvdb"

    def __init__(
        self,
        api_key: str,
        *,
        pin: str | None = None,
        base_url: str = TVDB_BASE_URL,
        **kwargs: Any,
    ) -> None:
        super().__init__(base_url, api_key, **kwargs)
        self.pin = pin
        self._token: str | None = None

    async def _login(self) -> None:
        body: dict[str, Any] = {"apikey": self.api_key}
        if self.pin:
            body["pin"] = self.pin
        data = await self._request_with_retry("POST", "/login", json=body)
        with self._parsing("/login"):
            token = ((data or {}).get("data") or {}).get("token")
        if not token:
            raise CatalogError(self.source_name, "login response carried no token")
        self._token = token
        self.client.headers["Authorization"] = f"Bearer {token}"
        logger.debug("Obtained TVDB bearer token")

    async def _authed_get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        if self._token is None:
            await self._login()
        return await self._get(endpoint, params)

    async def search_series(self, name: str, year: int | None = None) -> list[TvdbSeries]:
        """Search TVDB for series by name.

        Args:
            name: Show name to search for
            year: Optional first-air year filter

        Returns:
            Matching series in TVDB's order, possibly empty
        """
        params: dict[str, Any] = {"query": name, "type": "series"}
        if year is not None:
            params["year"] = year
        data = await self._authed_get("/search", params)
        if not data:
            return []
        with self._parsing("/search"):
            hits = list(data.get("data") or [])
        results = []
        for item in hits:
            try:
                with self._parsing("/search"):
                    results.append(parse_series(item))
            except CatalogError as e:
                logger.debug("Skipping TVDB search hit: %s", e)
        return results

    async def get_series_extended(self, tvdb_id: int) -> TvdbSeries | None:
        """Fetch the extended record for a series, including remote IDs.

        Args:
            tvdb_id: The TVDB series ID

        Returns:
            The series, or None if TVDB has no such record
        """
        endpoint = f"/series/{tvdb_id}/extended"
        data = await self._authed_get(endpoint, {"short": "true"})
        if not data:
            return None
        with self._parsing(endpoint):
            return parse_series(data["data"]) if data.get("data") else None
