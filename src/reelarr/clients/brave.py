"""Brave Search client used as a last resort for IMDB IDs."""

from __future__ import annotations

import logging
import re
from typing import Any

from pydantic import BaseModel

from reelarr.clients.base import BaseApiClient

logger = logging.getLogger(__name__)

BRAVE_BASE_URL = "https://api.search.brave.com/res/v1"

IMDB_URL_PATTERN = re.compile(r"imdb\.com/title/(tt\d{7,})", re.IGNORECASE)


class SearchResult(BaseModel):
    """A single web search hit."""

    title: str = ""
    url: str
    description: str = ""


def extract_imdb_id(url: str) -> str | None:
    """Return the IMDB title ID embedded in a URL, if any."""
    match = IMDB_URL_PATTERN.search(url)
    return match.group(1) if match else None


class BraveSearchClient(BaseApiClient):
    """Client for the Brave web search API.

    Requests are held to at least one second apart; a 429 surfaces as
    CatalogRateLimitError so callers can skip Brave for the current item.
    """

    source_name = "brave"

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = BRAVE_BASE_URL,
        min_request_interval: float = 1.0,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            base_url, api_key, min_request_interval=min_request_interval, **kwargs
        )

    def _default_headers(self) -> dict[str, str]:
        return {"Accept": "application/json", "X-Subscription-Token": self.api_key}

    async def search_web(self, query: str, count: int = 5) -> list[SearchResult]:
        """Run a web search.

        Args:
            query: The search query
            count: Maximum number of results

        Returns:
            Search hits, possibly empty
        """
        data = await self._get("/web/search", {"q": query, "count": count})
        if not data:
            return []
        with self._parsing("/web/search"):
            hits = (data.get("web") or {}).get("results") or []
            return [SearchResult.model_validate(hit) for hit in hits if hit.get("url")]

    async def find_imdb_id(self, title: str, year: int | None = None) -> str | None:
        """Search IMDB pages for a title and pull the ID from the first title URL.

        Args:
            title: The title to search for
            year: Optional year added to the query

        Returns:
            The IMDB ID, or None
        """
        query = f'"{title}" {year} site:imdb.com' if year else f'"{title}" site:imdb.com'
        for result in await self.search_web(query):
            imdb_id = extract_imdb_id(result.url)
            if imdb_id:
                logger.info("Found IMDB ID %s via Brave for %r", imdb_id, title)
                return imdb_id
        logger.debug("No IMDB URL in Brave results for %r", title)
        return None
