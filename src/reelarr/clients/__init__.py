"""API clients for the TMDB, TVDB, OMDB and Brave catalogs and the Radarr/Sonarr libraries."""

from reelarr.clients.base import (
    BaseApiClient,
    CatalogError,
    CatalogRateLimitError,
    RateLimiter,
)
from reelarr.clients.brave import BraveSearchClient
from reelarr.clients.omdb import OmdbClient
from reelarr.clients.radarr import RadarrClient
from reelarr.clients.sonarr import SonarrClient
from reelarr.clients.tmdb import TmdbClient
from reelarr.clients.tvdb import TvdbClient

__all__ = [
    "BaseApiClient",
    "BraveSearchClient",
    "CatalogError",
    "CatalogRateLimitError",
    "OmdbClient",
    "RadarrClient",
    "RateLimiter",
    "SonarrClient",
    "TmdbClient",
    "TvdbClient",
]
