"""Release records, parsed attributes and API response models."""

from reelarr.models.arr import EpisodeFile, Language, Movie, MovieFile, Series
from reelarr.models.catalog import CatalogTitle, RemoteIds, TvdbSeries
from reelarr.models.common import (
    Codec,
    MediaKind,
    ParsedRelease,
    ReleaseStatus,
    Resolution,
    TvTitleInfo,
)
from reelarr.models.release import Identity, IdentityFields, Release

__all__ = [
    "CatalogTitle",
    "Codec",
    "EpisodeFile",
    "Identity",
    "IdentityFields",
    "Language",
    "MediaKind",
    "Movie",
    "MovieFile",
    "ParsedRelease",
    "Release",
    "ReleaseStatus",
    "RemoteIds",
    "Resolution",
    "Series",
    "TvTitleInfo",
    "TvdbSeries",
]
