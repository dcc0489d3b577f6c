"""Value types shared by the parser, resolver and scoring engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Resolution(str, Enum):
    """Video resolution extracted from a release title."""

    UHD_2160P = "2160p"
    FHD_1080P = "1080p"
    HD_720P = "720p"
    SD_480P = "480p"
    UNKNOWN = "UNKNOWN"


class Codec(str, Enum):
    """Video codec family extracted from a release title."""

    X265 = "x265"
    X264 = "x264"
    UNKNOWN = "UNKNOWN"


# Audio sentinel differs in casing from Resolution/Codec.UNKNOWN.
UNKNOWN_AUDIO = "Unknown"


class MediaKind(str, Enum):
    """Whether a release belongs to a movie or a TV show."""

    MOVIE = "movie"
    TV = "tv"


class ReleaseStatus(str, Enum):
    """Lifecycle status of a release record.

    Attributes:
        NEW: Not held in the library, eligible for acquisition
        UPGRADE_CANDIDATE: Better than the current holding
        IGNORED: Dismissed, ineligible or not an improvement
        ADDED: Accepted and confirmed by the download manager
        UPGRADED: Accepted upgrade confirmed by the download manager
    """

    NEW = "NEW"
    UPGRADE_CANDIDATE = "UPGRADE_CANDIDATE"
    IGNORED = "IGNORED"
    ADDED = "ADDED"
    UPGRADED = "UPGRADED"


@dataclass(frozen=True)
class ParsedRelease:
    """Technical attributes parsed from a raw release title."""

    resolution: Resolution = Resolution.UNKNOWN
    codec: Codec = Codec.UNKNOWN
    source_tag: str = "OTHER"
    audio: str = UNKNOWN_AUDIO
    size_mb: float | None = None
    audio_languages: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class TvTitleInfo:
    """Show name, season and year split out of a TV release title."""

    show_name: str
    season: int | None = None
    year: int | None = None
