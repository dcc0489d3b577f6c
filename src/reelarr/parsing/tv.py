"""Split TV release titles into show name, season and year, and read episode markers."""

from __future__ import annotations

import re

from reelarr.models.common import TvTitleInfo

_YEAR = re.compile(r"[(\[]?(?<![A-Za-z0-9])((?:19|20)\d{2})(?![A-Za-z0-9])[)\]]?")
_SEASON = re.compile(
    r"(?<![A-Za-z0-9])(?:S(\d{1,3})(?:\s?E\d{1,4})*|Season\s+(\d{1,3}))(?![A-Za-z0-9])",
    re.IGNORECASE,
)
_EPISODE = re.compile(r"(?<![A-Za-z0-9])S\d{1,3}\s?E(\d{1,4})(?![0-9])", re.IGNORECASE)
_TRAILING_JUNK = re.compile(r"[\s\-:|]+$")


def _normalize_separators(title: str) -> str:
    return re.sub(r"\s+", " ", re.sub(r"[._]+", " ", title)).strip()


def _strip_years(text: str) -> str:
    return re.sub(r"\s+", " ", _YEAR.sub(" ", text)).strip()


def split_tv_title(title: str) -> TvTitleInfo:
    """Split a raw TV release title.

    Examples:
        "Show Name 2001 S01" -> ("Show Name", 1, 2001)
        "Show.Name.Season.2.1080p" -> ("Show Name", 2, None)
        "Amrutham (2001) S01E01" -> ("Amrutham", 1, 2001)

    Args:
        title: Raw release title

    Returns:
        TvTitleInfo; the show name may be empty for degenerate input
    """
    normalized = _normalize_separators(title or "")

    year_match = _YEAR.search(normalized)
    year = int(year_match.group(1)) if year_match else None

    season: int | None = None
    name_part = normalized
    season_match = _SEASON.search(normalized)
    if season_match:
        season = int(season_match.group(1) or season_match.group(2))
        name_part = normalized[: season_match.start()]

    show_name = _TRAILING_JUNK.sub("", _strip_years(name_part)).strip()
    return TvTitleInfo(show_name=show_name, season=season, year=year)


def parse_episode(title: str) -> int | None:
    """Return the first episode number of an SxxEyy marker.

    Season packs and titles without a marker give None.
    """
    match = _EPISODE.search(_normalize_separators(title or ""))
    return int(match.group(1)) if match else None
