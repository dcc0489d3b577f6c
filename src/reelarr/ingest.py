"""Turning RSS feed items into stored releases."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime

from reelarr.models.common import MediaKind
from reelarr.models.release import Identity, Release, utcnow
from reelarr.parsing.title import parse_release_title, parse_size_mb
from reelarr.parsing.tv import split_tv_title
from reelarr.storage.repository import ReleaseRepository

logger = logging.getLogger(__name__)

_YEAR = re.compile(r"(?<!\d)((?:19|20)\d{2})(?!\d)")
_QUALITY_MARKER = re.compile(r"(?<![A-Za-z0-9])(?:\d{3,4}[pi]|4K|UHD)(?![A-Za-z0-9])", re.IGNORECASE)
_PARENTHETICAL = re.compile(r"\s*\([^)]*\)\s*")
_AND = re.compile(r"\s+and\s+", re.IGNORECASE)

_TMDB_PATTERNS = (
    re.compile(r"themoviedb\.org/movie/(\d+)", re.IGNORECASE),
    re.compile(r"TMDB\s+Link.*?(\d{4,})", re.IGNORECASE),
    re.compile(r"TMDB.*?(\d{4,})", re.IGNORECASE),
)
_DESCRIPTION_SIZE_PATTERNS = (
    re.compile(r"<strong>Size</strong>:\s*(\d+(?:\.\d+)?\s*(?:GB|MB|GiB|MiB))", re.IGNORECASE),
    re.compile(r"Size[:\s]+(\d+(?:\.\d+)?\s*(?:GB|MB|GiB|MiB))", re.IGNORECASE),
)


@dataclass(frozen=True)
class RssItem:
    """One item from a release feed."""

    title: str
    link: str = ""
    guid: str = ""
    published: datetime | str | None = None
    description: str = ""

    @property
    def key(self) -> str:
        """The stable identifier of the item: its guid, else its link."""
        return self.guid or self.link


def sanitize_title(title: str) -> str:
    """Replace dots and underscores with spaces and collapse whitespace."""
    return re.sub(r"\s+", " ", re.sub(r"[._]+", " ", title)).strip()


def extract_year(title: str) -> int | None:
    """Find the release year in a title.

    A year at the very start is taken to be part of the name ("1917",
    "2001 A Space Odyssey") when another year follows.
    """
    matches = list(_YEAR.finditer(title))
    if len(matches) > 1 and matches[0].start() == 0:
        matches = matches[1:]
    return int(matches[0].group(1)) if matches else None


def clean_movie_title(title: str) -> str:
    """Reduce a raw movie release title to the movie's name.

    Examples:
        "The.Matrix.1999.1080p.BluRay.x264" -> "The Matrix"
        "Fast and Furious (2009) 720p" -> "Fast & Furious"
    """
    sanitized = sanitize_title(title)
    cleaned = _PARENTHETICAL.sub(" ", sanitized)

    cut = len(cleaned)
    for match in _YEAR.finditer(cleaned):
        if match.start() > 0:
            cut = match.start()
            break
    marker = _QUALITY_MARKER.search(cleaned)
    if marker and 0 < marker.start() < cut:
        cut = marker.start()
    cleaned = cleaned[:cut]

    cleaned = _AND.sub(" & ", cleaned)
    cleaned = re.sub(r"\s+", " ", cleaned).strip(" -")
    return cleaned or sanitized


def extract_tmdb_id(description: str) -> int | None:
    """Find a TMDB movie ID embedded in a feed item's description."""
    for pattern in _TMDB_PATTERNS:
        match = pattern.search(description)
        if match:
            return int(match.group(1))
    return None


def extract_description_size(description: str) -> float | None:
    """Find a size in a feed item's description, in MB."""
    for pattern in _DESCRIPTION_SIZE_PATTERNS:
        match = pattern.search(description)
        if match:
            return parse_size_mb(match.group(1))
    return parse_size_mb(description)


def _parse_published(value: datetime | str | None) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if value:
        try:
            return parsedate_to_datetime(value)
        except (TypeError, ValueError):
            try:
                parsed = datetime.fromisoformat(value)
            except ValueError:
                logger.debug("Unparseable publication date %r", value)
                return utcnow()
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return utcnow()


def build_release(item: RssItem, kind: MediaKind, source_site: str = "") -> Release:
    """Build a release record from a feed item.

    Args:
        item: The feed item
        kind: Whether the feed carries movies or TV
        source_site: Name of the feed's site

    Returns:
        A NEW release with parsed attributes and any IDs found in the item
    """
    title = item.title or item.link or "Unknown"
    parsed = parse_release_title(title)
    description = item.description or ""

    if parsed.size_mb is None and description:
        size_mb = extract_description_size(description)
        if size_mb is not None:
            parsed = replace(parsed, size_mb=size_mb)

    identity = Identity()
    season: int | None = None
    if kind == MediaKind.TV:
        info = split_tv_title(title)
        clean_title = info.show_name or sanitize_title(title)
        year = info.year
        season = info.season
    else:
        clean_title = clean_movie_title(title)
        year = extract_year(title)
        identity.tmdb_id = extract_tmdb_id(description)

    return Release(
        guid=item.key,
        title=title,
        kind=kind,
        clean_title=clean_title,
        parsed=parsed,
        year=year,
        season=season,
        identity=identity,
        source_site=source_site,
        link=item.link,
        published_at=_parse_published(item.published),
    )


@dataclass
class IngestStats:
    """Counts from one ingestion run."""

    added: int = 0
    existing: int = 0
    blacklisted: int = 0


def ingest_items(
    repo: ReleaseRepository,
    items: Iterable[RssItem],
    kind: MediaKind,
    source_site: str = "",
) -> IngestStats:
    """Store new feed items as releases.

    Items already stored are left alone and blacklisted guids are skipped.
    """
    stats = IngestStats()
    with repo.transaction():
        for item in items:
            if not item.key:
                logger.debug("Skipping feed item without guid or link: %r", item.title)
                continue
            if repo.is_blacklisted(item.key):
                stats.blacklisted += 1
                continue
            if repo.get(item.key) is not None:
                stats.existing += 1
                continue
            repo.add(build_release(item, kind, source_site))
            stats.added += 1
    logger.info(
        "Ingested %d %s items from %s (%d existing, %d blacklisted)",
        stats.added,
        kind.value,
        source_site or "feed",
        stats.existing,
        stats.blacklisted,
    )
    return stats
