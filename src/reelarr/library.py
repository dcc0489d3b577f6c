"""What the Radarr/Sonarr library already holds for a release."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from reelarr.clients.radarr import RadarrClient
from reelarr.clients.sonarr import SonarrClient
from reelarr.models.arr import Language
from reelarr.models.common import MediaKind
from reelarr.models.release import Release
from reelarr.parsing.languages import get_language_code
from reelarr.parsing.title import parse_release_title
from reelarr.parsing.tv import parse_episode
from reelarr.scoring.quality import QualitySettings, compute_quality_score

logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024
FALLBACK_SCORE_CAP = 50.0


@dataclass(frozen=True)
class LibraryEntry:
    """A title held in the library, scored like an incoming release.

    Attributes:
        title: Library title
        quality_score: Score of the held file(s)
        size_mb: Size of the held file(s), if any file exists
        original_language: ISO 639-1 code of the original language
    """

    title: str
    quality_score: float
    size_mb: float | None
    original_language: str | None = None


class LibraryLookup(Protocol):
    """Finds the library holding for a release."""

    async def lookup(self, release: Release) -> LibraryEntry | None: ...


def score_held_file(
    relative_path: str,
    size_mb: float | None,
    settings: QualitySettings,
    original_language: str | None = None,
) -> float:
    """Score a held file from its file name.

    Held files are never treated as dubbed. When the name yields no score at
    all, the score falls back to size / 100, capped at 50.

    Args:
        relative_path: The file's path relative to the library root
        size_mb: File size in MB
        settings: Scoring weights
        original_language: The title's original language

    Returns:
        The file's quality score
    """
    parsed = parse_release_title(relative_path)
    preferred = bool(original_language) and original_language in {
        lang.lower() for lang in settings.preferred_audio_languages
    }
    score = compute_quality_score(parsed, settings, preferred_language=preferred)
    if score == 0 and size_mb:
        score = round(min(size_mb / 100, FALLBACK_SCORE_CAP), 2)
    return score


def _language_code(language: Language | None) -> str | None:
    if language is None or not language.name or language.name.lower() == "unknown":
        return None
    return get_language_code(language.name)


class ArrLibrary:
    """Library lookup backed by Radarr (movies) and Sonarr (TV).

    Movies are looked up by TMDB ID; TV releases by TVDB ID and season.
    Clients must already be opened with `async with`.
    """

    def __init__(
        self,
        settings: QualitySettings,
        radarr: RadarrClient | None = None,
        sonarr: SonarrClient | None = None,
    ) -> None:
        self.settings = settings
        self.radarr = radarr
        self.sonarr = sonarr

    async def lookup(self, release: Release) -> LibraryEntry | None:
        """Return the holding for a release, or None when nothing is held."""
        if release.kind == MediaKind.MOVIE:
            return await self._lookup_movie(release)
        return await self._lookup_season(release)

    async def _lookup_movie(self, release: Release) -> LibraryEntry | None:
        tmdb_id = release.identity.tmdb_id
        if self.radarr is None or tmdb_id is None:
            return None
        movie = await self.radarr.find_movie_by_tmdb_id(tmdb_id)
        if movie is None or not movie.has_file or movie.movie_file is None:
            return None

        language = _language_code(movie.original_language)
        size_mb = movie.movie_file.size / BYTES_PER_MB
        score = score_held_file(movie.movie_file.relative_path, size_mb, self.settings, language)
        logger.debug("Radarr holds %r at score %.2f (%.0f MB)", movie.title, score, size_mb)
        return LibraryEntry(
            title=movie.title, quality_score=score, size_mb=size_mb, original_language=language
        )

    async def _lookup_season(self, release: Release) -> LibraryEntry | None:
        tvdb_id = release.identity.tvdb_id
        if self.sonarr is None or tvdb_id is None:
            return None
        series = await self.sonarr.find_series_by_tvdb_id(tvdb_id)
        if series is None:
            return None

        files = await self.sonarr.get_episode_files(series.id)
        if release.season is not None:
            files = [f for f in files if f.season_number == release.season]
        if not files:
            return None

        episode = parse_episode(release.title)
        if episode is not None:
            # A single episode is compared with its own file, else the mean held file.
            held = [f for f in files if parse_episode(f.relative_path) == episode]
            files = held or files

        language = _language_code(series.original_language)
        # The weakest held episode decides whether a pack is an upgrade.
        score = min(
            score_held_file(f.relative_path, f.size / BYTES_PER_MB, self.settings, language)
            for f in files
        )
        total = sum(f.size for f in files)
        size_mb = (total if episode is None else total / len(files)) / BYTES_PER_MB
        logger.debug(
            "Sonarr holds %r season %s: %d files, score %.2f",
            series.title,
            release.season,
            len(files),
            score,
        )
        return LibraryEntry(
            title=series.title, quality_score=score, size_mb=size_mb, original_language=language
        )
