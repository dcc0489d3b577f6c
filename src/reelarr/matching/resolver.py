"""Identity resolution: noisy release titles to TVDB/TMDB/IMDB IDs.

Automatic resolution works outward from whatever IDs a release already
carries, then searches the catalogs in a fixed order:

1. Cross-reference known IDs (TVDB remote IDs, TMDB external IDs).
2. IMDB -> TMDB via "find by external ID".
3. Title -> IMDB via OMDB, falling back to web search.
4. Title + year -> TMDB search, rejecting a top result from another year.
5. Step 4 again with the normalized title when it differs.
6. For TV, a similarity-gated TVDB search (run right after step 1 because
   TVDB is the primary TV catalog).
7. Cross-validate a TMDB/IMDB pair and repair the TMDB ID on disagreement.

Catalog failures never escape the resolver: each call is guarded, logged and
treated as "no candidate from this source".
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

from reelarr.clients.base import CatalogError, CatalogRateLimitError
from reelarr.matching.catalogs import Catalogs
from reelarr.matching.similarity import (
    similarity,
    validate_show_name_match,
    validate_year_match,
)
from reelarr.models.catalog import CatalogTitle, TvdbSeries
from reelarr.models.common import MediaKind
from reelarr.models.release import ID_FIELDS, IdentityFields, IdField, Release
from reelarr.parsing.title import normalize_title

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ResolutionOutcome(str, Enum):
    """How a resolution attempt ended.

    Attributes:
        RESOLVED: At least one ID is known
        NO_MATCH: Every catalog answered, none produced an acceptable match
        AMBIGUOUS: Several candidates were equally good; nothing was chosen
        CATALOG_UNAVAILABLE: Nothing resolved and at least one catalog failed
    """

    RESOLVED = "resolved"
    NO_MATCH = "no_match"
    AMBIGUOUS = "ambiguous"
    CATALOG_UNAVAILABLE = "catalog_unavailable"


@dataclass(frozen=True)
class MatchingSettings:
    """Thresholds for candidate selection.

    Attributes:
        similarity_floor: TVDB candidates scoring below this are dropped
        year_tolerance: Allowed year difference for TVDB candidates
        year_bonus: Ranking bonus for a candidate with the exact year
        min_word_match: Shared significant words required for long names
    """

    similarity_floor: float = 0.5
    year_tolerance: int = 3
    year_bonus: float = 0.1
    min_word_match: int = 1


@dataclass
class ResolutionResult:
    """IDs and metadata found for one release.

    `found` holds every ID known after resolution, seeds included. `manual`
    holds values chosen by a human that must be stored with their manual flag.
    """

    outcome: ResolutionOutcome
    found: IdentityFields = field(default_factory=IdentityFields)
    manual: dict[IdField, int | str] = field(default_factory=dict)
    display_title: str | None = None
    original_language: str | None = None
    failed_sources: list[str] = field(default_factory=list)
    replace: bool = False

    @property
    def resolved(self) -> bool:
        return self.outcome == ResolutionOutcome.RESOLVED

    def apply(self, release: Release) -> list[str]:
        """Write the result onto a release, honoring manual flags.

        Args:
            release: The release to update in place

        Returns:
            Names of the attributes that changed; empty when nothing did
        """
        identity = release.identity
        changed: list[str] = []
        for name, value in self.manual.items():
            if getattr(identity, name) != value or not identity.is_manual(name):
                identity.set_manual(name, value)
                changed.append(name)
        # After a human match the found IDs supersede every unflagged one.
        write = identity.replace_automatic if self.replace else identity.apply_automatic
        for name in write(self.found):
            if name not in changed:
                changed.append(name)
        if self.display_title and self.display_title != release.display_title:
            release.display_title = self.display_title
            changed.append("display_title")
        if self.original_language and self.original_language != release.original_language:
            release.original_language = self.original_language
            changed.append("original_language")
        return changed


@dataclass
class _SearchState:
    """Mutable working set for one resolution attempt."""

    release: Release
    tvdb_id: int | None = None
    tmdb_id: int | None = None
    imdb_id: str | None = None
    locked: frozenset[str] = frozenset()
    limited: set[str] = field(default_factory=set)
    failed: list[str] = field(default_factory=list)
    ambiguous: bool = False
    display_title: str | None = None
    original_language: str | None = None
    tmdb_details: CatalogTitle | None = None

    @classmethod
    def for_release(cls, release: Release) -> _SearchState:
        identity = release.identity
        return cls(
            release=release,
            tvdb_id=identity.tvdb_id,
            tmdb_id=identity.tmdb_id,
            imdb_id=identity.imdb_id,
            locked=frozenset(name for name in ID_FIELDS if identity.is_manual(name)),
        )

    def can_fill(self, name: IdField) -> bool:
        return getattr(self, name) is None and name not in self.locked

    def fill(self, name: IdField, value: int | str | None, source: str) -> bool:
        if value is None or not self.can_fill(name):
            return False
        setattr(self, name, value)
        logger.info("Release %s: %s=%s from %s", self.release.guid, name, value, source)
        return True

    def identity(self) -> IdentityFields:
        return IdentityFields(tvdb_id=self.tvdb_id, tmdb_id=self.tmdb_id, imdb_id=self.imdb_id)

    def outcome(self) -> ResolutionOutcome:
        if self.identity().is_resolved:
            return ResolutionOutcome.RESOLVED
        if self.ambiguous:
            return ResolutionOutcome.AMBIGUOUS
        if self.failed:
            return ResolutionOutcome.CATALOG_UNAVAILABLE
        return ResolutionOutcome.NO_MATCH

    def result(
        self, manual: dict[IdField, int | str] | None = None, *, replace: bool = False
    ) -> ResolutionResult:
        return ResolutionResult(
            outcome=self.outcome(),
            found=self.identity(),
            manual=manual or {},
            replace=replace,
            display_title=self.display_title,
            original_language=self.original_language,
            failed_sources=list(self.failed),
        )


class IdentityResolver:
    """Resolves releases to catalog identities.

    Example:
        resolver = IdentityResolver(Catalogs(tmdb=tmdb, tvdb=tvdb))
        result = await resolver.resolve(release)
        result.apply(release)
    """

    def __init__(self, catalogs: Catalogs, settings: MatchingSettings | None = None) -> None:
        self.catalogs = catalogs
        self.settings = settings or MatchingSettings()

    async def _call(
        self,
        state: _SearchState,
        source: str,
        func: Callable[..., Awaitable[T]],
        *args: Any,
    ) -> T | None:
        """Run one catalog call, converting failures into "no candidate"."""
        if source in state.limited:
            logger.debug("Skipping %s for %s: rate limited", source, state.release.guid)
            return None
        try:
            return await func(*args)
        except CatalogRateLimitError as e:
            logger.warning("%s rate limited, skipping it for %s: %s", source, state.release.guid, e)
            state.limited.add(source)
            state.failed.append(source)
        except CatalogError as e:
            logger.warning("%s lookup failed for %s: %s", source, state.release.guid, e)
            state.failed.append(source)
        return None

    async def resolve(self, release: Release) -> ResolutionResult:
        """Automatically resolve a release's identity.

        Manually flagged fields are neither searched for nor changed, but
        their values still seed cross-reference lookups.

        Args:
            release: The release to resolve; it is not modified

        Returns:
            The IDs found and how the attempt ended
        """
        state = _SearchState.for_release(release)
        kind = release.kind

        await self._cross_reference(state)

        if kind == MediaKind.TV and state.can_fill("tvdb_id"):
            await self._search_tvdb(state, release.clean_title)

        await self._tmdb_from_imdb(state)

        if state.can_fill("imdb_id") and release.clean_title:
            await self._search_imdb(state)
            await self._tmdb_from_imdb(state)

        if state.can_fill("tmdb_id") and release.clean_title:
            found = await self._search_tmdb(state, release.clean_title)
            variant = normalize_title(release.clean_title)
            if not found and variant and variant != release.clean_title:
                await self._search_tmdb(state, variant)

        await self._cross_reference(state)
        await self._cross_validate(state)
        await self._load_metadata(state)

        result = state.result()
        logger.debug("Release %s resolved as %s: %s", release.guid, result.outcome.value, result.found)
        return result

    async def resolve_manual(
        self, release: Release, name: IdField, value: int | str
    ) -> ResolutionResult:
        """Apply an ID supplied by a human.

        The value is trusted as given. Searching is skipped; the other IDs
        are only derived through cross-reference from the supplied one, and
        canonical metadata is fetched for display.

        Args:
            release: The release being matched
            name: Which ID field the human supplied
            value: The ID value

        Returns:
            The result, with the supplied value under `manual`
        """
        state = _SearchState.for_release(release)
        setattr(state, name, value)
        state.locked = state.locked | {name}
        for other in ID_FIELDS:
            if other != name and other not in state.locked:
                # The other IDs belonged to the previous match.
                setattr(state, other, None)

        await self._cross_reference(state)
        await self._load_metadata(state)
        return state.result(manual={name: value}, replace=True)

    async def match_by_title(
        self, release: Release, title: str, year: int | None = None
    ) -> ResolutionResult:
        """Match a release to a title and year supplied by a human.

        The primary catalog for the release kind (TVDB for TV, TMDB for
        movies) is searched with the human title and its top result taken
        without similarity gating.

        Args:
            release: The release being matched
            title: The title to search for
            year: Optional year

        Returns:
            The result; NO_MATCH when the catalog returned nothing
        """
        state = _SearchState.for_release(release)
        manual: dict[IdField, int | str] = {}

        if release.kind == MediaKind.TV and self.catalogs.tvdb is not None:
            series = await self._call(state, "tvdb", self.catalogs.tvdb.search_series, title, year)
            if series:
                manual["tvdb_id"] = series[0].id
                state.display_title = series[0].name
        if not manual and self.catalogs.tmdb is not None:
            titles = await self._call(state, "tmdb", self.catalogs.tmdb.search, title, release.kind, year)
            if titles:
                manual["tmdb_id"] = titles[0].id
                state.display_title = titles[0].title

        if not manual:
            logger.info("No catalog match for %r (%s)", title, year)
            outcome = (
                ResolutionOutcome.CATALOG_UNAVAILABLE if state.failed else ResolutionOutcome.NO_MATCH
            )
            return ResolutionResult(outcome=outcome, failed_sources=list(state.failed))

        for other in ID_FIELDS:
            if other not in state.locked:
                setattr(state, other, None)
        for name, value in manual.items():
            setattr(state, name, value)
            state.locked = state.locked | {name}

        await self._cross_reference(state)
        await self._load_metadata(state)
        return state.result(manual=manual, replace=True)

    async def _cross_reference(self, state: _SearchState) -> None:
        """Derive missing IDs from the ones already known."""
        kind = state.release.kind
        if state.tvdb_id is not None and self.catalogs.tvdb is not None:
            if state.can_fill("tmdb_id") or state.can_fill("imdb_id") or not state.display_title:
                series = await self._call(
                    state, "tvdb", self.catalogs.tvdb.get_series_extended, state.tvdb_id
                )
                if series is not None:
                    self._apply_series(state, series)

        if state.tmdb_id is not None and self.catalogs.tmdb is not None:
            wants_tvdb = kind == MediaKind.TV and state.can_fill("tvdb_id")
            if state.can_fill("imdb_id") or wants_tvdb:
                details = await self._tmdb_details(state)
                if details is not None:
                    state.fill("imdb_id", details.imdb_id, "tmdb")
                    if kind == MediaKind.TV:
                        state.fill("tvdb_id", details.tvdb_id, "tmdb")

    def _apply_series(self, state: _SearchState, series: TvdbSeries) -> None:
        state.fill("tmdb_id", series.remote_ids.tmdb_id, "tvdb remote ids")
        state.fill("imdb_id", series.remote_ids.imdb_id, "tvdb remote ids")
        if series.name:
            state.display_title = series.name

    async def _tmdb_details(self, state: _SearchState) -> CatalogTitle | None:
        if state.tmdb_id is None or self.catalogs.tmdb is None:
            return None
        if state.tmdb_details is None or state.tmdb_details.id != state.tmdb_id:
            state.tmdb_details = await self._call(
                state, "tmdb", self.catalogs.tmdb.get_title, state.tmdb_id, state.release.kind
            )
        return state.tmdb_details

    async def _search_tvdb(self, state: _SearchState, name: str) -> None:
        """Pick the best TVDB candidate that clears every gate."""
        if not name or self.catalogs.tvdb is None:
            return
        candidates = await self._call(state, "tvdb", self.catalogs.tvdb.search_series, name)
        if not candidates:
            return

        year = state.release.year
        settings = self.settings
        ranked: list[tuple[float, float, float, TvdbSeries]] = []
        for series in candidates:
            score = similarity(name, series.name)
            if score < settings.similarity_floor:
                logger.debug("Rejecting TVDB %r for %r: similarity %.3f", series.name, name, score)
                continue
            if not validate_show_name_match(name, series.name, settings.min_word_match):
                logger.debug("Rejecting TVDB %r for %r: words do not match", series.name, name)
                continue
            if year is not None and not validate_year_match(
                year, series.year, settings.year_tolerance
            ):
                logger.debug("Rejecting TVDB %r for %r: year %s vs %s", series.name, name, series.year, year)
                continue
            bonus = settings.year_bonus if year is not None and series.year == year else 0.0
            ranked.append((score + bonus, bonus, series.popularity, series))

        if not ranked:
            logger.info("No TVDB candidate for %r survived validation", name)
            return

        ranked.sort(key=lambda item: item[:3], reverse=True)
        best = ranked[0]
        if len(ranked) > 1 and ranked[1][:3] == best[:3] and ranked[1][3].id != best[3].id:
            logger.warning(
                "Ambiguous TVDB match for %r: %r and %r are tied",
                name,
                best[3].name,
                ranked[1][3].name,
            )
            state.ambiguous = True
            return

        series = best[3]
        logger.info("Selected TVDB %r (%d) for %r, score %.3f", series.name, series.id, name, best[0])
        if state.fill("tvdb_id", series.id, "tvdb search"):
            extended = await self._call(
                state, "tvdb", self.catalogs.tvdb.get_series_extended, series.id
            )
            self._apply_series(state, extended or series)

    async def _tmdb_from_imdb(self, state: _SearchState) -> None:
        if state.imdb_id is None or not state.can_fill("tmdb_id") or self.catalogs.tmdb is None:
            return
        match = await self._call(
            state, "tmdb", self.catalogs.tmdb.find_by_imdb_id, state.imdb_id, state.release.kind
        )
        if match is not None:
            state.fill("tmdb_id", match.id, "tmdb find")

    async def _search_imdb(self, state: _SearchState) -> None:
        release = state.release
        title = release.clean_title
        if self.catalogs.omdb is not None:
            imdb_id = await self._call(
                state, "omdb", self.catalogs.omdb.find_imdb_id, title, release.kind, release.year
            )
            if state.fill("imdb_id", imdb_id, "omdb"):
                return
        if self.catalogs.brave is not None:
            imdb_id = await self._call(
                state, "brave", self.catalogs.brave.find_imdb_id, title, release.year
            )
            state.fill("imdb_id", imdb_id, "brave")

    async def _search_tmdb(self, state: _SearchState, title: str) -> bool:
        """Search TMDB and take the top result unless its year disagrees.

        Returns:
            True if the search produced any results at all
        """
        if self.catalogs.tmdb is None:
            return False
        release = state.release
        results = await self._call(
            state, "tmdb", self.catalogs.tmdb.search, title, release.kind, release.year
        )
        if not results:
            return False
        top = results[0]
        if release.year is not None and top.year is not None and top.year != release.year:
            logger.info(
                "Rejecting TMDB %r (%s) for %r: release year is %s",
                top.title,
                top.year,
                title,
                release.year,
            )
            return True
        if state.fill("tmdb_id", top.id, "tmdb search"):
            state.tmdb_details = None
        return True

    async def _cross_validate(self, state: _SearchState) -> None:
        """Check that the TMDB record links back to the stored IMDB ID."""
        if state.tmdb_id is None or state.imdb_id is None or self.catalogs.tmdb is None:
            return
        details = await self._tmdb_details(state)
        if details is None or not details.imdb_id or details.imdb_id == state.imdb_id:
            return

        release = state.release
        logger.warning(
            "Release %s: TMDB %s links to %s, stored IMDB is %s",
            release.guid,
            state.tmdb_id,
            details.imdb_id,
            state.imdb_id,
        )
        if "tmdb_id" in state.locked:
            return

        rederived = await self._call(
            state, "tmdb", self.catalogs.tmdb.find_by_imdb_id, state.imdb_id, release.kind
        )
        if rederived is None or rederived.id == state.tmdb_id:
            return
        if release.year is not None and rederived.year is not None and rederived.year != release.year:
            logger.warning(
                "Release %s: keeping TMDB %s, re-derived %s is from %s not %s",
                release.guid,
                state.tmdb_id,
                rederived.id,
                rederived.year,
                release.year,
            )
            return

        logger.info("Release %s: TMDB %s replaced by %s", release.guid, state.tmdb_id, rederived.id)
        state.tmdb_id = rederived.id
        state.tmdb_details = rederived

    async def _load_metadata(self, state: _SearchState) -> None:
        """Fetch the display title and original language from TMDB."""
        details = await self._tmdb_details(state)
        if details is None:
            return
        if not state.display_title:
            state.display_title = details.title
        if details.original_language:
            state.original_language = details.original_language
