"""The matching pass: resolve, propagate, score and classify releases."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from reelarr.clients.base import CatalogError
from reelarr.library import LibraryEntry, LibraryLookup
from reelarr.matching.lease import PassLease
from reelarr.matching.propagation import find_siblings, propagate_identity
from reelarr.matching.resolver import IdentityResolver, ResolutionResult
from reelarr.models.common import MediaKind
from reelarr.models.release import IdField, Release, utcnow
from reelarr.progress import ProgressSink, SafeProgress
from reelarr.scoring import lifecycle
from reelarr.scoring.lifecycle import RESCORABLE
from reelarr.scoring.quality import QualitySettings, evaluate
from reelarr.storage.repository import ReleaseNotFoundError, ReleaseRepository

logger = logging.getLogger(__name__)


class PassAlreadyRunningError(RuntimeError):
    """An automatic matching pass is already in progress."""

    def __init__(self) -> None:
        super().__init__("Matching pass already running")


@dataclass
class PassStats:
    """Counts from one matching pass."""

    total: int = 0
    processed: int = 0
    propagated: int = 0
    errors: int = 0
    outcomes: Counter[str] = field(default_factory=Counter)
    statuses: Counter[str] = field(default_factory=Counter)
    started_at: datetime = field(default_factory=utcnow)
    finished_at: datetime | None = None

    def to_dict(self) -> dict[str, object]:
        """Convert to a plain dictionary for JSON output."""
        return {
            "total": self.total,
            "processed": self.processed,
            "propagated": self.propagated,
            "errors": self.errors,
            "outcomes": dict(self.outcomes),
            "statuses": dict(self.statuses),
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


class MatchingEngine:
    """Runs identity resolution and quality scoring over stored releases.

    Only one automatic pass runs at a time per lease. User-directed matches
    and actions do not take the lease.

    Example:
        engine = MatchingEngine(repo, IdentityResolver(catalogs), QualitySettings.default())
        stats = await engine.run_pass()
    """

    def __init__(
        self,
        repo: ReleaseRepository,
        resolver: IdentityResolver,
        settings: QualitySettings,
        *,
        library: LibraryLookup | None = None,
        lease: PassLease | None = None,
        progress: ProgressSink | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            repo: Release storage
            resolver: Identity resolver with its catalogs
            settings: Quality scoring settings
            library: Library lookup for existing holdings; None means nothing is held
            lease: Pass lease, shared between engines that must not overlap
            progress: Receiver of pass progress events
        """
        self.repo = repo
        self.resolver = resolver
        self.settings = settings
        self.library = library
        self.lease = lease or PassLease()
        self.progress = SafeProgress(progress)

    @property
    def is_running(self) -> bool:
        return self.lease.held

    async def run_pass(self, kind: MediaKind | None = None) -> PassStats:
        """Run one automatic matching pass.

        Each release is committed on its own, so a failure part way through
        keeps the releases already processed.

        Args:
            kind: Limit the pass to movies or TV

        Returns:
            Counts for the pass

        Raises:
            PassAlreadyRunningError: If a pass already holds the lease
        """
        if not self.lease.try_acquire():
            raise PassAlreadyRunningError()
        try:
            return await self._run_pass(kind)
        finally:
            self.lease.release()

    async def _run_pass(self, kind: MediaKind | None) -> PassStats:
        queue = [
            release.guid
            for release in self.repo.list_releases(kind=kind, statuses=RESCORABLE)
            if not release.manually_ignored
        ]
        stats = PassStats(total=len(queue))
        self.progress.start("matching", stats.total)
        logger.info("Matching pass started: %d releases", stats.total)

        for guid in queue:
            # Propagation may have updated this release earlier in the pass.
            release = self.repo.get(guid)
            if release is None:
                continue
            try:
                await self._process(release, stats)
            except Exception as e:
                stats.errors += 1
                self.progress.error(f"{guid}: {e}")
                logger.error("Matching pass aborted at %s: %s", guid, e)
                raise
            stats.processed += 1
            self.progress.update(
                f"Matched {release.clean_title}", stats.processed, stats.total, stats.errors
            )

        stats.finished_at = utcnow()
        self.progress.complete()
        logger.info(
            "Matching pass finished: %d processed, %d propagated, %d errors",
            stats.processed,
            stats.propagated,
            stats.errors,
        )
        return stats

    async def _process(self, release: Release, stats: PassStats) -> None:
        result = await self.resolver.resolve(release)
        stats.outcomes[result.outcome.value] += 1
        stats.propagated += await self._commit(release, result, stats)
        stats.statuses[release.status.value] += 1

    async def _commit(
        self, release: Release, result: ResolutionResult, stats: PassStats | None = None
    ) -> int:
        """Apply a resolution, rescore, then save the release and its siblings together.

        Returns:
            Number of siblings updated by propagation
        """
        result.apply(release)

        scored = True
        entry: LibraryEntry | None = None
        if self.library is not None:
            try:
                entry = await self.library.lookup(release)
            except CatalogError as e:
                logger.warning("Library lookup failed for %s: %s", release.guid, e)
                scored = False
                if stats is not None:
                    stats.errors += 1

        if scored:
            self._score(release, entry)
        else:
            release.touch()

        with self.repo.transaction():
            self.repo.save(release)
            updated = 0
            if release.identity.is_resolved:
                candidates = self.repo.list_releases(kind=release.kind)
                propagation = propagate_identity(
                    release, find_siblings(release, candidates), replace=result.replace
                )
                for sibling in propagation.updated:
                    self.repo.save(sibling)
                updated = propagation.writes
        return updated

    def _score(self, release: Release, entry: LibraryEntry | None) -> None:
        if entry is not None:
            release.existing_quality_score = entry.quality_score
            release.existing_size_mb = entry.size_mb
            if not release.original_language:
                release.original_language = entry.original_language
        else:
            release.existing_quality_score = None
            release.existing_size_mb = None

        verdict = evaluate(
            release.parsed,
            self.settings,
            original_language=release.original_language,
            existing_score=release.existing_quality_score,
            existing_size_mb=release.existing_size_mb,
        )
        if not verdict.eligible:
            logger.debug("Release %s is not eligible under the resolution rules", release.guid)
        lifecycle.apply_verdict(release, verdict)

    def _require(self, guid: str) -> Release:
        release = self.repo.get(guid)
        if release is None:
            raise ReleaseNotFoundError(guid)
        return release

    async def match_manually(
        self,
        guid: str,
        *,
        tvdb_id: int | None = None,
        tmdb_id: int | None = None,
        imdb_id: str | None = None,
        title: str | None = None,
        year: int | None = None,
    ) -> ResolutionResult:
        """Match a release to an ID or a title chosen by a human.

        Exactly one of the three IDs or a title must be given. The chosen
        value is stored with its manual flag and propagated to siblings.

        Raises:
            ReleaseNotFoundError: If the guid is not stored
            ValueError: If no match target or more than one was given
        """
        supplied: list[tuple[IdField, int | str]] = [
            (name, value)
            for name, value in (("tvdb_id", tvdb_id), ("tmdb_id", tmdb_id), ("imdb_id", imdb_id))
            if value is not None
        ]
        if len(supplied) + (title is not None) != 1:
            raise ValueError("Give exactly one of tvdb_id, tmdb_id, imdb_id or title")

        release = self._require(guid)
        if title is not None:
            result = await self.resolver.match_by_title(release, title, year)
        else:
            name, value = supplied[0]
            result = await self.resolver.resolve_manual(release, name, value)

        if result.resolved:
            await self._commit(release, result)
            logger.info("Manually matched %s: %s", guid, release.identity.fields())
        else:
            logger.info("Manual match for %s found nothing: %s", guid, result.outcome.value)
        return result

    def _update(self, guid: str, transition: Callable[[Release], Release]) -> Release:
        release = self._require(guid)
        transition(release)
        with self.repo.transaction():
            self.repo.save(release)
        logger.info("Release %s is now %s", guid, release.status.value)
        return release

    def accept(self, guid: str) -> Release:
        """Mark a NEW release as added to the library."""
        return self._update(guid, lifecycle.accept)

    def confirm_upgrade(self, guid: str) -> Release:
        """Mark an upgrade candidate as upgraded."""
        return self._update(guid, lifecycle.confirm_upgrade)

    def dismiss(self, guid: str) -> Release:
        """Ignore a release for good."""
        return self._update(guid, lifecycle.dismiss)

    def delete(self, guid: str, reason: str = "") -> None:
        """Delete a release and blacklist its guid.

        Raises:
            ReleaseNotFoundError: If the guid is not stored
        """
        self._require(guid)
        self.repo.delete(guid, reason)

