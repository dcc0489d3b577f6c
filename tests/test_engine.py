"""Tests for the matching engine."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from reelarr.clients.base import CatalogError
from reelarr.engine import MatchingEngine, PassAlreadyRunningError
from reelarr.library import LibraryEntry
from reelarr.matching.catalogs import Catalogs
from reelarr.matching.lease import PassLease
from reelarr.matching.resolver import IdentityResolver
from reelarr.models.catalog import TvdbSeries
from reelarr.models.common import MediaKind, ReleaseStatus
from reelarr.models.release import Identity, IdentityFields
from reelarr.progress import SyncProgress
from reelarr.scoring.lifecycle import InvalidTransitionError
from reelarr.scoring.quality import QualitySettings
from reelarr.storage.repository import ReleaseNotFoundError
from reelarr.storage.sqlite import SqliteReleaseRepository

T0 = datetime(2025, 1, 1, tzinfo=UTC)


@pytest.fixture
def repo():
    repository = SqliteReleaseRepository(":memory:")
    yield repository
    repository.close()


@pytest.fixture
def catalogs() -> Catalogs:
    tmdb = AsyncMock()
    tmdb.get_title.return_value = None
    tmdb.search.return_value = []
    tmdb.find_by_imdb_id.return_value = None
    tvdb = AsyncMock()
    tvdb.search_series.return_value = []
    tvdb.get_series_extended.return_value = None
    return Catalogs(tmdb=tmdb, tvdb=tvdb)


def _engine(repo, catalogs: Catalogs, **kwargs) -> MatchingEngine:
    return MatchingEngine(repo, IdentityResolver(catalogs), QualitySettings.default(), **kwargs)


class TestRunPass:
    """Tests for the automatic pass."""

    @pytest.mark.asyncio
    async def test_resolves_propagates_and_scores(self, repo, catalogs, make_release) -> None:
        """The first release is resolved and its sibling receives the identity."""
        catalogs.tvdb.search_series.return_value = [TvdbSeries(id=10, name="Show Name")]
        repo.add(make_release(guid="a", published_at=T0))
        repo.add(make_release(guid="b", published_at=T0 + timedelta(hours=1)))

        stats = await _engine(repo, catalogs).run_pass()

        assert stats.total == 2
        assert stats.processed == 2
        assert stats.propagated == 1
        assert stats.outcomes == {"resolved": 2}
        assert stats.statuses == {"NEW": 2}
        assert stats.finished_at is not None
        assert catalogs.tvdb.search_series.await_count == 1
        stored = repo.get("b")
        assert stored.identity.tvdb_id == 10
        # 1080p 30 + WEB-DL 20 + x264 10 + DDP 12
        assert stored.new_quality_score == 72.0

    @pytest.mark.asyncio
    async def test_already_running(self, repo, catalogs) -> None:
        """A second pass on a held lease is rejected, not queued."""
        lease = PassLease()
        lease.try_acquire()
        engine = _engine(repo, catalogs, lease=lease)

        with pytest.raises(PassAlreadyRunningError, match="already running"):
            await engine.run_pass()

        assert engine.is_running is True
        lease.release()

    @pytest.mark.asyncio
    async def test_lease_released_after_pass(self, repo, catalogs) -> None:
        """The lease is free again once a pass ends."""
        engine = _engine(repo, catalogs)

        await engine.run_pass()

        assert engine.is_running is False

    @pytest.mark.asyncio
    async def test_settled_and_dismissed_skipped(self, repo, catalogs, make_release) -> None:
        """ADDED, UPGRADED and dismissed releases are not re-scored."""
        repo.add(make_release(guid="added", status=ReleaseStatus.ADDED))
        repo.add(make_release(guid="upgraded", status=ReleaseStatus.UPGRADED))
        repo.add(
            make_release(guid="dismissed", status=ReleaseStatus.IGNORED, manually_ignored=True)
        )
        repo.add(make_release(guid="ignored", status=ReleaseStatus.IGNORED))

        stats = await _engine(repo, catalogs).run_pass()

        assert stats.total == 1

    @pytest.mark.asyncio
    async def test_kind_filter(self, repo, catalogs, make_release) -> None:
        """A pass limited to movies leaves TV releases alone."""
        repo.add(make_release(guid="tv"))
        repo.add(make_release("Film", guid="movie", kind=MediaKind.MOVIE))

        stats = await _engine(repo, catalogs).run_pass(MediaKind.MOVIE)

        assert stats.total == 1
        catalogs.tvdb.search_series.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_library_holding_makes_upgrade(self, repo, catalogs, make_release) -> None:
        """A release well above the held file becomes an upgrade candidate."""
        library = AsyncMock()
        library.lookup.return_value = LibraryEntry(
            title="Show Name", quality_score=40.0, size_mb=1000.0, original_language="en"
        )
        repo.add(make_release(guid="a"))

        stats = await _engine(repo, catalogs, library=library).run_pass()

        stored = repo.get("a")
        assert stored.status == ReleaseStatus.UPGRADE_CANDIDATE
        assert stored.existing_quality_score == 40.0
        assert stored.existing_size_mb == 1000.0
        assert stored.original_language == "en"
        assert stats.statuses == {"UPGRADE_CANDIDATE": 1}

    @pytest.mark.asyncio
    async def test_library_failure_skips_scoring(self, repo, catalogs, make_release) -> None:
        """A failed library lookup counts an error and leaves the status alone."""
        library = AsyncMock()
        library.lookup.side_effect = CatalogError("sonarr", "HTTP 500")
        repo.add(make_release(guid="a", last_checked_at=T0))

        stats = await _engine(repo, catalogs, library=library).run_pass()

        stored = repo.get("a")
        assert stats.errors == 1
        assert stats.processed == 1
        assert stored.status == ReleaseStatus.NEW
        assert stored.new_quality_score is None
        assert stored.last_checked_at > T0

    @pytest.mark.asyncio
    async def test_failure_keeps_committed_items(self, repo, catalogs, make_release) -> None:
        """An unexpected error aborts the pass but earlier releases stay committed."""
        catalogs.tvdb.search_series.side_effect = [[], RuntimeError("boom")]
        repo.add(make_release("Alpha", guid="a", published_at=T0))
        repo.add(make_release("Beta", guid="b", published_at=T0 + timedelta(hours=1)))
        progress = SyncProgress()

        with pytest.raises(RuntimeError, match="boom"):
            await _engine(repo, catalogs, progress=progress).run_pass()

        assert repo.get("a").new_quality_score == 72.0
        assert repo.get("b").new_quality_score is None
        snapshot = progress.get()
        assert snapshot is not None
        assert snapshot.is_running is False
        assert "boom" in snapshot.error

    @pytest.mark.asyncio
    async def test_broken_progress_sink_ignored(self, repo, catalogs, make_release) -> None:
        """A progress sink that raises never breaks the pass."""
        sink = MagicMock()
        sink.start.side_effect = RuntimeError("sink down")
        sink.update.side_effect = RuntimeError("sink down")
        repo.add(make_release(guid="a"))

        stats = await _engine(repo, catalogs, progress=sink).run_pass()

        assert stats.processed == 1
        sink.complete.assert_called_once()


class TestManualMatch:
    """Tests for user-directed matching."""

    @pytest.mark.asyncio
    async def test_manual_id_propagates(self, repo, catalogs, make_release) -> None:
        """A manual TVDB ID is stored flagged and copied to siblings unflagged."""
        repo.add(make_release(guid="a"))
        repo.add(make_release(guid="b"))
        engine = _engine(repo, catalogs)

        result = await engine.match_manually("a", tvdb_id=77)

        assert result.resolved
        source, sibling = repo.get("a"), repo.get("b")
        assert source.identity.tvdb_id == 77
        assert source.identity.tvdb_id_manual is True
        assert sibling.identity.tvdb_id == 77
        assert sibling.identity.tvdb_id_manual is False

    @pytest.mark.asyncio
    async def test_manual_match_runs_during_pass(self, repo, catalogs, make_release) -> None:
        """User-directed matches do not need the pass lease."""
        lease = PassLease()
        lease.try_acquire()
        repo.add(make_release(guid="a"))

        result = await _engine(repo, catalogs, lease=lease).match_manually("a", tmdb_id=5)

        assert result.resolved
        lease.release()

    @pytest.mark.asyncio
    async def test_requires_exactly_one_target(self, repo, catalogs, make_release) -> None:
        """Zero or several targets are rejected."""
        repo.add(make_release(guid="a"))
        engine = _engine(repo, catalogs)

        with pytest.raises(ValueError):
            await engine.match_manually("a")
        with pytest.raises(ValueError):
            await engine.match_manually("a", tvdb_id=1, title="Show")

    @pytest.mark.asyncio
    async def test_unknown_guid(self, repo, catalogs) -> None:
        """Matching an unknown release raises ReleaseNotFoundError."""
        with pytest.raises(ReleaseNotFoundError):
            await _engine(repo, catalogs).match_manually("missing", tvdb_id=1)

    @pytest.mark.asyncio
    async def test_title_without_result_changes_nothing(self, repo, catalogs, make_release) -> None:
        """A title match that finds nothing leaves the stored release as it was."""
        repo.add(make_release(guid="a", identity=Identity(tvdb_id=3)))

        result = await _engine(repo, catalogs).match_manually("a", title="Nothing")

        assert not result.resolved
        assert repo.get("a").identity.tvdb_id == 3

    @pytest.mark.asyncio
    async def test_repointed_sibling_cannot_restore_old_ids(
        self, repo, catalogs, make_release
    ) -> None:
        """After a manual re-point neither release keeps IDs of the old show."""
        old = dict(tvdb_id=1, tmdb_id=10, imdb_id="tt0000001")
        repo.add(make_release(guid="a", published_at=T0, identity=Identity(**old)))
        later = T0 + timedelta(hours=1)
        repo.add(make_release(guid="b", published_at=later, identity=Identity(**old)))
        engine = _engine(repo, catalogs)

        await engine.match_manually("a", tvdb_id=77)
        await engine.run_pass()

        source, sibling = repo.get("a"), repo.get("b")
        assert source.identity.fields() == IdentityFields(tvdb_id=77)
        assert sibling.identity.fields() == IdentityFields(tvdb_id=77)

    @pytest.mark.asyncio
    async def test_failed_sibling_write_rolls_back_match(
        self, repo, catalogs, make_release
    ) -> None:
        """A manual match is stored with all its siblings or not at all."""
        for offset, guid in enumerate(("a", "b", "c")):
            repo.add(make_release(guid=guid, published_at=T0 + timedelta(hours=offset)))
        real_save = repo.save
        saved: list[str] = []

        def flaky_save(release) -> None:
            saved.append(release.guid)
            if len(saved) == 3:
                raise RuntimeError("disk full")
            real_save(release)

        with patch.object(repo, "save", side_effect=flaky_save):
            with pytest.raises(RuntimeError, match="disk full"):
                await _engine(repo, catalogs).match_manually("a", tvdb_id=77)

        assert saved == ["a", "b", "c"]
        for guid in ("a", "b", "c"):
            assert repo.get(guid).identity.tvdb_id is None


class TestActions:
    """Tests for accept, confirm_upgrade, dismiss and delete."""

    def test_accept_persists(self, repo, catalogs, make_release) -> None:
        """Accepting a NEW release stores ADDED."""
        repo.add(make_release(guid="a"))

        _engine(repo, catalogs).accept("a")

        assert repo.get("a").status == ReleaseStatus.ADDED

    def test_invalid_transition_not_saved(self, repo, catalogs, make_release) -> None:
        """A rejected transition leaves the stored status unchanged."""
        repo.add(make_release(guid="a"))

        with pytest.raises(InvalidTransitionError):
            _engine(repo, catalogs).confirm_upgrade("a")

        assert repo.get("a").status == ReleaseStatus.NEW

    def test_dismiss_persists(self, repo, catalogs, make_release) -> None:
        """Dismissal is stored with the manual ignore flag."""
        repo.add(make_release(guid="a", status=ReleaseStatus.UPGRADE_CANDIDATE))

        _engine(repo, catalogs).dismiss("a")

        stored = repo.get("a")
        assert stored.status == ReleaseStatus.IGNORED
        assert stored.manually_ignored is True

    def test_delete_blacklists(self, repo, catalogs, make_release) -> None:
        """Deleting removes the release and blacklists its guid."""
        repo.add(make_release(guid="a"))
        engine = _engine(repo, catalogs)

        engine.delete("a", "wrong title")

        assert repo.get("a") is None
        assert repo.is_blacklisted("a")
        with pytest.raises(ReleaseNotFoundError):
            engine.delete("a")
