"""Release status transitions."""

from __future__ import annotations

import logging

from reelarr.models.common import ReleaseStatus
from reelarr.models.release import Release
from reelarr.scoring.quality import ScoreVerdict

logger = logging.getLogger(__name__)

# Statuses a re-score may move between. ADDED and UPGRADED are settled by the
# download manager and are never re-scored.
RESCORABLE: frozenset[ReleaseStatus] = frozenset(
    {ReleaseStatus.NEW, ReleaseStatus.UPGRADE_CANDIDATE, ReleaseStatus.IGNORED}
)


class InvalidTransitionError(ValueError):
    """A release cannot move from its current status to the requested one."""

    def __init__(self, release: Release, target: ReleaseStatus) -> None:
        self.guid = release.guid
        self.current = release.status
        self.target = target
        super().__init__(
            f"Cannot move release {release.guid} from {release.status.value} to {target.value}"
        )


def _move(release: Release, target: ReleaseStatus) -> Release:
    if release.status != target:
        logger.debug("Release %s: %s -> %s", release.guid, release.status.value, target.value)
    release.status = target
    release.touch()
    return release


def accept(release: Release) -> Release:
    """Mark a NEW release as acquired."""
    if release.status != ReleaseStatus.NEW:
        raise InvalidTransitionError(release, ReleaseStatus.ADDED)
    return _move(release, ReleaseStatus.ADDED)


def confirm_upgrade(release: Release) -> Release:
    """Mark an accepted upgrade candidate as upgraded."""
    if release.status != ReleaseStatus.UPGRADE_CANDIDATE:
        raise InvalidTransitionError(release, ReleaseStatus.UPGRADED)
    return _move(release, ReleaseStatus.UPGRADED)


def dismiss(release: Release) -> Release:
    """Ignore a release on explicit user request.

    Dismissed releases stay ignored across re-scoring.
    """
    release.manually_ignored = True
    return _move(release, ReleaseStatus.IGNORED)


def apply_verdict(release: Release, verdict: ScoreVerdict) -> Release:
    """Apply a scoring verdict to a release.

    Scores are recorded on every re-score. The status only changes for
    releases still in a re-scorable status that were not dismissed by hand.
    """
    release.new_quality_score = verdict.score
    release.dubbed = verdict.dubbed
    if release.status in RESCORABLE and not release.manually_ignored:
        return _move(release, verdict.status)
    release.touch()
    return release
