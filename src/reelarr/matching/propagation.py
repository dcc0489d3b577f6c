"""Copying a resolved identity onto sibling releases of the same title."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from reelarr.models.common import MediaKind
from reelarr.models.release import ID_FIELDS, IdField, Release
from reelarr.parsing.title import normalize_title

logger = logging.getLogger(__name__)

MIN_CONTAINED_NAME_LENGTH = 3


@dataclass
class PropagationResult:
    """Which siblings were written by a propagation run.

    Attributes:
        updated: Siblings whose identity changed
        protected: Sibling fields left alone because they are manually set
    """

    updated: list[Release] = field(default_factory=list)
    protected: list[tuple[str, IdField]] = field(default_factory=list)

    @property
    def writes(self) -> int:
        return len(self.updated)


def primary_id_field(kind: MediaKind) -> IdField:
    """The ID that identifies a title for propagation: TVDB for TV, TMDB for movies."""
    return "tvdb_id" if kind == MediaKind.TV else "tmdb_id"


def names_match(a: str, b: str) -> bool:
    """Check whether two show names refer to the same title.

    Normalized names must be equal, or one must contain the other with the
    shorter one longer than three characters.
    """
    first, second = normalize_title(a), normalize_title(b)
    if not first or not second:
        return False
    if first == second:
        return True
    shorter, longer = (first, second) if len(first) <= len(second) else (second, first)
    return len(shorter) > MIN_CONTAINED_NAME_LENGTH and shorter in longer


def is_sibling(source: Release, candidate: Release) -> bool:
    """Check whether a candidate belongs to the same title as the source.

    Siblings share the primary ID or the normalized name. Movies matched by
    name must not disagree on year, so remakes stay apart.
    """
    if candidate.guid == source.guid or candidate.kind != source.kind:
        return False

    key = primary_id_field(source.kind)
    source_id = getattr(source.identity, key)
    if source_id is not None and getattr(candidate.identity, key) == source_id:
        return True

    if not names_match(source.clean_title, candidate.clean_title):
        return False
    if source.kind == MediaKind.MOVIE and source.year and candidate.year:
        return source.year == candidate.year
    return True


def find_siblings(source: Release, candidates: Iterable[Release]) -> list[Release]:
    """Select the siblings of a release from a candidate set."""
    return [candidate for candidate in candidates if is_sibling(source, candidate)]


def propagate_identity(
    source: Release, siblings: Iterable[Release], *, replace: bool = False
) -> PropagationResult:
    """Copy the source's IDs onto its siblings.

    Manually flagged sibling fields are never touched. A sibling whose
    primary ID points elsewhere, or any sibling when `replace` is set, has
    its whole unflagged ID set replaced so IDs of the old title are cleared.
    A sibling whose primary ID was set by hand to another title is skipped.
    Running it again on the same siblings changes nothing.

    Args:
        source: A release with a resolved identity
        siblings: Releases of the same title, typically from find_siblings
        replace: The source was matched by hand and its IDs supersede all others

    Returns:
        The siblings that changed and the manual fields that were protected
    """
    result = PropagationResult()
    found = source.identity.fields()
    if not found.is_resolved:
        return result

    key = primary_id_field(source.kind)
    source_primary = getattr(found, key)
    for sibling in siblings:
        if sibling.guid == source.guid:
            continue
        for name in ID_FIELDS:
            value = getattr(found, name)
            if (
                value is not None
                and sibling.identity.is_manual(name)
                and getattr(sibling.identity, name) != value
            ):
                result.protected.append((sibling.guid, name))

        sibling_primary = getattr(sibling.identity, key)
        repointed = (
            source_primary is not None
            and sibling_primary is not None
            and sibling_primary != source_primary
        )
        if repointed and sibling.identity.is_manual(key):
            continue
        if replace or repointed:
            changed = sibling.identity.replace_automatic(found)
        else:
            changed = sibling.identity.apply_automatic(found)
        if changed:
            logger.info(
                "Propagated %s from %s to %s", ", ".join(changed), source.guid, sibling.guid
            )
            result.updated.append(sibling)
    return result
