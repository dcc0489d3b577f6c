"""Release records and their catalog identity."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Literal

from reelarr.models.common import MediaKind, ParsedRelease, ReleaseStatus

IdField = Literal["tvdb_id", "tmdb_id", "imdb_id"]
ID_FIELDS: tuple[IdField, ...] = ("tvdb_id", "tmdb_id", "imdb_id")


@dataclass(frozen=True)
class IdentityFields:
    """A bare set of catalog IDs, as found by a lookup."""

    tvdb_id: int | None = None
    tmdb_id: int | None = None
    imdb_id: str | None = None

    @property
    def is_resolved(self) -> bool:
        """True when at least one ID is known."""
        return any(getattr(self, name) is not None for name in ID_FIELDS)


@dataclass
class Identity:
    """Catalog IDs of a release together with their manual-override flags.

    A field whose manual flag is set was chosen by a human; automated
    enrichment and propagation must never change it.
    """

    tvdb_id: int | None = None
    tmdb_id: int | None = None
    imdb_id: str | None = None
    tvdb_id_manual: bool = False
    tmdb_id_manual: bool = False
    imdb_id_manual: bool = False

    @property
    def is_resolved(self) -> bool:
        """True when at least one ID is known."""
        return self.fields().is_resolved

    def fields(self) -> IdentityFields:
        """Return the bare IDs without flags."""
        return IdentityFields(tvdb_id=self.tvdb_id, tmdb_id=self.tmdb_id, imdb_id=self.imdb_id)

    def is_manual(self, name: IdField) -> bool:
        """Check whether an ID field carries the manual flag."""
        return bool(getattr(self, f"{name}_manual"))

    def apply_automatic(self, found: IdentityFields) -> list[IdField]:
        """Copy found IDs onto this identity, skipping manually flagged fields.

        Args:
            found: IDs produced by automated resolution or propagation

        Returns:
            Names of the fields that actually changed
        """
        changed: list[IdField] = []
        for name in ID_FIELDS:
            value = getattr(found, name)
            if value is None or self.is_manual(name):
                continue
            if getattr(self, name) != value:
                setattr(self, name, value)
                changed.append(name)
        return changed

    def replace_automatic(self, found: IdentityFields) -> list[IdField]:
        """Overwrite every unflagged field with the found IDs, clearing absent ones.

        Used when the identity now points at a different title, so stale IDs
        from the old one must not survive.

        Returns:
            Names of the fields that actually changed
        """
        changed: list[IdField] = []
        for name in ID_FIELDS:
            if self.is_manual(name):
                continue
            value = getattr(found, name)
            if getattr(self, name) != value:
                setattr(self, name, value)
                changed.append(name)
        return changed

    def set_manual(self, name: IdField, value: int | str | None) -> None:
        """Set an ID chosen by a human and flag it."""
        setattr(self, name, value)
        setattr(self, f"{name}_manual", value is not None)


def utcnow() -> datetime:
    """Current time in UTC."""
    return datetime.now(UTC)


@dataclass
class Release:
    """One RSS item for a movie or a TV episode/season pack."""

    guid: str
    title: str
    kind: MediaKind
    clean_title: str
    parsed: ParsedRelease = field(default_factory=ParsedRelease)
    year: int | None = None
    season: int | None = None
    identity: Identity = field(default_factory=Identity)
    status: ReleaseStatus = ReleaseStatus.NEW
    manually_ignored: bool = False
    display_title: str | None = None
    original_language: str | None = None
    dubbed: bool = False
    existing_quality_score: float | None = None
    existing_size_mb: float | None = None
    new_quality_score: float | None = None
    source_site: str = ""
    link: str = ""
    published_at: datetime = field(default_factory=utcnow)
    last_checked_at: datetime = field(default_factory=utcnow)

    @property
    def size_mb(self) -> float | None:
        """Size of the release in MB, if known."""
        return self.parsed.size_mb

    def touch(self) -> None:
        """Record that the release was just evaluated."""
        self.last_checked_at = utcnow()
