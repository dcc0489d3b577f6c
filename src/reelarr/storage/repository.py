"""Persistence contract for release records."""

from __future__ import annotations

from collections.abc import Iterable
from contextlib import AbstractContextManager
from typing import Protocol

from reelarr.models.common import MediaKind, ReleaseStatus
from reelarr.models.release import Release


class ReleaseNotFoundError(KeyError):
    """No release is stored under the given guid."""

    def __init__(self, guid: str) -> None:
        self.guid = guid
        super().__init__(guid)

    def __str__(self) -> str:
        return f"No release with guid {self.guid!r}"


class ReleaseRepository(Protocol):
    """Storage for releases and the guid blacklist.

    Writes made inside `transaction()` commit together or not at all.
    Nested transactions join the outer one.
    """

    def transaction(self) -> AbstractContextManager[None]: ...

    def get(self, guid: str) -> Release | None: ...

    def add(self, release: Release) -> bool: ...

    def save(self, release: Release) -> None: ...

    def list_releases(
        self,
        kind: MediaKind | None = None,
        statuses: Iterable[ReleaseStatus] | None = None,
    ) -> list[Release]: ...

    def delete(self, guid: str, reason: str = "") -> bool: ...

    def is_blacklisted(self, guid: str) -> bool: ...
