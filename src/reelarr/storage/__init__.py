"""Release persistence."""

from reelarr.storage.repository import ReleaseNotFoundError, ReleaseRepository
from reelarr.storage.sqlite import SqliteReleaseRepository

__all__ = ["ReleaseNotFoundError", "ReleaseRepository", "SqliteReleaseRepository"]
