"""SQLite-backed release repository."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

from reelarr.models.common import Codec, MediaKind, ParsedRelease, ReleaseStatus, Resolution
from reelarr.models.release import Identity, Release, utcnow
from reelarr.storage.repository import ReleaseNotFoundError

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS releases (
    guid TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    kind TEXT NOT NULL,
    clean_title TEXT NOT NULL,
    year INTEGER,
    season INTEGER,
    resolution TEXT NOT NULL,
    codec TEXT NOT NULL,
    source_tag TEXT NOT NULL,
    audio TEXT NOT NULL,
    size_mb REAL,
    audio_languages TEXT NOT NULL DEFAULT '',
    tvdb_id INTEGER,
    tmdb_id INTEGER,
    imdb_id TEXT,
    tvdb_id_manual INTEGER NOT NULL DEFAULT 0,
    tmdb_id_manual INTEGER NOT NULL DEFAULT 0,
    imdb_id_manual INTEGER NOT NULL DEFAULT 0,
    status TEXT NOT NULL,
    manually_ignored INTEGER NOT NULL DEFAULT 0,
    display_title TEXT,
    original_language TEXT,
    dubbed INTEGER NOT NULL DEFAULT 0,
    existing_quality_score REAL,
    existing_size_mb REAL,
    new_quality_score REAL,
    source_site TEXT NOT NULL DEFAULT '',
    link TEXT NOT NULL DEFAULT '',
    published_at TEXT NOT NULL,
    last_checked_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_releases_tvdb ON releases (tvdb_id);
CREATE INDEX IF NOT EXISTS idx_releases_tmdb ON releases (tmdb_id);
CREATE TABLE IF NOT EXISTS ignored_guids (
    guid TEXT PRIMARY KEY,
    title TEXT,
    reason TEXT NOT NULL DEFAULT '',
    ignored_at TEXT NOT NULL
);
"""

_COLUMNS = (
    "guid",
    "title",
    "kind",
    "clean_title",
    "year",
    "season",
    "resolution",
    "codec",
    "source_tag",
    "audio",
    "size_mb",
    "audio_languages",
    "tvdb_id",
    "tmdb_id",
    "imdb_id",
    "tvdb_id_manual",
    "tmdb_id_manual",
    "imdb_id_manual",
    "status",
    "manually_ignored",
    "display_title",
    "original_language",
    "dubbed",
    "existing_quality_score",
    "existing_size_mb",
    "new_quality_score",
    "source_site",
    "link",
    "published_at",
    "last_checked_at",
)


def release_to_row(release: Release) -> dict[str, Any]:
    """Flatten a release into a row mapping."""
    parsed = release.parsed
    identity = release.identity
    return {
        "guid": release.guid,
        "title": release.title,
        "kind": release.kind.value,
        "clean_title": release.clean_title,
        "year": release.year,
        "season": release.season,
        "resolution": parsed.resolution.value,
        "codec": parsed.codec.value,
        "source_tag": parsed.source_tag,
        "audio": parsed.audio,
        "size_mb": parsed.size_mb,
        "audio_languages": ",".join(sorted(parsed.audio_languages)),
        "tvdb_id": identity.tvdb_id,
        "tmdb_id": identity.tmdb_id,
        "imdb_id": identity.imdb_id,
        "tvdb_id_manual": int(identity.tvdb_id_manual),
        "tmdb_id_manual": int(identity.tmdb_id_manual),
        "imdb_id_manual": int(identity.imdb_id_manual),
        "status": release.status.value,
        "manually_ignored": int(release.manually_ignored),
        "display_title": release.display_title,
        "original_language": release.original_language,
        "dubbed": int(release.dubbed),
        "existing_quality_score": release.existing_quality_score,
        "existing_size_mb": release.existing_size_mb,
        "new_quality_score": release.new_quality_score,
        "source_site": release.source_site,
        "link": release.link,
        "published_at": release.published_at.isoformat(),
        "last_checked_at": release.last_checked_at.isoformat(),
    }


def release_from_row(row: sqlite3.Row) -> Release:
    """Rebuild a release from a stored row."""
    languages = row["audio_languages"]
    parsed = ParsedRelease(
        resolution=Resolution(row["resolution"]),
        codec=Codec(row["codec"]),
        source_tag=row["source_tag"],
        audio=row["audio"],
        size_mb=row["size_mb"],
        audio_languages=frozenset(languages.split(",")) if languages else frozenset(),
    )
    identity = Identity(
        tvdb_id=row["tvdb_id"],
        tmdb_id=row["tmdb_id"],
        imdb_id=row["imdb_id"],
        tvdb_id_manual=bool(row["tvdb_id_manual"]),
        tmdb_id_manual=bool(row["tmdb_id_manual"]),
        imdb_id_manual=bool(row["imdb_id_manual"]),
    )
    return Release(
        guid=row["guid"],
        title=row["title"],
        kind=MediaKind(row["kind"]),
        clean_title=row["clean_title"],
        parsed=parsed,
        year=row["year"],
        season=row["season"],
        identity=identity,
        status=ReleaseStatus(row["status"]),
        manually_ignored=bool(row["manually_ignored"]),
        display_title=row["display_title"],
        original_language=row["original_language"],
        dubbed=bool(row["dubbed"]),
        existing_quality_score=row["existing_quality_score"],
        existing_size_mb=row["existing_size_mb"],
        new_quality_score=row["new_quality_score"],
        source_site=row["source_site"],
        link=row["link"],
        published_at=datetime.fromisoformat(row["published_at"]),
        last_checked_at=datetime.fromisoformat(row["last_checked_at"]),
    )


class SqliteReleaseRepository:
    """Release repository stored in a single SQLite database.

    The connection runs in autocommit mode; `transaction()` opens an explicit
    transaction and nested calls become savepoints inside it.

    Example:
        repo = SqliteReleaseRepository(Path("~/.local/share/reelarr/reelarr.db"))
        with repo.transaction():
            repo.save(release)
    """

    def __init__(self, path: Path | str) -> None:
        """Open (and create if needed) the database.

        Args:
            path: Database file path, or ":memory:"
        """
        self.path = path if str(path) == ":memory:" else Path(path).expanduser()
        if isinstance(self.path, Path):
            self.path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self.path), isolation_level=None)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(SCHEMA)
        self._depth = 0

    def close(self) -> None:
        """Close the underlying connection."""
        self._conn.close()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Group writes so they commit or roll back together."""
        savepoint = f"sp_{self._depth}"
        if self._depth == 0:
            self._conn.execute("BEGIN")
        else:
            self._conn.execute(f"SAVEPOINT {savepoint}")
        self._depth += 1
        try:
            yield
        except BaseException:
            self._depth -= 1
            if self._depth == 0:
                self._conn.execute("ROLLBACK")
                logger.debug("Rolled back transaction on %s", self.path)
            else:
                self._conn.execute(f"ROLLBACK TO {savepoint}")
                self._conn.execute(f"RELEASE {savepoint}")
            raise
        else:
            self._depth -= 1
            if self._depth == 0:
                self._conn.execute("COMMIT")
            else:
                self._conn.execute(f"RELEASE {savepoint}")

    def get(self, guid: str) -> Release | None:
        """Fetch a release by guid."""
        row = self._conn.execute("SELECT * FROM releases WHERE guid = ?", (guid,)).fetchone()
        return release_from_row(row) if row else None

    def add(self, release: Release) -> bool:
        """Insert a new release.

        Blacklisted and already stored guids are skipped.

        Returns:
            True if the release was inserted
        """
        if self.is_blacklisted(release.guid):
            logger.debug("Skipping blacklisted guid %s", release.guid)
            return False
        row = release_to_row(release)
        placeholders = ", ".join(f":{column}" for column in _COLUMNS)
        cursor = self._conn.execute(
            f"INSERT OR IGNORE INTO releases ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
            row,
        )
        return cursor.rowcount > 0

    def save(self, release: Release) -> None:
        """Update a stored release.

        Raises:
            ReleaseNotFoundError: If the guid is not stored
        """
        row = release_to_row(release)
        assignments = ", ".join(f"{column} = :{column}" for column in _COLUMNS if column != "guid")
        cursor = self._conn.execute(
            f"UPDATE releases SET {assignments} WHERE guid = :guid",
            row,
        )
        if cursor.rowcount == 0:
            raise ReleaseNotFoundError(release.guid)

    def list_releases(
        self,
        kind: MediaKind | None = None,
        statuses: Iterable[ReleaseStatus] | None = None,
    ) -> list[Release]:
        """List releases, optionally filtered by kind and status.

        Releases come back oldest first by publication time.
        """
        clauses: list[str] = []
        params: list[Any] = []
        if kind is not None:
            clauses.append("kind = ?")
            params.append(kind.value)
        if statuses is not None:
            values = [status.value for status in statuses]
            if not values:
                return []
            clauses.append(f"status IN ({', '.join('?' for _ in values)})")
            params.extend(values)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self._conn.execute(
            f"SELECT * FROM releases{where} ORDER BY published_at, guid", params
        ).fetchall()
        return [release_from_row(row) for row in rows]

    def delete(self, guid: str, reason: str = "") -> bool:
        """Delete a release and blacklist its guid.

        The guid is blacklisted even when no release was stored under it.

        Returns:
            True if a stored release was removed
        """
        with self.transaction():
            row = self._conn.execute("SELECT title FROM releases WHERE guid = ?", (guid,)).fetchone()
            self._conn.execute("DELETE FROM releases WHERE guid = ?", (guid,))
            self._conn.execute(
                "INSERT OR REPLACE INTO ignored_guids (guid, title, reason, ignored_at) "
                "VALUES (?, ?, ?, ?)",
                (guid, row["title"] if row else None, reason, utcnow().isoformat()),
            )
        logger.info("Deleted and blacklisted %s", guid)
        return row is not None

    def is_blacklisted(self, guid: str) -> bool:
        """Check whether a guid was deleted by the user."""
        row = self._conn.execute("SELECT 1 FROM ignored_guids WHERE guid = ?", (guid,)).fetchone()
        return row is not None

    def unblacklist(self, guid: str) -> bool:
        """Allow a previously deleted guid to be ingested again."""
        cursor = self._conn.execute("DELETE FROM ignored_guids WHERE guid = ?", (guid,))
        return cursor.rowcount > 0
