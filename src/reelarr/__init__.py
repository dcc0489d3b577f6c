"""reelarr - Match scene releases to catalog identities and score them.

A Python library that takes movie and TV releases announced on RSS feeds,
resolves each one to its TMDB, TVDB and IMDB identity, shares that
identity with sibling releases of the same title, and scores every
release against the copy already held by Radarr or Sonarr.

Quick Start
-----------
Parse and score a release title::

    from reelarr import QualitySettings, evaluate, parse_release_title

    parsed = parse_release_title("Movie.2025.2160p.AMZN.WEB-DL.DDP5.1.x265")
    verdict = evaluate(parsed, QualitySettings.default(), existing_score=60)
    print(verdict.status)

Run a matching pass::

    from reelarr import Catalogs, IdentityResolver, MatchingEngine
    from reelarr.clients import TmdbClient
    from reelarr.storage import SqliteReleaseRepository

    async with TmdbClient("tmdb-key") as tmdb:
        engine = MatchingEngine(
            SqliteReleaseRepository("reelarr.db"),
            IdentityResolver(Catalogs(tmdb=tmdb)),
            QualitySettings.default(),
        )
        stats = await engine.run_pass()

CLI Usage
---------
::

    reelarr parse "Movie.2025.1080p.BluRay.x264"
    reelarr score "Movie.2025.2160p.WEB-DL.x265" --existing-score 60
    reelarr match --kind tv

Classes
-------
MatchingEngine
    Runs matching passes and the manual operations on releases.
IdentityResolver
    Resolves one release against the configured catalogs.
QualitySettings
    Resolution rules and scoring weights.
"""

from reelarr.engine import MatchingEngine, PassAlreadyRunningError, PassStats
from reelarr.matching import Catalogs, IdentityResolver, MatchingSettings
from reelarr.models import MediaKind, Release, ReleaseStatus
from reelarr.parsing import parse_release_title, split_tv_title
from reelarr.scoring import QualitySettings, evaluate

__version__ = "0.3.0"

__all__ = [
    "Catalogs",
    "IdentityResolver",
    "MatchingEngine",
    "MatchingSettings",
    "MediaKind",
    "PassAlreadyRunningError",
    "PassStats",
    "QualitySettings",
    "Release",
    "ReleaseStatus",
    "__version__",
    "evaluate",
    "parse_release_title",
    "split_tv_title",
]
