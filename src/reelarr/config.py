"""Configuration loading for reelarr."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Self

from reelarr.matching.resolver import MatchingSettings
from reelarr.scoring.quality import QualitySettings


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""


@dataclass
class RadarrConfig:
    """Radarr connection configuration."""

    url: str
    api_key: str


@dataclass
class SonarrConfig:
    """Sonarr connection configuration."""

    url: str
    api_key: str


@dataclass
class CatalogConfig:
    """API credentials for the metadata catalogs.

    Any key may be missing; the resolver skips catalogs it has no key for.
    """

    tmdb_api_key: str | None = None
    tvdb_api_key: str | None = None
    tvdb_pin: str | None = None
    omdb_api_key: str | None = None
    brave_api_key: str | None = None
    search_interval: float = 1.0


def _default_database_path() -> Path:
    """Get the default database path."""
    return Path.home() / ".config" / "reelarr" / "reelarr.db"


@dataclass
class DatabaseConfig:
    """Configuration for release storage."""

    path: Path = field(default_factory=_default_database_path)


@dataclass
class LoggingConfig:
    """Configuration for log output."""

    level: str = "info"


DEFAULT_TIMEOUT = 30.0
CONFIG_PATH = Path.home() / ".config" / "reelarr" / "config.toml"

_CATALOG_ENV = {
    "tmdb_api_key": "REELARR_TMDB_API_KEY",
    "tvdb_api_key": "REELARR_TVDB_API_KEY",
    "tvdb_pin": "REELARR_TVDB_PIN",
    "omdb_api_key": "REELARR_OMDB_API_KEY",
    "brave_api_key": "REELARR_BRAVE_API_KEY",
}


# --- Helper functions for parsing config sections ---


def _parse_arr_config_from_dict(
    data: dict[str, Any],
    section: str,
) -> tuple[str, str] | None:
    """Parse URL and API key from a config dict section.

    Args:
        data: The full config dictionary
        section: The section name (e.g., "radarr", "sonarr")

    Returns:
        Tuple of (url, api_key) if both present, None otherwise
    """
    if section not in data:
        return None
    section_data = data[section]
    url = section_data.get("url")
    api_key = section_data.get("api_key")
    if url and api_key:
        return (url, api_key)
    return None


def _parse_arr_config_from_env(
    url_var: str,
    key_var: str,
) -> tuple[str, str] | None:
    """Parse URL and API key from environment variables.

    Args:
        url_var: Environment variable name for URL
        key_var: Environment variable name for API key

    Returns:
        Tuple of (url, api_key) if both present, None otherwise
    """
    url = os.environ.get(url_var)
    api_key = os.environ.get(key_var)
    if url and api_key:
        return (url, api_key)
    return None


def _parse_catalogs_from_dict(data: dict[str, Any]) -> CatalogConfig:
    """Parse CatalogConfig from a config dictionary."""
    if "catalogs" not in data:
        return CatalogConfig()
    section = data["catalogs"]
    defaults = CatalogConfig()
    return CatalogConfig(
        tmdb_api_key=section.get("tmdb_api_key"),
        tvdb_api_key=section.get("tvdb_api_key"),
        tvdb_pin=section.get("tvdb_pin"),
        omdb_api_key=section.get("omdb_api_key"),
        brave_api_key=section.get("brave_api_key"),
        search_interval=float(section.get("search_interval", defaults.search_interval)),
    )


def _parse_catalogs_from_env(base: CatalogConfig) -> CatalogConfig:
    """Override catalog keys with environment variables."""
    values = {name: os.environ.get(var) or getattr(base, name) for name, var in _CATALOG_ENV.items()}
    return CatalogConfig(search_interval=base.search_interval, **values)


def _parse_database_from_dict(data: dict[str, Any]) -> DatabaseConfig:
    """Parse DatabaseConfig from a config dictionary."""
    if "database" not in data or "path" not in data["database"]:
        return DatabaseConfig()
    return DatabaseConfig(path=Path(data["database"]["path"]).expanduser())


def _parse_database_from_env(base: DatabaseConfig) -> DatabaseConfig:
    """Parse DatabaseConfig from environment variables."""
    db_path = os.environ.get("REELARR_DATABASE_PATH")
    if not db_path:
        return base
    return DatabaseConfig(path=Path(db_path).expanduser())


def _parse_quality_from_dict(data: dict[str, Any]) -> QualitySettings:
    """Parse QualitySettings from the [quality] table.

    Raises:
        ConfigurationError: If a resolution, codec or number is invalid
    """
    if "quality" not in data:
        return QualitySettings.default()
    try:
        return QualitySettings.from_dict(data["quality"])
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid [quality] section: {e}") from e


def _parse_matching_from_dict(data: dict[str, Any]) -> MatchingSettings:
    """Parse MatchingSettings from the [matching] table."""
    if "matching" not in data:
        return MatchingSettings()
    section = data["matching"]
    defaults = MatchingSettings()
    try:
        return MatchingSettings(
            similarity_floor=float(section.get("similarity_floor", defaults.similarity_floor)),
            year_tolerance=int(section.get("year_tolerance", defaults.year_tolerance)),
            year_bonus=float(section.get("year_bonus", defaults.year_bonus)),
            min_word_match=int(section.get("min_word_match", defaults.min_word_match)),
        )
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid [matching] section: {e}") from e


def _parse_logging_from_dict(data: dict[str, Any]) -> LoggingConfig:
    """Parse LoggingConfig from a top-level `log_level` or a [logging] table."""
    if "logging" in data and "level" in data["logging"]:
        return LoggingConfig(level=str(data["logging"]["level"]))
    if "log_level" in data:
        return LoggingConfig(level=str(data["log_level"]))
    return LoggingConfig()


@dataclass
class Config:
    """Application configuration."""

    radarr: RadarrConfig | None = None
    sonarr: SonarrConfig | None = None
    catalogs: CatalogConfig = field(default_factory=CatalogConfig)
    timeout: float = DEFAULT_TIMEOUT
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    quality: QualitySettings = field(default_factory=QualitySettings.default)
    matching: MatchingSettings = field(default_factory=MatchingSettings)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, path: Path | None = None) -> Self:
        """Load configuration from environment and config file.

        Configuration precedence (highest to lowest):
        1. Environment variables
        2. Config file (~/.config/reelarr/config.toml)

        Environment variables:
        - REELARR_RADARR_URL, REELARR_RADARR_API_KEY
        - REELARR_SONARR_URL, REELARR_SONARR_API_KEY
        - REELARR_TMDB_API_KEY, REELARR_TVDB_API_KEY, REELARR_TVDB_PIN
        - REELARR_OMDB_API_KEY, REELARR_BRAVE_API_KEY
        - REELARR_DATABASE_PATH
        - REELARR_TIMEOUT (request timeout in seconds)
        - REELARR_LOG_LEVEL

        Args:
            path: Config file to read instead of the default location

        Returns:
            Config instance with loaded values

        Raises:
            ConfigurationError: If config file exists but is invalid
        """
        config = cls()

        config_file = path or CONFIG_PATH
        if config_file.exists():
            config = cls._load_from_file(config_file)

        return cls._load_from_env(config)

    @classmethod
    def _load_from_file(cls, path: Path) -> Self:
        """Load configuration from TOML file.

        Args:
            path: Path to the TOML config file

        Returns:
            Config instance

        Raises:
            ConfigurationError: If file cannot be parsed
        """
        data = _load_toml_file(path)

        radarr = _build_radarr_config(_parse_arr_config_from_dict(data, "radarr"))
        sonarr = _build_sonarr_config(_parse_arr_config_from_dict(data, "sonarr"))

        try:
            timeout = float(data.get("timeout", DEFAULT_TIMEOUT))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid timeout: {e}") from e

        return cls(
            radarr=radarr,
            sonarr=sonarr,
            catalogs=_parse_catalogs_from_dict(data),
            timeout=timeout,
            database=_parse_database_from_dict(data),
            quality=_parse_quality_from_dict(data),
            matching=_parse_matching_from_dict(data),
            logging=_parse_logging_from_dict(data),
        )

    @classmethod
    def _load_from_env(cls, base: Self) -> Self:
        """Override configuration with environment variables.

        Args:
            base: Base config to override

        Returns:
            Config instance with environment overrides
        """
        radarr = (
            _build_radarr_config(
                _parse_arr_config_from_env("REELARR_RADARR_URL", "REELARR_RADARR_API_KEY")
            )
            or base.radarr
        )

        sonarr = (
            _build_sonarr_config(
                _parse_arr_config_from_env("REELARR_SONARR_URL", "REELARR_SONARR_API_KEY")
            )
            or base.sonarr
        )

        timeout_str = os.environ.get("REELARR_TIMEOUT")
        try:
            timeout = float(timeout_str) if timeout_str else base.timeout
        except ValueError as e:
            raise ConfigurationError(f"Invalid REELARR_TIMEOUT: {timeout_str}") from e

        log_level = os.environ.get("REELARR_LOG_LEVEL")

        return cls(
            radarr=radarr,
            sonarr=sonarr,
            catalogs=_parse_catalogs_from_env(base.catalogs),
            timeout=timeout,
            database=_parse_database_from_env(base.database),
            quality=base.quality,
            matching=base.matching,
            logging=LoggingConfig(level=log_level) if log_level else base.logging,
        )

    def require_tmdb(self) -> str:
        """Get the TMDB API key, raising if not configured.

        Raises:
            ConfigurationError: If no TMDB key is configured
        """
        if not self.catalogs.tmdb_api_key:
            raise ConfigurationError(
                "TMDB is not configured. Set REELARR_TMDB_API_KEY or add "
                "tmdb_api_key to [catalogs] in ~/.config/reelarr/config.toml"
            )
        return self.catalogs.tmdb_api_key


def _load_toml_file(path: Path) -> dict[str, Any]:
    """Load and parse a TOML file.

    Args:
        path: Path to the TOML file

    Returns:
        Parsed TOML data as dictionary

    Raises:
        ConfigurationError: If file cannot be parsed
    """
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid config file: {e}") from e


def _build_radarr_config(
    parsed: tuple[str, str] | None,
) -> RadarrConfig | None:
    """Build RadarrConfig from parsed URL and API key."""
    if parsed is None:
        return None
    return RadarrConfig(url=parsed[0], api_key=parsed[1])


def _build_sonarr_config(
    parsed: tuple[str, str] | None,
) -> SonarrConfig | None:
    """Build SonarrConfig from parsed URL and API key."""
    if parsed is None:
        return None
    return SonarrConfig(url=parsed[0], api_key=parsed[1])
