"""Tests for configuration loading."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from reelarr.config import Config, ConfigurationError
from reelarr.models.common import Codec, Resolution


@pytest.fixture
def clean_env():
    """Run with no REELARR_* variables set."""
    with patch.dict(os.environ, {}, clear=True):
        yield


def _write(tmp_path: Path, text: str) -> Path:
    config_file = tmp_path / "config.toml"
    config_file.write_text(text)
    return config_file


class TestConfigFromEnv:
    """Tests for loading config from environment variables."""

    def test_load_radarr_from_env(self, tmp_path: Path, clean_env: None) -> None:
        """Should load Radarr config from environment."""
        with patch.dict(
            os.environ,
            {"REELARR_RADARR_URL": "http://radarr:7878", "REELARR_RADARR_API_KEY": "test-key"},
        ):
            config = Config.load(tmp_path / "missing.toml")

        assert config.radarr is not None
        assert config.radarr.url == "http://radarr:7878"
        assert config.radarr.api_key == "test-key"

    def test_load_sonarr_from_env(self, tmp_path: Path, clean_env: None) -> None:
        """Should load Sonarr config from environment."""
        with patch.dict(
            os.environ,
            {"REELARR_SONARR_URL": "http://sonarr:8989", "REELARR_SONARR_API_KEY": "sonarr-key"},
        ):
            config = Config.load(tmp_path / "missing.toml")

        assert config.sonarr is not None
        assert config.sonarr.url == "http://sonarr:8989"

    def test_partial_env_vars_ignored(self, tmp_path: Path, clean_env: None) -> None:
        """Should ignore partial config (only URL, no key)."""
        with patch.dict(os.environ, {"REELARR_RADARR_URL": "http://radarr:7878"}):
            config = Config.load(tmp_path / "missing.toml")

        assert config.radarr is None

    def test_catalog_keys_from_env(self, tmp_path: Path, clean_env: None) -> None:
        """Catalog keys should come from REELARR_*_API_KEY variables."""
        with patch.dict(
            os.environ,
            {
                "REELARR_TMDB_API_KEY": "tmdb",
                "REELARR_TVDB_API_KEY": "tvdb",
                "REELARR_TVDB_PIN": "1234",
                "REELARR_OMDB_API_KEY": "omdb",
                "REELARR_BRAVE_API_KEY": "brave",
            },
        ):
            config = Config.load(tmp_path / "missing.toml")

        assert config.catalogs.tmdb_api_key == "tmdb"
        assert config.catalogs.tvdb_api_key == "tvdb"
        assert config.catalogs.tvdb_pin == "1234"
        assert config.catalogs.omdb_api_key == "omdb"
        assert config.catalogs.brave_api_key == "brave"

    def test_invalid_timeout(self, tmp_path: Path, clean_env: None) -> None:
        """A non-numeric REELARR_TIMEOUT should raise ConfigurationError."""
        with (
            patch.dict(os.environ, {"REELARR_TIMEOUT": "soon"}),
            pytest.raises(ConfigurationError, match="REELARR_TIMEOUT"),
        ):
            Config.load(tmp_path / "missing.toml")

    def test_defaults(self, tmp_path: Path, clean_env: None) -> None:
        """Without a file or variables everything should be at its default."""
        config = Config.load(tmp_path / "missing.toml")

        assert config.radarr is None
        assert config.sonarr is None
        assert config.catalogs.tmdb_api_key is None
        assert config.timeout == 30.0
        assert config.logging.level == "info"
        assert config.database.path.name == "reelarr.db"


class TestConfigFromFile:
    """Tests for loading config from TOML file."""

    def test_load_from_toml_file(self, tmp_path: Path, clean_env: None) -> None:
        """Should load every section from the TOML file."""
        config_file = _write(
            tmp_path,
            """
timeout = 60

[radarr]
url = "http://radarr:7878"
api_key = "file-radarr-key"

[sonarr]
url = "http://sonarr:8989"
api_key = "file-sonarr-key"

[catalogs]
tmdb_api_key = "file-tmdb"
search_interval = 2.5

[database]
path = "/data/reelarr.db"

[matching]
similarity_floor = 0.6
year_tolerance = 1

[logging]
level = "debug"
""",
        )

        config = Config.load(config_file)

        assert config.timeout == 60.0
        assert config.radarr is not None and config.radarr.api_key == "file-radarr-key"
        assert config.sonarr is not None and config.sonarr.url == "http://sonarr:8989"
        assert config.catalogs.tmdb_api_key == "file-tmdb"
        assert config.catalogs.search_interval == 2.5
        assert config.database.path == Path("/data/reelarr.db")
        assert config.matching.similarity_floor == 0.6
        assert config.matching.year_tolerance == 1
        assert config.matching.year_bonus == 0.1
        assert config.logging.level == "debug"

    def test_env_overrides_file(self, tmp_path: Path, clean_env: None) -> None:
        """Environment variables should take precedence over file values."""
        config_file = _write(
            tmp_path,
            """
log_level = "warning"

[catalogs]
tmdb_api_key = "file-tmdb"
tvdb_api_key = "file-tvdb"
""",
        )

        with patch.dict(
            os.environ,
            {
                "REELARR_TMDB_API_KEY": "env-tmdb",
                "REELARR_LOG_LEVEL": "error",
                "REELARR_DATABASE_PATH": str(tmp_path / "env.db"),
            },
        ):
            config = Config.load(config_file)

        assert config.catalogs.tmdb_api_key == "env-tmdb"
        assert config.catalogs.tvdb_api_key == "file-tvdb"
        assert config.logging.level == "error"
        assert config.database.path == tmp_path / "env.db"

    def test_top_level_log_level(self, tmp_path: Path, clean_env: None) -> None:
        """A top-level log_level should be read when there is no [logging] table."""
        config = Config.load(_write(tmp_path, 'log_level = "warning"\n'))

        assert config.logging.level == "warning"

    def test_quality_section(self, tmp_path: Path, clean_env: None) -> None:
        """The [quality] table should build QualitySettings."""
        config_file = _write(
            tmp_path,
            """
[quality]
upgrade_threshold = 8
size_bonus_enabled = true
size_only_upgrade_percent = 25

[[quality.resolutions]]
resolution = "2160p"
preferred_codecs = ["x265"]
""",
        )

        config = Config.load(config_file)

        quality = config.quality
        assert quality.upgrade_threshold == 8.0
        assert quality.size_bonus_enabled is True
        assert quality.size_only_upgrade_percent == 25.0
        rule = quality.rule_for(Resolution.UHD_2160P)
        assert rule is not None
        assert rule.preferred_codecs == (Codec.X265,)

    def test_invalid_quality_section(self, tmp_path: Path, clean_env: None) -> None:
        """An unknown resolution should raise ConfigurationError."""
        config_file = _write(
            tmp_path,
            """
[[quality.resolutions]]
resolution = "8K"
""",
        )

        with pytest.raises(ConfigurationError, match=r"\[quality\]"):
            Config.load(config_file)

    def test_invalid_matching_section(self, tmp_path: Path, clean_env: None) -> None:
        """A non-numeric matching threshold should raise ConfigurationError."""
        config_file = _write(tmp_path, '[matching]\nsimilarity_floor = "high"\n')

        with pytest.raises(ConfigurationError, match=r"\[matching\]"):
            Config.load(config_file)

    def test_invalid_toml(self, tmp_path: Path, clean_env: None) -> None:
        """Malformed TOML should raise ConfigurationError."""
        with pytest.raises(ConfigurationError, match="Invalid config file"):
            Config.load(_write(tmp_path, "[radarr\nurl = "))

    def test_incomplete_arr_section(self, tmp_path: Path, clean_env: None) -> None:
        """A section missing its API key should leave the service unconfigured."""
        config = Config.load(_write(tmp_path, '[radarr]\nurl = "http://radarr:7878"\n'))

        assert config.radarr is None


class TestRequireTmdb:
    """Tests for require_tmdb."""

    def test_missing_key(self) -> None:
        """Should raise ConfigurationError with a hint when TMDB is missing."""
        with pytest.raises(ConfigurationError, match="REELARR_TMDB_API_KEY"):
            Config().require_tmdb()

    def test_present_key(self, tmp_path: Path, clean_env: None) -> None:
        """Should return the key when configured."""
        with patch.dict(os.environ, {"REELARR_TMDB_API_KEY": "tmdb"}):
            config = Config.load(tmp_path / "missing.toml")

        assert config.require_tmdb() == "tmdb"
