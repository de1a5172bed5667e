"""Tests for config loader module."""

import tomllib

import pytest

from snapcopy.config import BackupMode, generate_example_config, parse_config
from snapcopy.config.loader import ConfigError, find_config_file, load_config


class TestFindConfigFile:
    """Tests for find_config_file function."""

    def test_explicit_path_exists(self, config_file):
        """Test finding explicitly specified config file."""
        assert find_config_file(str(config_file)) == config_file

    def test_explicit_path_not_exists(self, tmp_path):
        """Test error when explicit path doesn't exist."""
        with pytest.raises(ConfigError, match="not found"):
            find_config_file(str(tmp_path / "nonexistent.toml"))

    def test_search_paths_none_present(self, monkeypatch, tmp_path):
        monkeypatch.setattr(
            "snapcopy.config.loader.config_search_paths",
            lambda: [tmp_path / "a.toml", tmp_path / "b.toml"],
        )
        assert find_config_file(None) is None

    def test_search_paths_priority(self, monkeypatch, tmp_path):
        second = tmp_path / "b.toml"
        second.write_text("")
        monkeypatch.setattr(
            "snapcopy.config.loader.config_search_paths",
            lambda: [tmp_path / "a.toml", second],
        )
        assert find_config_file(None) == second


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_valid_config(self, config_file):
        """Test loading a valid configuration file."""
        config, warnings = load_config(config_file)

        settings = config.global_config
        assert settings.destination == r"E:\Backups"
        assert settings.rate_limit_ms == 25
        assert settings.copy_options == '/MIR /NP /XD "System Volume Information"'
        assert settings.retention.days == 14
        assert settings.retention.log_days == 60

        assert len(config.sources) == 3
        assert config.sources[0].mode is BackupMode.WHOLE_FOLDER
        assert config.sources[1].mode is BackupMode.PER_SUBFOLDER
        assert config.sources[2].mode is BackupMode.PER_SUBFOLDER
        assert [s.path for s in config.get_enabled_sources()] == [
            r"D:\Shares\CriticalApp",
            r"D:\Shares\Users",
        ]
        assert any("disabled" in w for w in warnings)

    def test_load_minimal_config_defaults(self, minimal_config_file):
        """Test that absent keys take their defaults."""
        config, warnings = load_config(minimal_config_file)

        settings = config.global_config
        assert settings.use_snapshots is True
        assert settings.rate_limit_ms == 0
        assert settings.copy_options == "/MIR /NP"
        assert settings.copy_tool == "robocopy"
        assert settings.settle_seconds == 2.0
        assert settings.retention.days == 30
        assert config.sources[0].mode is BackupMode.WHOLE_FOLDER
        assert warnings == []

    def test_falsy_values_are_kept(self):
        """Present but falsy values must not be replaced by defaults."""
        data = tomllib.loads(
            """
[global]
destination = "/mnt/backup"
use_snapshots = false
copy_options = ""
settle_seconds = 0

[global.retention]
days = 0
log_days = 0

[[sources]]
path = "/srv/share"
"""
        )
        config, warnings = parse_config(data)

        settings = config.global_config
        assert settings.use_snapshots is False
        assert settings.copy_options == ""
        assert settings.settle_seconds == 0
        assert settings.retention.days == 0
        assert settings.retention.log_days == 0
        assert any("Snapshots are disabled" in w for w in warnings)

    def test_missing_destination(self):
        with pytest.raises(ConfigError, match="destination"):
            parse_config({"sources": [{"path": "/srv"}]})

    def test_source_without_path(self):
        with pytest.raises(ConfigError, match="path"):
            parse_config({"global": {"destination": "/b"}, "sources": [{"mode": "whole"}]})

    def test_unknown_mode(self):
        with pytest.raises(ConfigError, match="Unknown backup mode"):
            parse_config(
                {"global": {"destination": "/b"}, "sources": [{"path": "/s", "mode": "daily"}]}
            )

    @pytest.mark.parametrize(
        "data",
        [
            {"destination": "/b", "rate_limit_ms": -1},
            {"destination": "/b", "retention": {"days": -5}},
            {"destination": "/b", "retention": {"log_days": "ten"}},
        ],
    )
    def test_invalid_numbers(self, data):
        with pytest.raises(ConfigError):
            parse_config({"global": data})

    def test_duplicate_sources_warn(self):
        _, warnings = parse_config(
            {
                "global": {"destination": "/b"},
                "sources": [{"path": r"D:\Data"}, {"path": "d:\\data\\"}],
            }
        )
        assert "Duplicate source paths detected" in warnings

    def test_no_sources_warn(self):
        _, warnings = parse_config({"global": {"destination": "/b"}})
        assert "No sources configured" in warnings

    def test_load_nonexistent_file(self, tmp_path):
        """Test error when loading nonexistent file."""
        with pytest.raises(ConfigError, match="Cannot read config file"):
            load_config(tmp_path / "nonexistent.toml")

    def test_load_invalid_toml(self, tmp_config_dir):
        """Test error when loading invalid TOML."""
        bad_config = tmp_config_dir / "bad.toml"
        bad_config.write_text("this is not valid [ toml")

        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_config(bad_config)


class TestBackupMode:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("WholeFolder", BackupMode.WHOLE_FOLDER),
            ("whole", BackupMode.WHOLE_FOLDER),
            ("root", BackupMode.WHOLE_FOLDER),
            ("PerSubfolder", BackupMode.PER_SUBFOLDER),
            ("per-subfolder", BackupMode.PER_SUBFOLDER),
            ("SUBFOLDERS", BackupMode.PER_SUBFOLDER),
        ],
    )
    def test_parse(self, value, expected):
        assert BackupMode.parse(value) is expected

    def test_parse_invalid(self):
        with pytest.raises(ValueError):
            BackupMode.parse("incremental")


def test_example_config_is_valid():
    """The generated example must load without errors."""
    config, _ = parse_config(tomllib.loads(generate_example_config()))
    assert config.global_config.destination == r"E:\Backups"
    assert len(config.sources) == 2
    assert config.global_config.copy_options == '/MIR /NP /XD "System Volume Information"'
