"""Tests for the command line interface."""

import argparse
import json
from unittest.mock import patch

import pytest

from snapcopy import __util__, __version__
from snapcopy.cli.common import add_verbosity_args, get_log_level
from snapcopy.cli.dispatcher import create_subcommand_parser, main
from snapcopy.cli.run import apply_overrides
from snapcopy.config import load_config
from snapcopy.core.history import HistoryEntry, append_entry


@pytest.fixture
def local_config(tmp_path):
    """A config file pointing at directories below tmp_path."""
    source = tmp_path / "data" / "Share"
    source.mkdir(parents=True)
    config_path = tmp_path / "config.toml"
    config_path.write_text(
        f"""
[global]
destination = '{tmp_path / "backup"}'
logs_dir = '{tmp_path / "logs"}'
settle_seconds = 0

[[sources]]
path = '{source}'
mode = "PerSubfolder"
"""
    )
    return config_path


class TestVerbosity:
    def test_defaults_are_false(self):
        parser = argparse.ArgumentParser()
        add_verbosity_args(parser)
        args = parser.parse_args([])
        assert args.verbose is False
        assert args.quiet is False
        assert args.debug is False

    @pytest.mark.parametrize(
        "flags, level",
        [
            ({"debug": True, "quiet": True}, "DEBUG"),
            ({"quiet": True}, "WARNING"),
            ({"verbose": True}, "DEBUG"),
            ({}, "INFO"),
        ],
    )
    def test_get_log_level(self, flags, level):
        assert get_log_level(argparse.Namespace(**flags)) == level


class TestParser:
    def test_run_options(self):
        args = create_subcommand_parser().parse_args(
            ["-c", "x.toml", "run", "--no-snapshot", "--rate-limit", "20", "--options", "/MIR /XD tmp"]
        )
        assert args.command == "run"
        assert args.config == "x.toml"
        assert args.no_snapshot is True
        assert args.rate_limit == 20
        assert args.options == "/MIR /XD tmp"

    def test_version(self, capsys):
        assert main(["--version"]) == 0
        assert __version__ in capsys.readouterr().out

    def test_no_command(self, capsys):
        assert main([]) == 1
        assert "No command specified" in capsys.readouterr().out


class TestApplyOverrides:
    def test_overrides(self, local_config):
        config, _ = load_config(local_config)
        args = argparse.Namespace(
            no_snapshot=True, rate_limit=0, destination="/elsewhere", options=""
        )
        apply_overrides(config, args)

        settings = config.global_config
        assert settings.use_snapshots is False
        assert settings.rate_limit_ms == 0
        assert settings.destination == "/elsewhere"
        assert settings.copy_options == ""

    def test_absent_overrides_keep_config(self, local_config):
        config, _ = load_config(local_config)
        apply_overrides(config, argparse.Namespace())
        assert config.global_config.use_snapshots is True
        assert config.global_config.copy_options == "/MIR /NP"

    def test_negative_rate_limit(self, local_config):
        config, _ = load_config(local_config)
        with pytest.raises(ValueError):
            apply_overrides(config, argparse.Namespace(rate_limit=-1))


class TestRunCommand:
    def test_dry_run(self, local_config, capsys):
        assert main(["-c", str(local_config), "run", "--dry-run"]) == 0
        out = capsys.readouterr().out
        assert "Dry run mode" in out
        assert "PerSubfolder" in out

    def test_missing_config(self, tmp_path):
        assert main(["-c", str(tmp_path / "missing.toml"), "run"]) == 1

    def test_prerequisite_failure_exit_code(self, local_config):
        with patch(
            "snapcopy.cli.run.Orchestrator.run",
            side_effect=__util__.PrerequisiteFailure("Copy tool not found: robocopy"),
        ):
            assert main(["-c", str(local_config), "run"]) == 2


class TestConfigCommand:
    def test_init_to_file(self, tmp_path, capsys):
        output = tmp_path / "out" / "config.toml"
        assert main(["config", "init", "-o", str(output)]) == 0
        config, _ = load_config(output)
        assert config.sources

    def test_init_refuses_overwrite(self, local_config):
        assert main(["config", "init", "-o", str(local_config)]) == 1

    def test_validate(self, local_config, capsys):
        assert main(["-c", str(local_config), "config", "validate"]) == 0
        assert "Configuration is valid" in capsys.readouterr().out

    def test_validate_invalid(self, tmp_path, capsys):
        bad = tmp_path / "bad.toml"
        bad.write_text("[global]\n")
        assert main(["-c", str(bad), "config", "validate"]) == 1
        assert "destination" in capsys.readouterr().out


class TestHistoryCommand:
    def test_json_output(self, local_config, tmp_path, capsys):
        entry = HistoryEntry(
            timestamp="2026-01-01T00:00:00",
            source_path="/data/Share",
            item_name="Sub1",
            mode="PerSubfolder",
            destination_path="/backup/Share/Sub1_20260101_000000_000",
            status="Success",
            exit_code=1,
            snapshot_id="N/A",
            detail_log_path="/logs/x.log",
        )
        (tmp_path / "logs").mkdir()
        append_entry(tmp_path / "logs" / "backup_history.log", entry)

        assert main(["-q", "-c", str(local_config), "history", "--json", "-n", "5"]) == 0
        records = json.loads(capsys.readouterr().out)
        assert records[0]["item_name"] == "Sub1"
        assert "logged_at" in records[0]

    def test_empty_history(self, local_config, capsys):
        assert main(["-c", str(local_config), "history"]) == 0
        assert "No backup records" in capsys.readouterr().out


def test_prune_command(local_config, tmp_path):
    assert main(["-c", str(local_config), "prune", "--dry-run"]) == 0


def test_create_logger_with_file(tmp_path):
    import logging

    from snapcopy.__logger__ import create_logger

    log_file = tmp_path / "run" / "snapcopy.log"
    create_logger("DEBUG", log_file)
    logging.getLogger("snapcopy.test").info("hello file")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert "hello file" in log_file.read_text(encoding="utf-8")
    create_logger("INFO")
