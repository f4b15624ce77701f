"""
Unit tests for the tablediff command-line interface.

Runs main() end to end against SQLite files and checks exit statuses and
report output.
"""

import argparse
import json
from unittest.mock import patch

import pytest
import requests

from tablediff.cli import build_diff_config, create_parser, get_connection_urls, get_table_names, main
from tablediff.errors import ConfigError
from tablediff.utils.logging import shutdown_logging


def sqlite_url(path):
    return f"sqlite:///{path}"


@pytest.fixture(autouse=True)
def reset_logging():
    """main() installs root handlers bound to the captured stderr; drop them afterwards."""
    yield
    shutdown_logging()


@pytest.fixture
def databases(make_database, rows_for):
    source = make_database("source", rows_for(range(100)))
    target_rows = rows_for(range(100))
    target_rows[42] = (42, "changed", 0, "")
    target = make_database("target", target_rows)
    same = make_database("same", rows_for(range(100)))
    return source, target, same


def run_args(**overrides):
    args = create_parser().parse_args(["run"])
    for key, value in overrides.items():
        setattr(args, key, value)
    return args


class TestParser:
    """Test argument parsing"""

    def test_run_defaults(self):
        args = create_parser().parse_args(["run", "--tables", "accounts"])

        assert args.command == "run"
        assert args.key_column == "id"
        assert args.direction == "both"
        assert args.format == "console"
        assert args.chunk_size is None
        assert args.span_target_range is False

    def test_include_and_exclude_are_exclusive(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["run", "--include", "a", "--exclude", "b"])

    def test_version(self, capsys):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["--version"])

        assert "tablediff" in capsys.readouterr().out


class TestCredentials:
    """Test connection URL and option resolution"""

    def test_urls_from_arguments(self):
        args = run_args(source="sqlite:///a.db", target="sqlite:///b.db")

        assert get_connection_urls(args) == ("sqlite:///a.db", "sqlite:///b.db")

    def test_urls_from_environment(self, monkeypatch):
        monkeypatch.setenv("TABLEDIFF_SOURCE_URL", "sqlite:///env-a.db")
        monkeypatch.setenv("TABLEDIFF_TARGET_URL", "sqlite:///env-b.db")

        assert get_connection_urls(run_args()) == ("sqlite:///env-a.db", "sqlite:///env-b.db")

    def test_missing_target_url(self, monkeypatch):
        monkeypatch.delenv("TABLEDIFF_TARGET_URL", raising=False)

        with pytest.raises(ConfigError):
            get_connection_urls(run_args(source="sqlite:///a.db"))

    @patch("tablediff.cli.credentials.VaultClient")
    def test_urls_from_vault(self, mock_vault):
        mock_vault.return_value.get_connection_url.side_effect = lambda side: f"sqlite:///{side}.db"

        urls = get_connection_urls(run_args(use_vault=True))

        assert urls == ("sqlite:///source.db", "sqlite:///target.db")

    @patch("tablediff.cli.credentials.VaultClient")
    def test_vault_failure_is_config_error(self, mock_vault):
        mock_vault.return_value.get_connection_url.side_effect = requests.ConnectionError("refused")

        with pytest.raises(ConfigError):
            get_connection_urls(run_args(use_vault=True))

    def test_table_names(self):
        assert get_table_names(run_args(tables="a, b,,c")) == ["a", "b", "c"]

    def test_tables_file(self, tmp_path):
        tables_file = tmp_path / "tables.txt"
        tables_file.write_text("# nightly\naccounts\n\norders\n")

        assert get_table_names(run_args(tables_file=str(tables_file))) == ["accounts", "orders"]

    def test_no_tables(self):
        with pytest.raises(ConfigError):
            get_table_names(run_args())

    def test_numeric_options_from_environment(self, monkeypatch):
        monkeypatch.setenv("TABLEDIFF_CHUNK_SIZE", "500")
        monkeypatch.setenv("TABLEDIFF_WORKERS", "2")

        config = build_diff_config(run_args())

        assert config.chunk_size == 500
        assert config.max_workers == 2

    def test_arguments_override_environment(self, monkeypatch):
        monkeypatch.setenv("TABLEDIFF_CHUNK_SIZE", "500")

        assert build_diff_config(run_args(chunk_size=20)).chunk_size == 20

    def test_invalid_environment_value(self, monkeypatch):
        monkeypatch.setenv("TABLEDIFF_WORKERS", "many")

        with pytest.raises(ConfigError):
            build_diff_config(run_args())


class TestMain:
    """Test main() exit statuses"""

    def test_identical_tables_exit_zero(self, databases, capsys):
        source, _, same = databases

        status = main(["run", "--source", sqlite_url(source), "--target", sqlite_url(same), "--tables", "accounts"])

        assert status == 0
        assert "0 rows for table accounts differ" in capsys.readouterr().out

    def test_differences_exit_one(self, databases, capsys):
        source, target, _ = databases

        status = main([
            "run",
            "--source", sqlite_url(source),
            "--target", sqlite_url(target),
            "--tables", "accounts",
            "--chunk-size", "10",
            "--show-keys",
        ])

        output = capsys.readouterr().out
        assert status == 1
        assert "1 rows for table accounts differ" in output
        assert "Keys: 42" in output

    def test_missing_table_exit_two(self, databases):
        source, target, _ = databases

        status = main(["run", "--source", sqlite_url(source), "--target", sqlite_url(target), "--tables", "accounts,ghosts"])

        assert status == 2

    def test_unreachable_database_exit_two(self, databases, tmp_path):
        source, _, _ = databases

        status = main(["run", "--source", sqlite_url(source), "--target", sqlite_url(tmp_path / "absent.db"), "--tables", "accounts"])

        assert status == 2

    def test_config_error_exit_two(self, databases):
        source, target, _ = databases

        status = main(["run", "--source", sqlite_url(source), "--target", "oracle://h/db", "--tables", "accounts"])

        assert status == 2

    def test_json_report_file_and_report_command(self, databases, tmp_path, capsys):
        source, target, _ = databases
        report_path = tmp_path / "report.json"

        status = main([
            "run",
            "--source", sqlite_url(source),
            "--target", sqlite_url(target),
            "--tables", "accounts",
            "--format", "json",
            "--output", str(report_path),
        ])

        assert status == 1
        report = json.loads(report_path.read_text())
        assert report["tables"][0]["differing_keys"] == [42]
        assert report["source"] == sqlite_url(source)

        capsys.readouterr()
        assert main(["report", "--input", str(report_path), "--format", "csv"]) == 1
        assert "accounts,DIFF,1,42,MODIFIED," in capsys.readouterr().out

    def test_report_missing_input(self, tmp_path):
        assert main(["report", "--input", str(tmp_path / "nope.json")]) == 2

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 2
        assert "usage" in capsys.readouterr().out
