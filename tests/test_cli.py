"""Tests for CLI commands."""

from __future__ import annotations

import uuid
from argparse import Namespace
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from claudx.__main__ import (
    cmd_config_path,
    cmd_config_show,
    cmd_config_validate,
    cmd_init,
    cmd_install,
    cmd_refresh,
    create_parser,
)
from claudx.cli import (
    NO_METRICS_MESSAGE,
    cmd_clear,
    cmd_recent,
    cmd_summary,
    format_number,
    format_percent,
    format_recent_metric,
    format_table,
)
from claudx.destinations.sqlite import SQLiteDestination
from claudx.models import ToolMetric
from claudx.shims.manager import InstallResult


def make_metric(
    tool_name: str = "ls",
    duration: float = 10.0,
    success: bool = True,
    timestamp: datetime | None = None,
    input_tokens: int = 2,
    output_tokens: int = 6,
) -> ToolMetric:
    """Create a test metric."""
    return ToolMetric(
        id=str(uuid.uuid4()),
        tool_name=tool_name,
        start_time=0,
        end_time=int(duration * 1_000_000),
        duration=duration,
        success=success,
        error_message=None if success else "Exit code: 2",
        parameters={"args": [], "cwd": "/work"},
        timestamp=timestamp or datetime.now(timezone.utc),
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        total_tokens=input_tokens + output_tokens,
    )


@pytest.fixture
def env(tmp_path, monkeypatch):
    """Isolated home, working directory and database."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.setenv("CLAUDX_HOME", str(tmp_path / "home" / ".claudx"))
    monkeypatch.setenv("CLAUDX_DB_PATH", str(tmp_path / "metrics.db"))
    monkeypatch.setenv("CLAUDX_ORIGINAL_CWD", str(tmp_path))
    (tmp_path / "home").mkdir()
    return tmp_path


def populate(db_path, metrics):
    dest = SQLiteDestination(db_path)
    try:
        for metric in metrics:
            dest.save_metric(metric)
    finally:
        dest.close()


class TestFormatting:
    """Tests for formatting helpers."""

    def test_format_number(self):
        """Test thousands separators."""
        assert format_number(1234567) == "1,234,567"
        assert format_number(0) == "0"

    def test_format_percent(self):
        """Test rates render with one decimal."""
        assert format_percent(2 / 3) == "66.7%"
        assert format_percent(1.0) == "100.0%"

    def test_format_table_aligns_columns(self):
        """Test columns are padded to the widest cell."""
        table = format_table([["Tool", "Calls"], ["npm run", "3"], ["ls", "12"]])

        assert table.splitlines() == [
            "Tool     Calls",
            "-------  -----",
            "npm run  3",
            "ls       12",
        ]

    def test_format_table_empty(self):
        """Test no rows renders nothing."""
        assert format_table([]) == ""

    def test_recent_line_for_success(self):
        """Test the status mark, timing and token breakdown."""
        lines = format_recent_metric(make_metric("jq", duration=12.34))

        assert lines[0].startswith("✓ jq - 12.3ms - 8 tokens - ")
        assert lines[1] == "  Tokens: 2 in, 6 out"
        assert len(lines) == 2

    def test_recent_line_for_failure(self):
        """Test failures show the error and omit empty token lines."""
        lines = format_recent_metric(make_metric("make", success=False, input_tokens=0, output_tokens=0))

        assert lines[0].startswith("✗ make - 10.0ms - 0 tokens - ")
        assert lines[1] == "  Error: Exit code: 2"
        assert len(lines) == 2


class TestSummaryCommand:
    """Tests for 'claudx summary'."""

    def test_empty_database(self, env, capsys):
        """Test the hint shown before any metrics exist."""
        assert cmd_summary(Namespace(limit=10)) == 0

        out = capsys.readouterr().out
        assert "Tool Execution Summary" in out
        assert NO_METRICS_MESSAGE in out

    def test_shows_tables(self, env, capsys):
        """Test both summary tables list the tool."""
        populate(env / "metrics.db", [
            make_metric("ls", duration=10.0),
            make_metric("ls", duration=20.0),
            make_metric("ls", duration=30.0, success=False),
        ])

        assert cmd_summary(Namespace(limit=10)) == 0

        out = capsys.readouterr().out
        assert "Token Usage Breakdown (Estimated)" in out
        row = next(line for line in out.splitlines() if line.startswith("ls "))
        assert row.split() == ["ls", "3", "60.0", "20.0", "24", "8", "66.7%"]

    def test_limit(self, env, capsys):
        """Test only the most expensive tools are shown."""
        populate(env / "metrics.db", [
            make_metric("slow", duration=100.0),
            make_metric("fast", duration=1.0),
        ])

        cmd_summary(Namespace(limit=1))

        out = capsys.readouterr().out
        assert "slow" in out
        assert "fast" not in out


class TestRecentCommand:
    """Tests for 'claudx recent'."""

    def test_newest_first(self, env, capsys):
        """Test invocations are listed newest first up to the limit."""
        now = datetime.now(timezone.utc)
        populate(env / "metrics.db", [
            make_metric(f"tool-{i}", timestamp=now + timedelta(seconds=i)) for i in range(3)
        ])

        assert cmd_recent(Namespace(limit=2)) == 0

        lines = [line for line in capsys.readouterr().out.splitlines() if line.startswith("✓")]
        assert [line.split()[1] for line in lines] == ["tool-2", "tool-1"]

    def test_empty_database(self, env, capsys):
        """Test the hint shown before any metrics exist."""
        assert cmd_recent(Namespace(limit=20)) == 0
        assert NO_METRICS_MESSAGE in capsys.readouterr().out


class TestClearCommand:
    """Tests for 'claudx clear'."""

    def test_dry_run_keeps_everything(self, env, capsys):
        """Test --dry-run only reports."""
        now = datetime.now(timezone.utc)
        populate(env / "metrics.db", [
            make_metric(timestamp=now - timedelta(days=45)),
            make_metric(timestamp=now),
        ])

        assert cmd_clear(Namespace(older_than=30, dry_run=True)) == 0

        out = capsys.readouterr().out
        assert "Would remove 1 metrics" in out
        assert "Would keep 1 metrics" in out
        dest = SQLiteDestination(env / "metrics.db")
        assert dest.count() == 2
        dest.close()

    def test_removes_old_metrics(self, env, capsys):
        """Test metrics older than the cutoff are deleted."""
        now = datetime.now(timezone.utc)
        populate(env / "metrics.db", [
            make_metric(timestamp=now - timedelta(days=45)),
            make_metric(timestamp=now - timedelta(days=10)),
        ])

        assert cmd_clear(Namespace(older_than=30, dry_run=False)) == 0

        assert "Removed 1 metrics" in capsys.readouterr().out
        dest = SQLiteDestination(env / "metrics.db")
        assert dest.count() == 1
        dest.close()


class TestConfigCommands:
    """Tests for 'claudx config'."""

    def test_path_without_config(self, env, capsys):
        """Test the default is reported when nothing is configured."""
        with patch("claudx.config.get_git_root", return_value=None):
            assert cmd_config_path(Namespace()) == 0

        assert "No configuration file found" in capsys.readouterr().out

    def test_path_with_config(self, env, capsys):
        """Test the discovered file is printed."""
        config_path = env / ".claudx" / "config.toml"
        config_path.parent.mkdir()
        config_path.write_text('[[destinations]]\ntype = "sqlite"\n')

        assert cmd_config_path(Namespace()) == 0
        assert capsys.readouterr().out.strip() == str(config_path)

    def test_show_masks_api_key(self, env, capsys):
        """Test secrets are never printed in full."""
        config_path = env / ".claudx" / "config.toml"
        config_path.parent.mkdir()
        config_path.write_text(
            '[[destinations]]\ntype = "datadog"\n[destinations.options]\napi_key = "supersecret1234"\n'
        )

        assert cmd_config_show(Namespace()) == 0

        out = capsys.readouterr().out
        assert "supersecret" not in out
        assert "********1234" in out

    def test_validate_valid(self, env, capsys):
        """Test a good config validates."""
        config_path = env / ".claudx" / "config.toml"
        config_path.parent.mkdir()
        config_path.write_text('[[destinations]]\ntype = "sqlite"\n')

        assert cmd_config_validate(Namespace()) == 0
        assert "Configuration valid" in capsys.readouterr().out

    def test_validate_reports_bad_destinations(self, env, capsys):
        """Test unknown types and missing Datadog keys fail validation."""
        config_path = env / ".claudx" / "config.toml"
        config_path.parent.mkdir()
        config_path.write_text(
            '[[destinations]]\ntype = "kafka"\n\n[[destinations]]\ntype = "datadog"\n'
        )

        assert cmd_config_validate(Namespace()) == 1

        err = capsys.readouterr().err
        assert "unknown type 'kafka'" in err
        assert "API key is required" in err

    def test_validate_missing_config_is_not_an_error(self, env):
        """Test running without a config file succeeds."""
        with patch("claudx.config.get_git_root", return_value=None):
            assert cmd_config_validate(Namespace()) == 0


class TestShimCommands:
    """Tests for 'claudx install', 'claudx refresh' and 'claudx init'."""

    def test_install_named(self, env, capsys):
        """Test explicit names are passed to the shim manager."""
        with patch("claudx.shims.manager.ShimManager.install_shims") as mock_install:
            mock_install.return_value = InstallResult(created=2, skipped=1)
            code = cmd_install(Namespace(names=["jq", "gh"], batch_size=50, base_dir=None))

        assert code == 0
        mock_install.assert_called_once_with(["jq", "gh"], batch_size=50)
        out = capsys.readouterr().out
        assert "Created: 2" in out
        assert "Skipped: 1" in out

    def test_install_all(self, env):
        """Test no names means discover everything."""
        with patch("claudx.shims.manager.ShimManager.install_shims") as mock_install:
            mock_install.return_value = InstallResult()
            cmd_install(Namespace(names=[], batch_size=100, base_dir=None))

        mock_install.assert_called_once_with(None, batch_size=100)

    def test_refresh_failure_exit_code(self, env):
        """Test a failed refresh exits non-zero."""
        with patch("claudx.shims.refresh.RefreshScheduler.ensure_updated", return_value=False) as mock:
            assert cmd_refresh(Namespace(shim_all=True, force=True, base_dir=None)) == 1

        mock.assert_called_once_with(force=True)

    def test_init(self, env, capsys):
        """Test init writes into the requested directory."""
        target = env / "project"
        target.mkdir()

        assert cmd_init(Namespace(directory=str(target), force=False)) == 0
        assert (target / ".claudx" / "config.toml").exists()

        assert cmd_init(Namespace(directory=str(target), force=False)) == 1
        assert "Already initialized" in capsys.readouterr().err


class TestParser:
    """Tests for argument parsing."""

    def test_defaults(self):
        """Test default limits and retention."""
        parser = create_parser()

        assert parser.parse_args(["summary"]).limit == 10
        assert parser.parse_args(["recent"]).limit == 20
        assert parser.parse_args(["clear"]).older_than == 30

    def test_refresh_flags(self):
        """Test refresh options parse."""
        args = create_parser().parse_args(["refresh", "--shim-all", "--force"])

        assert args.shim_all is True
        assert args.force is True

    def test_install_names(self):
        """Test install collects positional names."""
        args = create_parser().parse_args(["install", "jq", "gh", "--batch-size", "10"])

        assert args.names == ["jq", "gh"]
        assert args.batch_size == 10

    def test_install_rejects_zero_batch_size(self, capsys):
        """Test a batch size below one is a usage error."""
        with pytest.raises(SystemExit) as exc_info:
            create_parser().parse_args(["install", "--batch-size", "0"])

        assert exc_info.value.code == 2
        assert "must be at least 1" in capsys.readouterr().err
