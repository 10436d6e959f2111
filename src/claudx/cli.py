"""CLI commands for metrics queries.

This module provides the command handlers for the read-side subcommands:
- summary: Per-tool aggregate statistics
- recent: Most recent invocations
- clear: Remove old metrics from the local database
"""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from claudx.config import ClaudxConfig, original_cwd

if TYPE_CHECKING:
    import argparse

    from claudx.destinations.sqlite import SQLiteDestination
    from claudx.models import ToolMetric

DEFAULT_SUMMARY_LIMIT = 10
DEFAULT_RECENT_LIMIT = 20
DEFAULT_CLEAR_DAYS = 30

NO_METRICS_MESSAGE = (
    "No metrics found. Install shims and use Claude Code with the wrapper to collect metrics."
)
NO_METRICS_HINT = "Run: claudx install"


def format_number(n: int) -> str:
    """Format a number with thousands separators."""
    return f"{n:,}"


def format_percent(rate: float) -> str:
    """Format a rate as a percentage."""
    return f"{rate * 100:.1f}%"


def format_table(rows: list[list[str]]) -> str:
    """Render rows as a left-aligned table with a rule under the header.

    The first row is the header. Columns are separated by two spaces.
    """
    if not rows:
        return ""

    widths = [0] * max(len(row) for row in rows)
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    def render(row: list[str]) -> str:
        return "  ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)).rstrip()

    lines = [render(rows[0]), "  ".join("-" * w for w in widths)]
    lines.extend(render(row) for row in rows[1:])
    return "\n".join(lines)


def format_timestamp(ts: datetime) -> str:
    """Format a UTC timestamp in local time."""
    return ts.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def format_recent_metric(metric: ToolMetric) -> list[str]:
    """Render one invocation as the lines printed by 'recent'."""
    status = "✓" if metric.success else "✗"
    lines = [
        f"{status} {metric.tool_name} - {metric.duration:.1f}ms - "
        f"{metric.total_tokens} tokens - {format_timestamp(metric.timestamp)}"
    ]
    if metric.total_tokens > 0:
        lines.append(f"  Tokens: {metric.input_tokens} in, {metric.output_tokens} out")
    if not metric.success and metric.error_message:
        lines.append(f"  Error: {metric.error_message}")
    return lines


def cmd_summary(args: argparse.Namespace) -> int:
    """Handle 'summary' command - per-tool statistics."""
    from claudx.manager import MetricsManager

    limit = getattr(args, "limit", DEFAULT_SUMMARY_LIMIT)

    try:
        with MetricsManager(start_dir=original_cwd()) as manager:
            summary = manager.get_metrics_summary()
    except Exception as e:
        print(f"Error reading metrics: {e}", file=sys.stderr)
        return 1

    print("Tool Execution Summary")
    print("======================")
    print()

    if limit > 0:
        summary = summary[:limit]

    if not summary:
        print(NO_METRICS_MESSAGE)
        print(NO_METRICS_HINT)
        return 0

    print(format_table([
        ["Tool", "Calls", "Total (ms)", "Avg (ms)", "Tokens", "Avg Tokens", "Success %"],
        *[
            [
                s.tool_name,
                format_number(s.total_calls),
                f"{s.total_duration:.1f}",
                f"{s.avg_duration:.1f}",
                format_number(s.total_tokens),
                f"{s.avg_tokens:.0f}",
                format_percent(s.success_rate),
            ]
            for s in summary
        ],
    ]))

    print()
    print("Token Usage Breakdown (Estimated)")
    print("=================================")
    print()

    print(format_table([
        ["Tool", "Input Tokens", "Output Tokens", "Total Tokens", "Avg per Call"],
        *[
            [
                s.tool_name,
                format_number(s.input_tokens),
                format_number(s.output_tokens),
                format_number(s.total_tokens),
                f"{s.avg_tokens:.0f}",
            ]
            for s in summary
        ],
    ]))

    return 0


def cmd_recent(args: argparse.Namespace) -> int:
    """Handle 'recent' command - latest invocations, newest first."""
    from claudx.manager import MetricsManager

    limit = getattr(args, "limit", DEFAULT_RECENT_LIMIT)

    try:
        with MetricsManager(start_dir=original_cwd()) as manager:
            recent = manager.get_recent_metrics(limit)
    except Exception as e:
        print(f"Error reading metrics: {e}", file=sys.stderr)
        return 1

    print("Recent Tool Executions")
    print("======================")
    print()

    if not recent:
        print(NO_METRICS_MESSAGE)
        print(NO_METRICS_HINT)
        return 0

    for metric in recent:
        for line in format_recent_metric(metric):
            print(line)

    return 0


def _sqlite_destinations(config: ClaudxConfig) -> list[SQLiteDestination]:
    """Open every SQLite database the config writes to (or the default one)."""
    from claudx.destinations.sqlite import SQLiteDestination

    paths = [
        d.options.get("db_path") for d in config.destinations if d.type == "sqlite"
    ]
    if not paths:
        paths = [None]
    return [SQLiteDestination(db_path=p) for p in dict.fromkeys(paths)]


def cmd_clear(args: argparse.Namespace) -> int:
    """Handle 'clear' command - remove metrics older than N days."""
    older_than = getattr(args, "older_than", DEFAULT_CLEAR_DAYS)
    dry_run = getattr(args, "dry_run", False)

    cutoff = datetime.now(timezone.utc) - timedelta(days=older_than)

    try:
        config = ClaudxConfig.load_or_default(original_cwd())
        destinations = _sqlite_destinations(config)
    except Exception as e:
        print(f"Error opening metrics database: {e}", file=sys.stderr)
        return 1

    try:
        for destination in destinations:
            db_path = destination.db_path
            if dry_run:
                removed = destination.count_older_than(cutoff)
                kept = destination.count() - removed
                print(f"{db_path}:")
                print(f"  Would remove {format_number(removed)} metrics older than {older_than} days")
                print(f"  Would keep {format_number(kept)} metrics")
                continue

            removed = destination.delete_older_than(cutoff)
            if removed == 0:
                print(f"{db_path}: no metrics older than {older_than} days to remove")
                continue
            print(f"{db_path}:")
            print(f"  Removed {format_number(removed)} metrics older than {older_than} days")
            print(f"  Kept {format_number(destination.count())} metrics")
    except Exception as e:
        print(f"Error clearing metrics: {e}", file=sys.stderr)
        return 1
    finally:
        for destination in destinations:
            destination.close()

    return 0
