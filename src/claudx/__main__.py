"""CLI entry point for claudx.

Usage:
    claudx <command> [options]

Commands:
    install [names...] [--batch-size N]
    refresh [--shim-all] [--force]
    summary [--limit N]
    recent [--limit N]
    clear [--older-than DAYS] [--dry-run]
    config validate|path|show
    init [--directory DIR] [--force]
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import NoReturn

from claudx import __version__
from claudx.logs import configure_logging


def positive_int(value: str) -> int:
    """argparse type for integers of at least 1."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: '{value}'") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="claudx",
        description="Tool execution metrics for AI coding agents",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # install command
    install_parser = subparsers.add_parser(
        "install", help="Generate shims for executables on PATH"
    )
    install_parser.add_argument(
        "names",
        nargs="*",
        help="Executables to shim. Defaults to every executable on PATH.",
    )
    install_parser.add_argument(
        "--batch-size",
        type=positive_int,
        default=100,
        help="Shims created concurrently per batch (default: 100)",
    )
    install_parser.add_argument(
        "--base-dir",
        help="claudx home directory (default: $CLAUDX_HOME or ~/.claudx)",
    )

    # refresh command
    refresh_parser = subparsers.add_parser(
        "refresh", help="Regenerate shims if they are older than 24 hours"
    )
    refresh_parser.add_argument(
        "--shim-all",
        action="store_true",
        help="Shim every executable on PATH instead of common tools only",
    )
    refresh_parser.add_argument(
        "--force",
        action="store_true",
        help="Regenerate even if the shims are up to date",
    )
    refresh_parser.add_argument(
        "--base-dir",
        help="claudx home directory (default: $CLAUDX_HOME or ~/.claudx)",
    )

    # summary command
    summary_parser = subparsers.add_parser(
        "summary", help="Show per-tool execution statistics"
    )
    summary_parser.add_argument(
        "-l", "--limit",
        type=int,
        default=10,
        help="Number of tools shown (default: 10)",
    )

    # recent command
    recent_parser = subparsers.add_parser(
        "recent", help="Show recent tool executions"
    )
    recent_parser.add_argument(
        "-l", "--limit",
        type=int,
        default=20,
        help="Number of executions shown (default: 20)",
    )

    # clear command
    clear_parser = subparsers.add_parser(
        "clear", help="Remove old metrics from the local database"
    )
    clear_parser.add_argument(
        "--older-than",
        type=int,
        default=30,
        help="Remove metrics older than N days (default: 30)",
    )
    clear_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be removed without removing",
    )

    # config command
    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_subparsers = config_parser.add_subparsers(
        dest="config_command", help="Config subcommands"
    )
    config_subparsers.add_parser("validate", help="Validate configuration")
    config_subparsers.add_parser("path", help="Show the configuration file in effect")
    config_subparsers.add_parser("show", help="Show configured destinations")

    # init command
    init_parser = subparsers.add_parser(
        "init", help="Write a default .claudx/config.toml"
    )
    init_parser.add_argument(
        "--directory",
        help="Directory to write .claudx/config.toml in (default: home directory)",
    )
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing config",
    )

    return parser


def cmd_install(args: argparse.Namespace) -> int:
    """Handle 'install' command."""
    from claudx.shims.manager import ShimManager

    base_dir = Path(args.base_dir) if getattr(args, "base_dir", None) else None
    manager = ShimManager(base_dir)

    try:
        result = manager.install_shims(args.names or None, batch_size=args.batch_size)
    except OSError as e:
        print(f"Error installing shims: {e}", file=sys.stderr)
        return 1

    print(f"Shims written to {manager.shim_dir}")
    print(f"  Created: {result.created}")
    print(f"  Skipped: {result.skipped}")
    print()
    print("Prepend the shim directory to PATH to start collecting:")
    print(f'  export PATH="{manager.shim_dir}:$PATH"')
    return 0


def cmd_refresh(args: argparse.Namespace) -> int:
    """Handle 'refresh' command."""
    from claudx.shims.refresh import RefreshScheduler

    base_dir = Path(args.base_dir) if getattr(args, "base_dir", None) else None
    scheduler = RefreshScheduler(base_dir, shim_all=args.shim_all)
    return 0 if scheduler.ensure_updated(force=args.force) else 1


def cmd_config_path(args: argparse.Namespace) -> int:
    """Handle 'config path' command."""
    from claudx.config import original_cwd, resolve_config_path

    path = resolve_config_path(original_cwd())
    if path is None:
        print("No configuration file found (using default SQLite destination)")
        return 0
    print(path)
    return 0


def _mask_secret(value: str) -> str:
    if len(value) <= 4:
        return "*" * 8
    return "*" * 8 + value[-4:]


def cmd_config_show(args: argparse.Namespace) -> int:
    """Handle 'config show' command."""
    from claudx.config import ClaudxConfig, original_cwd

    config = ClaudxConfig.load_or_default(original_cwd())

    print("Configured destinations:")
    for index, destination in enumerate(config.destinations, start=1):
        print(f"  {index}. {destination.type}")
        for key, value in destination.options.items():
            if key == "api_key" and value:
                value = _mask_secret(str(value))
            print(f"       {key}: {value}")

    print()
    print(f"Configuration file: {config.config_path or 'none (defaults)'}")
    return 0


def cmd_config_validate(args: argparse.Namespace) -> int:
    """Handle 'config validate' command."""
    from claudx.config import (
        VALID_DESTINATION_TYPES,
        ClaudxConfig,
        original_cwd,
        resolve_config_path,
    )

    path = resolve_config_path(original_cwd())
    if path is None:
        print("No configuration found (using default SQLite destination)", file=sys.stderr)
        return 0  # Missing config is not an error

    try:
        config = ClaudxConfig.load(path)
    except Exception as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    errors = []
    for index, destination in enumerate(config.destinations):
        if destination.type not in VALID_DESTINATION_TYPES:
            errors.append(
                f"Destination #{index}: unknown type '{destination.type}'. "
                f"Valid types: {', '.join(sorted(VALID_DESTINATION_TYPES))}"
            )
        elif destination.type == "datadog":
            from claudx.destinations.datadog import DatadogConfig

            try:
                DatadogConfig.from_options(destination.options).validate()
            except ValueError as e:
                errors.append(f"Destination #{index} (datadog): {e}")

    if errors:
        print(f"Configuration error in {path}:", file=sys.stderr)
        for error in errors:
            print(f"  - {error}", file=sys.stderr)
        return 1

    print(f"Configuration valid: {config.config_path}")
    print(f"  Destinations: {len(config.destinations)}")
    for destination in config.destinations:
        print(f"    - {destination.type}")
    return 0


def cmd_init(args: argparse.Namespace) -> int:
    """Handle 'init' command."""
    from claudx.init import init_config

    directory = Path(args.directory) if args.directory else None
    success, message = init_config(directory, force=args.force)
    if success:
        print(message)
        return 0
    print(f"Error: {message}", file=sys.stderr)
    return 1


def main() -> NoReturn:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    configure_logging()

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "install":
        sys.exit(cmd_install(args))
    elif args.command == "refresh":
        sys.exit(cmd_refresh(args))
    elif args.command == "summary":
        from claudx.cli import cmd_summary

        sys.exit(cmd_summary(args))
    elif args.command == "recent":
        from claudx.cli import cmd_recent

        sys.exit(cmd_recent(args))
    elif args.command == "clear":
        from claudx.cli import cmd_clear

        sys.exit(cmd_clear(args))
    elif args.command == "config":
        if args.config_command == "validate":
            sys.exit(cmd_config_validate(args))
        elif args.config_command == "path":
            sys.exit(cmd_config_path(args))
        elif args.config_command == "show":
            sys.exit(cmd_config_show(args))
        else:
            parser.parse_args(["config", "--help"])
            sys.exit(1)
    elif args.command == "init":
        sys.exit(cmd_init(args))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
