"""Canonical tool-name table.

Some executables are umbrella commands (e.g. ``pnpm``) whose subcommands are
really separate tools. Each entry says how many leading arguments are folded
into the tool name recorded for an invocation: with ``npm`` at 2,
``npm run build --watch`` is tracked as ``npm run build``.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CommandDescriptor:
    """Number of leading arguments folded into a command's tool name."""

    command: str
    argument_count: int


COMMAND_DESCRIPTORS: tuple[CommandDescriptor, ...] = (
    # Package managers
    CommandDescriptor("npm", 2),
    CommandDescriptor("pnpm", 1),
    CommandDescriptor("yarn", 1),
    CommandDescriptor("bun", 1),
    CommandDescriptor("pip", 1),
    CommandDescriptor("pip3", 1),
    CommandDescriptor("uv", 1),
    CommandDescriptor("poetry", 1),
    # Version control
    CommandDescriptor("git", 1),
    CommandDescriptor("gh", 1),
    # Build tools
    CommandDescriptor("make", 1),
    CommandDescriptor("cmake", 1),
    CommandDescriptor("cargo", 1),
    CommandDescriptor("go", 1),
    # Testing frameworks (options come after)
    CommandDescriptor("jest", 0),
    CommandDescriptor("pytest", 0),
    CommandDescriptor("mocha", 0),
    CommandDescriptor("vitest", 0),
    # Compilers and bundlers
    CommandDescriptor("tsc", 0),
    CommandDescriptor("babel", 0),
    CommandDescriptor("webpack", 0),
    CommandDescriptor("vite", 1),
    # Linters and formatters
    CommandDescriptor("eslint", 0),
    CommandDescriptor("prettier", 0),
    CommandDescriptor("ruff", 1),
    CommandDescriptor("black", 0),
    # Containers
    CommandDescriptor("docker", 1),
    CommandDescriptor("docker-compose", 1),
    # Cloud tools
    CommandDescriptor("aws", 1),
    CommandDescriptor("gcloud", 1),
    CommandDescriptor("kubectl", 1),
    # Text processing
    CommandDescriptor("jq", 1),
    CommandDescriptor("curl", 0),
    CommandDescriptor("wget", 0),
    # Editors
    CommandDescriptor("code", 0),
    CommandDescriptor("vim", 0),
    CommandDescriptor("nvim", 0),
)

_DESCRIPTORS_BY_COMMAND = {d.command: d for d in COMMAND_DESCRIPTORS}


def get_descriptor(command: str) -> CommandDescriptor | None:
    """Look up the descriptor for a bare command name."""
    return _DESCRIPTORS_BY_COMMAND.get(command)
