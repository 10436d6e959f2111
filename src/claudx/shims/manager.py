"""Shim generation for executables on the search path.

Layout under the claudx home (default ~/.claudx):

    shims/<name>              generated wrapper scripts
    backups/<name>.original   copies of the real binaries
    shim-config.json          the ShimConfig list from the last install

A shim is a small bash script that hands the invocation to the metrics
collector along with the absolute path of the real binary. The real binary
is never modified.
"""

from __future__ import annotations

import json
import logging
import os
import shlex
import shutil
import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from claudx.config import claudx_home
from claudx.errors import ClaudxError, ExecutableNotFoundError
from claudx.models import ShimConfig
from claudx.shims.selector import is_executable_file, should_shim

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100
MAX_SCAN_WORKERS = 32
# Individual failures are only printed for installs this small
VERBOSE_FAILURE_LIMIT = 50

SHIM_TEMPLATE = """\
#!/bin/bash
# claudx metrics shim for {executable}
# Generated on {generated_at}

export CLAUDX_ORIGINAL_CWD="$PWD"
exec {python} -P -m claudx.collector {executable_arg} {original_path} "$@"
"""


@dataclass
class InstallResult:
    """Outcome of an install_shims run."""

    created: int = 0
    skipped: int = 0
    configs: list[ShimConfig] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)


class ShimManager:
    """Discovers executables and generates their shims."""

    CONFIG_FILE_NAME = "shim-config.json"

    def __init__(self, base_dir: Path | None = None, python: str | None = None):
        """Initialize the shim manager.

        Args:
            base_dir: Directory holding shims/, backups/ and the shim config.
                      Defaults to CLAUDX_HOME or ~/.claudx.
            python: Interpreter the shims run the collector with. Defaults
                    to the current interpreter.
        """
        self.base_dir = Path(base_dir) if base_dir else claudx_home()
        self.shim_dir = self.base_dir / "shims"
        self.backup_dir = self.base_dir / "backups"
        self.config_file = self.base_dir / self.CONFIG_FILE_NAME
        self.python = python or sys.executable

    def initialize(self) -> None:
        """Create the shim and backup directories.

        Raises:
            OSError: If the directories cannot be created.
        """
        self.shim_dir.mkdir(parents=True, exist_ok=True)
        self.backup_dir.mkdir(parents=True, exist_ok=True)

    def search_dirs(self, search_path: str | None = None) -> list[str]:
        """Directories of the search path, without our own shim directory.

        Args:
            search_path: PATH-style string. Defaults to $PATH.
        """
        if search_path is None:
            search_path = os.environ.get("PATH", "")

        shim_dir = os.path.abspath(self.shim_dir)
        dirs = []
        for entry in search_path.split(os.pathsep):
            if not entry or os.path.abspath(entry) == shim_dir:
                continue
            dirs.append(entry)
        return dirs

    def find_executable_path(self, executable: str, search_path: str | None = None) -> str | None:
        """Resolve a bare name to the absolute path of the real executable."""
        dirs = self.search_dirs(search_path)
        found = shutil.which(executable, path=os.pathsep.join(dirs))
        if found is None:
            return None
        return os.path.abspath(found)

    def _scan_directory(self, directory: str) -> list[str]:
        try:
            entries = os.listdir(directory)
        except OSError:
            # Skip directories we can't read
            return []

        return [
            entry
            for entry in entries
            if should_shim(entry) and is_executable_file(Path(directory) / entry)
        ]

    def discover_all_executables(self, search_path: str | None = None) -> list[str]:
        """Find every shimmable executable on the search path.

        Directories are scanned concurrently. Unreadable directories and
        broken entries are skipped.

        Returns:
            Sorted, deduplicated executable names.
        """
        dirs = self.search_dirs(search_path)
        logger.debug(f"Discovering executables in {len(dirs)} PATH directories")

        executables: set[str] = set()
        if dirs:
            with ThreadPoolExecutor(max_workers=min(MAX_SCAN_WORKERS, len(dirs))) as pool:
                for names in pool.map(self._scan_directory, dirs):
                    executables.update(names)

        result = sorted(executables)
        logger.debug(f"Found {len(result)} executable tools to shim")
        return result

    def generate_shim_script(self, executable: str, original_path: str) -> str:
        """Render the wrapper script for an executable."""
        return SHIM_TEMPLATE.format(
            executable=executable.replace("\n", " "),
            generated_at=datetime.now(timezone.utc).isoformat(),
            python=shlex.quote(self.python),
            executable_arg=shlex.quote(executable),
            original_path=shlex.quote(original_path),
        )

    def create_shim(self, executable: str, search_path: str | None = None) -> ShimConfig:
        """Back up an executable and write its shim.

        Args:
            executable: Bare executable name.
            search_path: PATH-style string. Defaults to $PATH.

        Returns:
            The ShimConfig describing the new shim.

        Raises:
            ExecutableNotFoundError: If the executable is not on the path.
            OSError: If the backup or the shim cannot be written.
        """
        original_path = self.find_executable_path(executable, search_path)
        if original_path is None:
            raise ExecutableNotFoundError(executable)

        shim_path = self.shim_dir / executable
        backup_path = self.backup_dir / f"{executable}.original"

        shutil.copy2(original_path, backup_path)

        # Write then rename so a running agent never executes a partial shim
        tmp_path = self.shim_dir / f".{executable}.tmp"
        tmp_path.write_text(self.generate_shim_script(executable, original_path))
        tmp_path.chmod(0o755)
        os.replace(tmp_path, shim_path)

        return ShimConfig(
            executable=executable,
            original_path=original_path,
            shim_path=str(shim_path),
            enabled=True,
        )

    def _try_create_shim(
        self, executable: str, search_path: str | None
    ) -> tuple[ShimConfig, str | None]:
        try:
            return self.create_shim(executable, search_path), None
        except (ClaudxError, OSError) as e:
            return ShimConfig(executable=executable, enabled=False), str(e)

    def install_shims(
        self,
        executables: list[str] | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        search_path: str | None = None,
    ) -> InstallResult:
        """Generate shims in parallel batches and save the shim config.

        Args:
            executables: Names to shim. Defaults to every discovered executable.
                         Names rejected by the selector are skipped.
            batch_size: Number of shims created concurrently.
            search_path: PATH-style string. Defaults to $PATH.

        Returns:
            Counts of created and skipped shims plus the saved configs.

        Raises:
            ValueError: If batch_size is less than 1.
            OSError: If the shim directories cannot be created.
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")

        self.initialize()

        if executables is None:
            executables = self.discover_all_executables(search_path)

        targets: list[str] = []
        result = InstallResult()
        for executable in dict.fromkeys(executables):
            if should_shim(executable):
                targets.append(executable)
            else:
                result.skipped += 1
                result.failures[executable] = "excluded"
                result.configs.append(ShimConfig(executable=executable, enabled=False))

        print(f"Installing shims for {len(targets)} executables...", file=sys.stderr)

        batches = [targets[i:i + batch_size] for i in range(0, len(targets), batch_size)]
        for index, batch in enumerate(batches):
            with ThreadPoolExecutor(max_workers=max(1, len(batch))) as pool:
                outcomes = list(
                    pool.map(lambda name: self._try_create_shim(name, search_path), batch)
                )

            for config, error in outcomes:
                result.configs.append(config)
                if error is None:
                    result.created += 1
                    continue

                result.skipped += 1
                result.failures[config.executable] = error
                logger.debug(f"Failed to create shim for {config.executable}: {error}")
                if len(targets) <= VERBOSE_FAILURE_LIMIT:
                    print(
                        f"Warning: failed to create shim for {config.executable}: {error}",
                        file=sys.stderr,
                    )

            done = min((index + 1) * batch_size, len(targets))
            print(
                f"Progress: {done}/{len(targets)} executables processed "
                f"({result.created} shims created)",
                file=sys.stderr,
            )

        self.save_shim_configs(result.configs)

        print(f"Shim installation completed: {result.created} shims created", file=sys.stderr)
        if result.skipped:
            print(f"  {result.skipped} executables skipped (errors or excluded)", file=sys.stderr)

        return result

    def save_shim_configs(self, configs: list[ShimConfig]) -> None:
        """Write the shim config file, replacing any previous one."""
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        self.config_file.write_text(
            json.dumps([c.to_dict() for c in configs], indent=2) + "\n"
        )

    def load_shim_configs(self) -> list[ShimConfig]:
        """Read the shim config file written by the last install."""
        if not self.config_file.exists():
            return []
        data = json.loads(self.config_file.read_text())
        return [ShimConfig.from_dict(entry) for entry in data]
