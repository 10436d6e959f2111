"""Periodic shim refresh, run when the agent launcher starts.

Shims are regenerated at most once per REFRESH_INTERVAL so tools installed
since the last run get picked up without slowing every launch down.
"""

from __future__ import annotations

import logging
import sys
import time
from pathlib import Path
from typing import Callable

from claudx.config import claudx_home
from claudx.shims.manager import ShimManager
from claudx.shims.whitelist import COMMON_TOOLS

logger = logging.getLogger(__name__)

REFRESH_INTERVAL = 24 * 60 * 60 * 1000  # milliseconds
TIMESTAMP_FILE_NAME = ".last_update"


class TimestampStore:
    """Last-refresh time in epoch milliseconds, stored as a text file."""

    def __init__(self, path: Path):
        self.path = path

    def read(self) -> int | None:
        """Return the stored timestamp, or None if missing or unreadable."""
        try:
            return int(self.path.read_text().strip())
        except (OSError, ValueError):
            return None

    def write(self, value: int) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(str(value))


class RefreshScheduler:
    """Decides when shims are stale and regenerates them."""

    def __init__(
        self,
        base_dir: Path | None = None,
        shim_all: bool = False,
        clock: Callable[[], float] = time.time,
        store: TimestampStore | None = None,
        interval: int = REFRESH_INTERVAL,
    ):
        """Initialize the scheduler.

        Args:
            base_dir: claudx home directory. Defaults to CLAUDX_HOME or ~/.claudx.
            shim_all: Shim every executable on PATH instead of COMMON_TOOLS.
            clock: Returns the current time in seconds.
            store: Where the last-refresh time is kept. Defaults to
                   shims/.last_update under base_dir.
            interval: Minimum time between refreshes, in milliseconds.
        """
        self.base_dir = Path(base_dir) if base_dir else claudx_home()
        self.shim_all = shim_all
        self.clock = clock
        self.interval = interval
        self.store = store or TimestampStore(self.base_dir / "shims" / TIMESTAMP_FILE_NAME)

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def should_update(self) -> bool:
        """True when no valid stamp exists or it is older than the interval."""
        last_update = self.store.read()
        if last_update is None:
            return True
        return self._now_ms() - last_update > self.interval

    def available_common_tools(self, manager: ShimManager) -> list[str]:
        """Entries of COMMON_TOOLS that resolve on the search path."""
        return [tool for tool in COMMON_TOOLS if manager.find_executable_path(tool)]

    def update_shims(self) -> bool:
        """Regenerate shims and record the refresh time.

        Failures are logged and leave the stamp untouched so the next
        launch retries.

        Returns:
            True if the shims were regenerated.
        """
        manager = ShimManager(self.base_dir)

        if self.shim_all:
            print("[claudx] Updating all executable shims...", file=sys.stderr)
        else:
            print("[claudx] Updating common tool shims...", file=sys.stderr)

        try:
            if self.shim_all:
                manager.install_shims()
            else:
                tools = self.available_common_tools(manager)
                print(f"[claudx] Found {len(tools)} common tools available", file=sys.stderr)
                manager.install_shims(tools)
            self.store.write(self._now_ms())
        except OSError as e:
            logger.error(f"Shim update failed: {e}")
            return False

        print("[claudx] Shims updated successfully", file=sys.stderr)
        return True

    def ensure_updated(self, force: bool = False) -> bool:
        """Refresh the shims if they are stale (or always, with force).

        Returns:
            False if a refresh was needed and failed, True otherwise.
        """
        if force or self.should_update():
            return self.update_shims()

        print("[claudx] Shims are up to date", file=sys.stderr)
        return True
