"""Executable selection, shim generation and periodic refresh."""

from claudx.shims.manager import InstallResult, ShimManager
from claudx.shims.refresh import REFRESH_INTERVAL, RefreshScheduler, TimestampStore
from claudx.shims.selector import EXCLUDED_EXECUTABLES, is_executable_file, should_shim

__all__ = [
    "EXCLUDED_EXECUTABLES",
    "InstallResult",
    "REFRESH_INTERVAL",
    "RefreshScheduler",
    "ShimManager",
    "TimestampStore",
    "is_executable_file",
    "should_shim",
]
