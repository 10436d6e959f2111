"""Executable selection rules for shimming."""

from __future__ import annotations

import os
import stat
from pathlib import Path

# Executables never shimmed
EXCLUDED_EXECUTABLES = frozenset({
    # System critical
    "init",
    "kernel",
    "kthreadd",
    "systemd",
    "systemctl",
    # Shells (shims are bash scripts; shimming a shell would recurse)
    "sh",
    "bash",
    "zsh",
    "fish",
    "dash",
    "csh",
    "tcsh",
    "ksh",
    # Privilege, mount and filesystem management
    "sudo",
    "su",
    "doas",
    "passwd",
    "mount",
    "umount",
    "fsck",
    "fdisk",
    "mkfs",
    "parted",
    "lvm",
    "cryptsetup",
    # Process and system management
    "kill",
    "killall",
    "pkill",
    "ps",
    "top",
    "htop",
    # Network and security critical
    "iptables",
    "nft",
    "firewalld",
    "ufw",
    "ssh",
    "sshd",
    # System package managers
    "apt",
    "apt-get",
    "dpkg",
    "yum",
    "dnf",
    "rpm",
    "pacman",
    "zypper",
    # claudx itself and the agent it wraps
    "claudx",
    "claudx-shim",
    "claude",
    # Agent runtime and its package managers
    "node",
    "npm",
    "bun",
    # Config discovery runs `git rev-parse`; a git shim would loop forever
    "git",
    # Core file operations that can loop back into the collector
    "cat",
    "ls",
    "find",
    "which",
    "whereis",
    # Noisy commands the agent runs behind the scenes
    "tail",
    "head",
    "sort",
    "uniq",
    "sed",
    "grep",
    "awk",
    "uname",
    "tr",
    "cut",
    "less",
    "more",
    "base64",
    "md5sum",
    "sha1sum",
    "sha256sum",
    "shasum",
})

# Extensions that are usually not executables
SKIP_EXTENSIONS = frozenset({
    ".txt",
    ".md",
    ".json",
    ".xml",
    ".html",
    ".css",
    ".js",
    ".so",
    ".a",
    ".o",
})


def should_shim(executable: str) -> bool:
    """Decide whether a name found on the search path may be shimmed.

    Args:
        executable: Bare file name (no directory).

    Returns:
        True if the name passes every selection rule.
    """
    if executable in EXCLUDED_EXECUTABLES:
        return False

    # Hidden files
    if executable.startswith("."):
        return False

    if os.path.splitext(executable)[1].lower() in SKIP_EXTENSIONS:
        return False

    # Shared libraries and friends
    if ".so." in executable or executable.startswith("lib"):
        return False

    return True


def is_executable_file(path: Path) -> bool:
    """Check that path is a regular file with any executable bit set.

    Symlinks are followed; broken links and unreadable entries return False.
    """
    try:
        mode = path.stat().st_mode
    except OSError:
        return False
    return stat.S_ISREG(mode) and bool(mode & 0o111)
