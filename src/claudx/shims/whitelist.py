"""Common tools an agent invokes, shimmed in selective (default) mode.

Shimming every executable on PATH is thorough but slow; this list gives
good coverage while keeping each refresh fast. Names in the exclusion set
are dropped by the selector even if listed here.
"""

from __future__ import annotations

COMMON_TOOLS: tuple[str, ...] = (
    # Version control
    "gh",
    "svn",
    "hg",
    # Node.js ecosystem
    "npx",
    "yarn",
    "pnpm",
    # Python ecosystem
    "python",
    "python3",
    "pip",
    "pip3",
    "poetry",
    "pipenv",
    "uv",
    "pytest",
    # Compilers and build tools
    "cargo",
    "rustc",
    "go",
    "java",
    "javac",
    "gradle",
    "mvn",
    "gcc",
    "g++",
    "clang",
    "clang++",
    "make",
    "cmake",
    "ninja",
    # Web and API tools
    "curl",
    "wget",
    "http",
    # Containers and deployment
    "docker",
    "docker-compose",
    "kubectl",
    "helm",
    "terraform",
    "ansible",
    # File operations
    "tar",
    "gzip",
    "gunzip",
    "zip",
    "unzip",
    "rsync",
    "scp",
    "cp",
    "mv",
    "rm",
    "mkdir",
    "rmdir",
    "wc",
    "rg",
    "du",
    "df",
    # Network tools
    "ping",
    "dig",
    "nslookup",
    "nc",
    # Database clients
    "mysql",
    "psql",
    "sqlite3",
    "redis-cli",
    # Development tools
    "jq",
    "yq",
    "openssl",
    # Cloud CLIs
    "aws",
    "gcloud",
    "az",
    "vercel",
    # Testing and linting
    "jest",
    "mocha",
    "vitest",
    "eslint",
    "prettier",
    "black",
    "ruff",
    "flake8",
    "mypy",
    "tsc",
    # Shell utilities
    "env",
    "echo",
    "printf",
    "sleep",
    "date",
    # Permissions
    "chmod",
    "chown",
    # Archives
    "bzip2",
    "xz",
    "7z",
    # Package managers (user level)
    "brew",
)
