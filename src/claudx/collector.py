"""Metrics collector - runs in place of every shimmed executable.

Usage:
    python -m claudx.collector <executable> <original-path> [args...]

The collector spawns the real binary, streams its stdout/stderr through
live while keeping a copy, records a ToolMetric and exits with the wrapped
program's exit code. Recording problems are logged and never change the
exit code or the output the caller sees.
"""

from __future__ import annotations

import logging
import math
import signal
import subprocess
import sys
import threading
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Callable

from claudx.commands import get_descriptor
from claudx.config import original_cwd
from claudx.logs import configure_logging
from claudx.models import ToolMetric

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4
CHUNK_SIZE = 65536
SPAWN_FAILURE_EXIT_CODE = 1
NOT_FOUND_EXIT_CODE = 127


@dataclass
class TokenInfo:
    """Estimated token counts for one invocation."""

    input_tokens: int
    output_tokens: int

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class ProcessResult:
    """Exit code and captured output of a wrapped process."""

    exit_code: int
    stdout: str
    stderr: str


def estimate_tokens(text: str) -> int:
    """Estimate tokens as one per four characters, rounded up."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def extract_tokens(executable: str, stdout: str, stderr: str, args: list[str]) -> TokenInfo:
    """Estimate input tokens from the command line and output tokens from its output.

    Args:
        executable: The executable name (e.g. "cat").
        stdout: Captured standard output.
        stderr: Captured standard error.
        args: Arguments passed to the executable.
    """
    input_text = f"{executable} {' '.join(args)}"
    return TokenInfo(
        input_tokens=estimate_tokens(input_text),
        output_tokens=estimate_tokens(stdout + stderr),
    )


def generate_tool_name(executable: str, args: list[str]) -> str:
    """Build the canonical tool name for an invocation.

    Umbrella commands listed in COMMAND_DESCRIPTORS keep their first N
    arguments verbatim (e.g. "npm run build"); everything else is recorded
    under the bare executable name.
    """
    descriptor = get_descriptor(executable)
    if descriptor is None or descriptor.argument_count == 0 or not args:
        return executable

    relevant_args = args[: descriptor.argument_count]
    return f"{executable} {' '.join(relevant_args)}"


def _binary_stream(stream: IO) -> IO[bytes]:
    return getattr(stream, "buffer", stream)


def _pump(source: IO[bytes], target: IO[bytes], captured: list[bytes]) -> None:
    """Copy a child stream to target chunk by chunk, keeping a copy."""
    while True:
        chunk = source.read1(CHUNK_SIZE) if hasattr(source, "read1") else source.read(CHUNK_SIZE)
        if not chunk:
            break
        captured.append(chunk)
        try:
            target.write(chunk)
            target.flush()
        except (OSError, ValueError):
            # Caller closed its end (e.g. piped into head); keep draining
            pass
    source.close()


def _exit_code(returncode: int) -> int:
    """Map a Popen return code to the shell's convention (128 + signal)."""
    if returncode < 0:
        return 128 + (-returncode)
    return returncode


def run_process(
    original_path: str,
    args: list[str],
    stdout: IO[bytes] | None = None,
    stderr: IO[bytes] | None = None,
) -> ProcessResult:
    """Run the original executable, streaming and capturing its output.

    Stdin is inherited. Stdout and stderr are drained by two threads so
    neither pipe can fill up and stall the child.

    Args:
        original_path: Absolute path of the real executable.
        args: Arguments to pass through verbatim.
        stdout: Binary stream receiving the child's stdout (default: ours).
        stderr: Binary stream receiving the child's stderr (default: ours).

    Raises:
        OSError: If the process cannot be spawned.
    """
    out_target = stdout or _binary_stream(sys.stdout)
    err_target = stderr or _binary_stream(sys.stderr)

    process = subprocess.Popen(
        [original_path, *args],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
    )

    # Ctrl-C reaches the child directly; the collector must outlive it to
    # report the exit code.
    previous_handler = None
    if threading.current_thread() is threading.main_thread():
        previous_handler = signal.signal(signal.SIGINT, signal.SIG_IGN)

    out_chunks: list[bytes] = []
    err_chunks: list[bytes] = []
    readers = [
        threading.Thread(target=_pump, args=(process.stdout, out_target, out_chunks)),
        threading.Thread(target=_pump, args=(process.stderr, err_target, err_chunks)),
    ]
    try:
        for reader in readers:
            reader.start()
        for reader in readers:
            reader.join()
        returncode = process.wait()
    finally:
        if previous_handler is not None:
            signal.signal(signal.SIGINT, previous_handler)

    return ProcessResult(
        exit_code=_exit_code(returncode),
        stdout=b"".join(out_chunks).decode("utf-8", errors="replace"),
        stderr=b"".join(err_chunks).decode("utf-8", errors="replace"),
    )


def save_metric(metric: ToolMetric, start_dir: Path | None = None) -> None:
    """Save a metric to the configured destinations.

    Never raises: metrics collection must not fail the wrapped command.
    """
    from claudx.manager import MetricsManager

    logger.debug(f"Starting to save metric for: {metric.tool_name}")
    try:
        with MetricsManager(start_dir=start_dir) as manager:
            manager.save_metric(metric)
        logger.debug(f"Successfully saved metric for: {metric.tool_name}")
    except Exception as e:
        logger.warning(f"Failed to save metrics: {e}", exc_info=logger.isEnabledFor(logging.DEBUG))


def execute_and_collect(
    executable: str,
    original_path: str,
    args: list[str],
    save: Callable[[ToolMetric], None] | None = None,
    runner: Callable[[str, list[str]], ProcessResult] = run_process,
) -> int:
    """Run the wrapped executable and record a metric for the invocation.

    Args:
        executable: Bare executable name the shim was generated for.
        original_path: Absolute path of the real executable.
        args: Arguments passed to the shim.
        save: Persists the metric. Defaults to save_metric with the
              caller's original working directory.
        runner: Spawns the process (injected by tests).

    Returns:
        The exit code the collector should exit with.
    """
    # The process cwd may be a deleted directory; original_cwd() tolerates it
    cwd = original_cwd()
    if save is None:
        def save(metric: ToolMetric) -> None:
            save_metric(metric, cwd)

    start_time = time.perf_counter_ns()
    metric_id = str(uuid.uuid4())
    tool_name = generate_tool_name(executable, args)
    parameters = {"args": list(args), "cwd": str(cwd)}

    try:
        result = runner(original_path, args)
    except Exception as e:
        end_time = time.perf_counter_ns()
        metric = ToolMetric(
            id=metric_id,
            tool_name=tool_name,
            start_time=start_time,
            end_time=end_time,
            duration=(end_time - start_time) / 1_000_000,
            success=False,
            error_message=str(e) or type(e).__name__,
            parameters=parameters,
            timestamp=datetime.now(timezone.utc),
        )
        _safe_save(save, metric)
        print(f"[claudx] Shim execution failed: {e}", file=sys.stderr)
        if isinstance(e, FileNotFoundError):
            return NOT_FOUND_EXIT_CODE
        return SPAWN_FAILURE_EXIT_CODE

    end_time = time.perf_counter_ns()
    tokens = extract_tokens(executable, result.stdout, result.stderr, args)
    success = result.exit_code == 0

    metric = ToolMetric(
        id=metric_id,
        tool_name=tool_name,
        start_time=start_time,
        end_time=end_time,
        duration=(end_time - start_time) / 1_000_000,
        success=success,
        error_message=None if success else f"Exit code: {result.exit_code}",
        parameters=parameters,
        timestamp=datetime.now(timezone.utc),
        input_tokens=tokens.input_tokens,
        output_tokens=tokens.output_tokens,
        total_tokens=tokens.total_tokens,
    )
    _safe_save(save, metric)
    return result.exit_code


def _safe_save(save: Callable[[ToolMetric], None], metric: ToolMetric) -> None:
    try:
        save(metric)
    except Exception as e:
        logger.warning(f"Failed to save metrics: {e}")


def main(argv: list[str] | None = None) -> int:
    """CLI entry point called by generated shims.

    Returns:
        The wrapped program's exit code, or 1 on usage errors.
    """
    if argv is None:
        argv = sys.argv[1:]

    if len(argv) < 2:
        print(
            "[claudx] Usage: python -m claudx.collector <executable> <original-path> [args...]",
            file=sys.stderr,
        )
        return 1

    configure_logging()
    executable, original_path, *command_args = argv
    return execute_and_collect(executable, original_path, command_args)


if __name__ == "__main__":
    sys.exit(main())
