"""
Centralized output module for mule.

All user-facing output is prefixed with elapsed time since program launch in
MM:SS.cc format (minutes:seconds.centiseconds), which makes it easy to see
where time goes during a build.

Example output:
    00:00.02 mule v0.2.0
    00:00.05 [1/5] Detecting toolchain...
    00:00.09       Compiler: clang++
    00:01.23       [compile] main.cpp
    00:01.24       [compile] util.cpp (cached)

Errors and warnings go to the error stream with a short prefix so they stay
visible when stdout is redirected.

Usage:
    from mule.output import log, log_phase, log_detail, log_error

    log("Building project: hello...")
    log_phase(1, 5, "Detecting toolchain...")
    log_detail("Compiler: clang++")
"""

import sys
import time
from pathlib import Path
from types import TracebackType
from typing import Optional, TextIO

# Global state for the timer
_start_time: Optional[float] = None
# None means the current sys.stdout / sys.stderr
_output_stream: Optional[TextIO] = None
_error_stream: Optional[TextIO] = None
_verbose: bool = False


def init_timer(output_stream: Optional[TextIO] = None, error_stream: Optional[TextIO] = None) -> None:
    """
    Initialize the program timer.

    If not called explicitly, it is called automatically on first log.

    Args:
        output_stream: Optional output stream (defaults to sys.stdout)
        error_stream: Optional error stream (defaults to sys.stderr)
    """
    global _start_time, _output_stream, _error_stream
    _start_time = time.time()
    if output_stream is not None:
        _output_stream = output_stream
    if error_stream is not None:
        _error_stream = error_stream


def set_verbose(verbose: bool) -> None:
    """
    Set verbose mode for logging.

    Args:
        verbose: If True, verbose-only messages are printed too.
    """
    global _verbose
    _verbose = verbose


def is_verbose() -> bool:
    return _verbose


def get_elapsed() -> float:
    """Get elapsed time in seconds since timer initialization."""
    if _start_time is None:
        init_timer()
    return time.time() - _start_time  # type: ignore


def format_timestamp() -> str:
    """Format the current elapsed time as MM:SS.cc."""
    elapsed = get_elapsed()
    minutes = int(elapsed // 60)
    seconds = elapsed % 60
    return f"{minutes:02d}:{seconds:05.2f}"


def _print(message: str, stream: Optional[TextIO] = None) -> None:
    target = stream or _output_stream or sys.stdout
    target.write(f"{format_timestamp()} {message}\n")
    target.flush()


def log(message: str, verbose_only: bool = False) -> None:
    """
    Log a message with timestamp.

    Args:
        message: Message to log
        verbose_only: If True, only print if verbose mode is enabled
    """
    if verbose_only and not _verbose:
        return
    _print(message)


def log_phase(phase: int, total: int, message: str, verbose_only: bool = False) -> None:
    """
    Log a build phase message in the form ``[N/M] message``.

    Args:
        phase: Current phase number
        total: Total number of phases
        message: Phase description
        verbose_only: If True, only print if verbose mode is enabled
    """
    if verbose_only and not _verbose:
        return
    _print(f"[{phase}/{total}] {message}")


def log_detail(message: str, indent: int = 6, verbose_only: bool = False) -> None:
    """
    Log an indented detail message.

    Args:
        message: Detail message
        indent: Number of spaces to indent (default 6)
        verbose_only: If True, only print if verbose mode is enabled
    """
    if verbose_only and not _verbose:
        return
    _print(f"{' ' * indent}{message}")


def log_file(source_type: str, filename: str, cached: bool = False, verbose_only: bool = False) -> None:
    """
    Log a per-file step in the form ``[source_type] filename (cached)``.

    Args:
        source_type: Kind of step (e.g. 'compile', 'generate')
        filename: Name of the file
        cached: If True, append "(cached)" to message
        verbose_only: If True, only print if verbose mode is enabled
    """
    if verbose_only and not _verbose:
        return
    suffix = " (cached)" if cached else ""
    _print(f"      [{source_type}] {filename}{suffix}")


def log_header(title: str, version: str) -> None:
    """Log the program banner."""
    _print(f"{title} v{version}")


def log_error(message: str) -> None:
    """Log an error message to the error stream."""
    _print(f"error: {message}", _error_stream or sys.stderr)


def log_warning(message: str) -> None:
    """Log a warning message to the error stream."""
    _print(f"warning: {message}", _error_stream or sys.stderr)


def log_success(message: str) -> None:
    _print(message)


def log_artifact_path(path: Path, verbose_only: bool = False) -> None:
    """Log the path of the produced artifact."""
    log_detail(f"Artifact: {path}", verbose_only=verbose_only)


def log_build_complete(build_time: float, verbose_only: bool = False) -> None:
    if verbose_only and not _verbose:
        return
    _print(f"Build time: {build_time:.2f}s")


class TimedLogger:
    """
    Context manager for logging with elapsed time tracking.

    Usage:
        with TimedLogger("Compiling sources", phase=(4, 5)) as timed:
            timed.detail("Compiled 10 files")
        # Logs "Done (1.23s)" on success
    """

    def __init__(self, operation: str, phase: Optional[tuple[int, int]] = None, verbose_only: bool = False):
        self.operation = operation
        self.phase = phase
        self.verbose_only = verbose_only
        self.start_time = 0.0

    def __enter__(self) -> "TimedLogger":
        self.start_time = time.time()
        if self.phase:
            log_phase(self.phase[0], self.phase[1], f"{self.operation}...", self.verbose_only)
        else:
            log(f"{self.operation}...", self.verbose_only)
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        del exc_val, exc_tb  # Unused
        elapsed = time.time() - self.start_time
        if exc_type is None:
            log_detail(f"Done ({elapsed:.2f}s)", verbose_only=True)
        return None

    def detail(self, message: str) -> None:
        """Log a detail message within this operation."""
        log_detail(message, verbose_only=self.verbose_only)
