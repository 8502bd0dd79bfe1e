"""Subprocess utilities for platform-safe process execution.

Every external tool mule talks to (compilers, archivers, git, cmake, make,
pkg-config, generators, test binaries) is launched through this module.
Calls are synchronous and block until the child exits; there is no timeout.
"""

import logging
import shlex
import subprocess
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

logger = logging.getLogger(__name__)


def get_subprocess_creation_flags() -> int:
    """Get platform-specific subprocess creation flags.

    Returns:
        - Windows: subprocess.CREATE_NO_WINDOW (prevents console window)
        - Other platforms: 0 (no special flags)
    """
    if sys.platform == "win32":
        return subprocess.CREATE_NO_WINDOW
    return 0


def safe_run(cmd: list[str] | str, **kwargs: Any) -> subprocess.CompletedProcess:
    """Execute subprocess.run with platform-specific flags.

    Automatically applies:
    - CREATE_NO_WINDOW on Windows (prevents console window)
    - stdin=DEVNULL (prevents console input handle inheritance)

    Args:
        cmd: Command and arguments, or a command string with shell=True
            (same as subprocess.run)
        **kwargs: Additional arguments passed to subprocess.run

    Returns:
        CompletedProcess result from subprocess.run

    Note:
        - If 'creationflags' is explicitly provided in kwargs,
          it will be OR'd with platform defaults to preserve custom flags.
        - If 'stdin' is explicitly provided in kwargs, it will be used as-is.
    """
    default_flags = get_subprocess_creation_flags()

    if "creationflags" in kwargs:
        kwargs["creationflags"] = kwargs["creationflags"] | default_flags
    elif default_flags:
        kwargs["creationflags"] = default_flags

    if "stdin" not in kwargs:
        kwargs["stdin"] = subprocess.DEVNULL

    return subprocess.run(cmd, **kwargs)


def run_command(cmd: Sequence[str], cwd: Optional[Path] = None, capture: bool = False) -> subprocess.CompletedProcess:
    """Run an external tool and return its completed process.

    A missing executable is reported the same way as a failing one: a
    CompletedProcess with return code 127, so callers only ever look at the
    exit code.

    Args:
        cmd: Command and arguments
        cwd: Working directory for the child
        capture: Capture stdout/stderr as text instead of inheriting them

    Returns:
        CompletedProcess with returncode (and output when captured)
    """
    argv = [str(part) for part in cmd]
    logger.debug("exec: %s", shlex.join(argv))
    kwargs: dict[str, Any] = {"cwd": str(cwd) if cwd else None, "check": False}
    if capture:
        kwargs["capture_output"] = True
        kwargs["text"] = True
    try:
        return safe_run(argv, **kwargs)
    except (FileNotFoundError, PermissionError) as e:
        logger.debug("exec failed for %s: %s", argv[0], e)
        return subprocess.CompletedProcess(argv, 127, stdout="", stderr=str(e))


def command_exists(cmd: Sequence[str]) -> bool:
    """Return True if the probe command runs and exits with status 0.

    Args:
        cmd: Probe command, e.g. ``["g++", "--version"]``
    """
    result = run_command(cmd, capture=True)
    return result.returncode == 0


def run_shell(command: str, cwd: Optional[Path] = None) -> subprocess.CompletedProcess:
    """Run a command string through the system shell.

    Used for user-written command templates (generator rules), which may use
    redirection and pipes. Substituted paths must already be quoted.
    """
    logger.debug("shell: %s", command)
    return safe_run(command, shell=True, cwd=str(cwd) if cwd else None, check=False)
