"""Blocking command execution with exit status verification."""

import logging
import subprocess
import time
from pathlib import Path
from typing import Mapping, NamedTuple, Optional, Sequence, Union

from .error_handling import ShellExecutionError

logger = logging.getLogger(__name__)

# Exit status reported by coreutils timeout(1)
TIMEOUT_EXIT_STATUS = 124


class ShellResult(NamedTuple):
    stdout: str
    stderr: str
    exit_status: int


def shell_exec(
    argv: Sequence[str],
    chdir: Optional[Union[str, Path]] = None,
    env: Optional[Mapping[str, str]] = None,
    expected_exitstatus: Optional[int] = None,
    timeout: Optional[float] = None,
) -> ShellResult:
    """Run ``argv`` to completion and capture its output.

    Args:
        argv: Program and arguments; shell scripts are passed as ``[shell, "-c", script]``
        chdir: Working directory for the child process
        env: Complete environment for the child, inherited when None
        expected_exitstatus: If set, any other exit status raises
        timeout: Seconds before the child is killed

    Returns:
        ShellResult with decoded stdout, stderr and the exit status

    Raises:
        ShellExecutionError: Exit status differs from ``expected_exitstatus``,
            or the command timed out
    """
    started = time.monotonic()
    logger.debug(f"Executing {list(argv)!r} in {chdir or '.'}")
    try:
        completed = subprocess.run(
            list(argv),
            cwd=str(chdir) if chdir is not None else None,
            env=dict(env) if env is not None else None,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        stdout = e.stdout.decode() if isinstance(e.stdout, bytes) else (e.stdout or "")
        stderr = e.stderr.decode() if isinstance(e.stderr, bytes) else (e.stderr or "")
        raise ShellExecutionError(
            f"Shell command timed out after {timeout}s",
            TIMEOUT_EXIT_STATUS,
            stdout,
            stderr,
        ) from e

    duration_ms = round((time.monotonic() - started) * 1000, 1)
    logger.debug(
        f"Command finished with exit status {completed.returncode}",
        extra={"exit_status": completed.returncode, "duration_ms": duration_ms},
    )

    result = ShellResult(completed.stdout, completed.stderr, completed.returncode)
    if expected_exitstatus is not None and result.exit_status != expected_exitstatus:
        raise ShellExecutionError(
            f"Shell command returned an unexpected exit code: "
            f"{result.exit_status} != {expected_exitstatus}",
            result.exit_status,
            result.stdout,
            result.stderr,
        )
    return result
