"""
Shared process execution and provider interfaces.

External tools are always run with shell=False and without a timeout.
Extra environment variables are merged into a copy of the current process
environment for the single invocation only.
"""

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Protocol, Sequence

from tfproj.errors import ToolNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Result of an external command execution."""
    exit_code: int
    stdout: str
    stderr: str
    success: bool
    command: str  # operation name (e.g. "init", "plan")


def tool_available(executable: str) -> bool:
    """Return True if executable is on PATH (or is an existing path)."""
    return shutil.which(executable) is not None


def run_command(
    cmd: Sequence[str],
    operation: str,
    cancel=None,
    env: Optional[Mapping[str, str]] = None,
    cwd: Optional[Path] = None,
    capture: bool = False,
) -> CommandResult:
    """Run cmd and wait for it to finish.

    Args:
        cmd: Command and arguments
        operation: Short name used in the result and logs
        cancel: CancellationToken checked before starting the process
        env: Extra environment variables for this invocation only
        cwd: Working directory
        capture: Capture stdout/stderr instead of inheriting the terminal

    Returns:
        CommandResult

    Raises:
        ToolNotFoundError: If the executable cannot be started
        OperationCancelledError: If cancellation was requested
    """
    if cancel is not None:
        cancel.check()

    process_env = None
    if env:
        process_env = dict(os.environ)
        process_env.update(env)

    logger.debug(f"Running: {' '.join(str(c) for c in cmd)}")
    try:
        result = subprocess.run(
            [str(c) for c in cmd],
            env=process_env,
            cwd=str(cwd) if cwd else None,
            capture_output=capture,
            text=True,
        )
    except FileNotFoundError:
        raise ToolNotFoundError(str(cmd[0]))

    return CommandResult(
        exit_code=result.returncode,
        stdout=result.stdout or "",
        stderr=result.stderr or "",
        success=result.returncode == 0,
        command=operation,
    )


class AccountProvider(Protocol):
    """Cloud account operations needed for subscription binding."""

    def available(self) -> bool: ...

    def whoami(self): ...

    def set_subscription(self, hint: str) -> bool: ...

    def login(self) -> bool: ...

    def logout(self) -> bool: ...


class RepoProvider(Protocol):
    """Source-control service operations."""

    def auth_status(self): ...

    def get_latest_release(self, repo: str) -> str: ...

    def get_raw_file(self, repo: str, path: str) -> bytes: ...
