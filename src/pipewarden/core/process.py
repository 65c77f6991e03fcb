"""Subprocess execution helpers.

Every external tool (git, cargo, trivy, semgrep, ...) is invoked through
``run_command`` so that timeouts and missing binaries are reported
uniformly.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from pipewarden.core.errors import ToolNotFoundError
from pipewarden.core.logging import get_logger

LOGGER = get_logger(__name__)

DEFAULT_TIMEOUT = 1800


@dataclass
class CommandResult:
    """Result of a command execution."""

    command: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    @property
    def output(self) -> str:
        """Combined stdout and stderr."""
        if self.stderr:
            return f"{self.stdout}\n{self.stderr}"
        return self.stdout


def find_tool(name: str, hint: str = "") -> Path:
    """Find a tool binary in PATH.

    Args:
        name: Executable name.
        hint: Installation hint appended to the error message.

    Returns:
        Path to the binary.

    Raises:
        ToolNotFoundError: If the tool is not on PATH.
    """
    found = shutil.which(name)
    if found:
        return Path(found)
    raise ToolNotFoundError(name, hint)


def tool_available(name: str) -> bool:
    """Check whether a tool is on PATH."""
    return shutil.which(name) is not None


def run_command(
    cmd: List[str],
    cwd: Optional[Path] = None,
    timeout: int = DEFAULT_TIMEOUT,
    env: Optional[Mapping[str, str]] = None,
) -> CommandResult:
    """Run a command, capturing output.

    Non-zero exit codes are returned, not raised. A missing executable
    raises ``ToolNotFoundError``; a timeout is reported with
    ``timed_out=True``.

    Args:
        cmd: Command and arguments.
        cwd: Working directory.
        timeout: Timeout in seconds.
        env: Extra environment variables merged over ``os.environ``.

    Returns:
        CommandResult with captured output.
    """
    merged_env: Optional[Dict[str, str]] = None
    if env:
        merged_env = dict(os.environ)
        merged_env.update(env)

    LOGGER.debug(f"Running: {' '.join(cmd)}")
    start = time.monotonic()
    try:
        completed = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            env=merged_env,
        )
    except FileNotFoundError as e:
        raise ToolNotFoundError(cmd[0]) from e
    except subprocess.TimeoutExpired as e:
        LOGGER.warning(f"Command timed out after {timeout}s: {' '.join(cmd)}")
        return CommandResult(
            command=list(cmd),
            returncode=-1,
            stdout=_decode(e.stdout),
            stderr=f"Timeout after {timeout} seconds",
            duration_ms=int((time.monotonic() - start) * 1000),
            timed_out=True,
        )

    return CommandResult(
        command=list(cmd),
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
        duration_ms=int((time.monotonic() - start) * 1000),
    )


def _decode(data: object) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return str(data)
