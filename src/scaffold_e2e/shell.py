"""External process execution.

All collaborators (kubebuilder, make, kind, docker, kubectl, kustomize)
are invoked through run_command so their exit status and output are
interpreted in one place.
"""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path

from .errors import CommandError
from .shared.logging import get_logger

logger = get_logger(__name__)


@dataclass
class CommandResult:
    """Result of an external process invocation."""

    args: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def check(self) -> CommandResult:
        """Raise CommandError unless the process exited cleanly."""
        if not self.ok:
            raise CommandError.from_result(self.args, self.returncode, self.stdout, self.stderr)
        return self


def merged_env(extra: dict[str, str] | None = None) -> dict[str, str]:
    """Return the current environment with extra variables laid over it."""
    env = dict(os.environ)
    if extra:
        env.update(extra)
    return env


def run_command(
    args: list[str],
    cwd: Path | str | None = None,
    env: dict[str, str] | None = None,
    stdin: str | None = None,
    timeout: float | None = None,
) -> CommandResult:
    """Run an external process and capture its output.

    Args:
        args: Command and arguments.
        cwd: Working directory for the process.
        env: Extra environment variables merged over os.environ.
        stdin: Optional text piped to the process.
        timeout: Optional timeout in seconds.

    Returns:
        CommandResult. A missing executable is reported with returncode 127
        and a timeout with returncode 124, mirroring shell conventions.
    """
    args = [str(a) for a in args]
    logger.debug("command_started", args=args, cwd=str(cwd) if cwd else None)
    try:
        result = subprocess.run(
            args,
            cwd=cwd,
            env=merged_env(env),
            input=stdin,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError:
        return CommandResult(args, 127, "", f"{args[0]} not found. Is it installed?")
    except subprocess.TimeoutExpired:
        return CommandResult(args, 124, "", f"timed out after {timeout}s")

    logger.debug("command_finished", args=args, returncode=result.returncode)
    return CommandResult(args, result.returncode, result.stdout or "", result.stderr or "")
