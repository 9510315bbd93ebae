"""Error taxonomy for the e2e harness.

Every failure the harness can report derives from HarnessError so the
scenario driver can route it through teardown and render it uniformly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class HarnessError(Exception):
    """Base error class for harness errors."""

    message: str = "Harness error"

    def __str__(self) -> str:
        return self.message


@dataclass
class SetupError(HarnessError):
    """Workspace or prerequisite creation failed."""

    message: str = "Setup failed"


@dataclass
class CommandError(HarnessError):
    """An external process exited with an unexpected status."""

    message: str = "Command failed"
    command: list[str] = field(default_factory=list)
    returncode: int = -1
    stdout: str = ""
    stderr: str = ""

    @classmethod
    def from_result(cls, args: list[str], returncode: int, stdout: str, stderr: str):
        detail = stderr.strip() or stdout.strip()
        message = f"'{' '.join(args)}' exited with status {returncode}"
        if detail:
            message = f"{message}: {detail}"
        return cls(message, list(args), returncode, stdout, stderr)


@dataclass
class StepFailure(HarnessError):
    """A generation, build or deploy step failed."""

    message: str = "Step failed"
    step: Any = None
    cause: BaseException | None = None

    @classmethod
    def for_step(cls, step: Any, cause: BaseException) -> StepFailure:
        return cls(f"step '{step.name}' failed: {cause}", step, cause)


@dataclass
class AnchorError(HarnessError):
    """A text-mutation anchor was missing or ambiguous."""

    message: str = "Anchor not found"
    path: str = ""
    anchor: str = ""
    occurrences: int = 0

    @classmethod
    def for_anchor(cls, path: Any, anchor: str, occurrences: int) -> AnchorError:
        if occurrences == 0:
            reason = "not found"
        else:
            reason = f"ambiguous ({occurrences} occurrences)"
        return cls(f"anchor {anchor!r} {reason} in {path}", str(path), anchor, occurrences)

    @property
    def missing(self) -> bool:
        return self.occurrences == 0


@dataclass
class PollTimeout(HarnessError):
    """An eventual-consistency check never succeeded within its budget."""

    message: str = "Timed out"
    description: str = ""
    last_error: BaseException | None = None
    attempts: int = 0
    elapsed_seconds: float = 0.0

    @classmethod
    def after(
        cls,
        description: str,
        last_error: BaseException | None,
        attempts: int,
        elapsed_seconds: float,
    ) -> PollTimeout:
        message = (
            f"{description or 'check'} did not succeed within {elapsed_seconds:.1f}s "
            f"({attempts} attempts). Last error: {last_error}"
        )
        return cls(message, description, last_error, attempts, elapsed_seconds)


@dataclass
class AssertionMismatch(HarnessError):
    """Expected and actual values differ."""

    message: str = "Assertion failed"
    expected: Any = None
    actual: Any = None
    context: str = ""

    @classmethod
    def of(cls, expected: Any, actual: Any, context: str = "") -> AssertionMismatch:
        prefix = f"{context}: " if context else ""
        return cls(f"{prefix}expected {expected!r}, got {actual!r}", expected, actual, context)
