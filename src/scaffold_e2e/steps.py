"""Step orchestration with fail-fast semantics.

A Step is one external process (scaffold, build, deploy) plus optional
file edits before and after it. Steps run strictly in order; the first
failure stops the run.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from .context import SideEffect, TestContext
from .errors import CommandError, HarnessError, StepFailure
from .mutator import AnchorEdit
from .shared.logging import get_logger
from .shell import run_command

logger = get_logger(__name__)


@dataclass(frozen=True)
class Step:
    """A named external operation.

    command items may contain {placeholder} fields naming TestContext
    values (see TestContext.values). records is added to the context's
    side effects only after the process outcome matched expect_success.
    attempts is added before the process starts, for steps that can leave
    partial effects behind when they fail (e.g. a deploy that applied some
    objects before erroring).
    """

    name: str
    command: tuple[str, ...]
    expect_success: bool = True
    before: tuple[AnchorEdit, ...] = ()
    after: tuple[AnchorEdit, ...] = ()
    records: SideEffect | None = None
    attempts: SideEffect | None = None

    def render(self, ctx: TestContext) -> list[str]:
        """Substitute context values into the command."""
        values = ctx.values()
        return [arg.format_map(values) for arg in self.command]


class StepRunner:
    """Run steps against a test context."""

    def __init__(self, on_step: Callable[[Step], None] | None = None):
        """Initialize runner.

        Args:
            on_step: Optional callback called with each step before it runs,
                for progress reporting.
        """
        self.on_step = on_step

    def run(self, ctx: TestContext, steps: Sequence[Step]) -> None:
        """Execute steps in order, stopping at the first failure.

        Raises:
            StepFailure: The first step whose process outcome did not match
                its expectation. Later steps are not run.
            AnchorError: A step's edit anchor was missing or ambiguous.
        """
        for step in steps:
            self.run_step(ctx, step)

    def run_step(self, ctx: TestContext, step: Step) -> None:
        if self.on_step:
            self.on_step(step)

        values = ctx.values()
        for edit in step.before:
            edit.apply(ctx.dir, values)

        try:
            args = step.render(ctx)
        except (KeyError, IndexError, ValueError) as e:
            raise StepFailure.for_step(step, e) from e

        if step.attempts is not None:
            ctx.record(step.attempts)
        logger.info("step_started", step=step.name, args=args)
        result = run_command(args, cwd=ctx.dir, env=ctx.env)

        if result.ok != step.expect_success:
            if step.expect_success:
                cause: HarnessError = CommandError.from_result(
                    result.args, result.returncode, result.stdout, result.stderr
                )
            else:
                cause = HarnessError(f"'{' '.join(args)}' succeeded but was expected to fail")
            logger.error("step_failed", step=step.name, returncode=result.returncode)
            raise StepFailure.for_step(step, cause) from cause

        for edit in step.after:
            edit.apply(ctx.dir, values)

        if step.records is not None:
            ctx.record(step.records)
        logger.info("step_finished", step=step.name)

