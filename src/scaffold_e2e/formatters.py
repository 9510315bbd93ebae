"""CLI output formatting helpers."""

from typing import Any

import click
import yaml
from rich.console import Console

from .config import HarnessConfig
from .errors import AssertionMismatch, PollTimeout, StepFailure
from .scenario import ScenarioResult

console = Console(stderr=True)


def print_config_yaml(data: dict[str, Any], section: str | None = None) -> None:
    """Print config as YAML.

    Args:
        data: Configuration data
        section: Optional section name for header
    """
    if section:
        click.echo(f"{section}:")
        yaml_str = yaml.dump(data, default_flow_style=False, sort_keys=False)
        for line in yaml_str.splitlines():
            click.echo(f"  {line}")
    else:
        click.echo(yaml.dump(data, default_flow_style=False, sort_keys=False))


def print_config_sources(config: HarnessConfig) -> None:
    """Print where each non-default value came from."""
    overridden = {
        key: config.get_source(key)
        for key in config.to_dict()
        if config.get_source(key) != "default"
    }
    if overridden:
        print_config_yaml(overridden, "sources")


def print_progress(message: str) -> None:
    console.print(f"[bold blue]STEP:[/bold blue] {message}")


def print_scenario_result(result: ScenarioResult) -> None:
    """Print the verdict, failure details and teardown outcome.

    Args:
        result: Result of a scenario run
    """
    for check in result.checks:
        console.print(f"  [green]✓[/green] {check}")

    if result.passed:
        console.print(f"\n[bold green]PASSED[/bold green] (suffix {result.suffix})")
    else:
        stage = result.failed_in.value if result.failed_in else "unknown"
        console.print(f"\n[bold red]FAILED[/bold red] in stage '{stage}' (suffix {result.suffix})")
        failure = result.failure
        if isinstance(failure, StepFailure):
            console.print(f"  Step: {failure.step.name}")
            console.print(f"  Cause: {failure.cause}")
        elif isinstance(failure, PollTimeout):
            console.print(f"  Check: {failure.description}")
            console.print(f"  Attempts: {failure.attempts} in {failure.elapsed_seconds:.1f}s")
            console.print(f"  Last error: {failure.last_error}")
        elif isinstance(failure, AssertionMismatch):
            console.print(f"  Expected: {failure.expected!r}")
            console.print(f"  Actual: {failure.actual!r}")
            if failure.context:
                console.print(f"  Context: {failure.context}")
        else:
            console.print(f"  Error: {failure}")

    report = result.teardown
    if report is None:
        return
    if report.kept:
        kept = ", ".join(e.value for e in report.kept)
        console.print(f"[yellow]Kept for inspection:[/yellow] {kept}")
    for effect, error in report.errors.items():
        console.print(f"[yellow]Teardown error ({effect.value}):[/yellow] {error}")
