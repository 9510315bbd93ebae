"""CLI main entry point."""

import json
import signal
import sys
from typing import Any

import click

from .config import load_config
from .errors import SetupError
from .shared.logging import configure_logging

VERBOSITY_LEVELS = ["warning", "info", "debug"]


@click.group()
@click.option("-c", "--config", type=click.Path(), help="Config file path")
@click.option("-v", "--verbose", count=True, help="Increase verbosity")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON")
@click.option("--log-file", type=click.Path(), help="Write logs to a file instead of stderr")
@click.pass_context
def cli(
    ctx: click.Context,
    config: str | None,
    verbose: int,
    json_logs: bool,
    log_file: str | None,
) -> None:
    """Convergence tests for scaffolded cluster projects."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose
    ctx.obj["json_logs"] = json_logs
    ctx.obj["log_file"] = log_file


def _load(ctx: click.Context):
    try:
        return load_config(ctx.obj["config_path"])
    except SetupError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)


def _handle_sigterm(signum: int, frame: Any) -> None:
    # SystemExit unwinds through the scenario so teardown still runs
    sys.exit(128 + signum)


@cli.command()
@click.option("--keep-workspace", is_flag=True, help="Keep workspace and image for inspection")
@click.option("--no-cert-manager", is_flag=True, help="Skip installing cert-manager")
@click.option("--poll-interval", type=float, help="Seconds between verification attempts")
@click.option("--poll-timeout", type=float, help="Seconds before a verification gives up")
@click.pass_context
def run(
    ctx: click.Context,
    keep_workspace: bool,
    no_cert_manager: bool,
    poll_interval: float | None,
    poll_timeout: float | None,
) -> None:
    """Scaffold, build and deploy a webhook project, then verify it converges."""
    from .formatters import print_progress, print_scenario_result
    from .scenario import WebhookScenario

    config = _load(ctx)
    if keep_workspace:
        config.keep_workspace = True
    if no_cert_manager:
        config.install_cert_manager = False
    if poll_interval is not None:
        config.poll_interval = poll_interval
    if poll_timeout is not None:
        config.poll_timeout = poll_timeout

    verbose = ctx.obj["verbose"]
    level = VERBOSITY_LEVELS[min(verbose, 2)] if verbose else config.log_level
    configure_logging(level, log_file=ctx.obj["log_file"], json_output=ctx.obj["json_logs"])

    signal.signal(signal.SIGTERM, _handle_sigterm)

    scenario = WebhookScenario(config, reporter=print_progress)
    try:
        result = scenario.run()
    except SetupError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)
    print_scenario_result(result)
    if not result.passed:
        sys.exit(1)


@cli.group()
def config() -> None:
    """Inspect configuration."""
    pass


@config.command("show")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def config_show(ctx: click.Context, json_output: bool) -> None:
    """Show the effective configuration and where values came from."""
    from .formatters import print_config_sources, print_config_yaml

    loaded = _load(ctx)
    data = loaded.to_dict()

    if json_output:
        sources = {key: loaded.get_source(key) for key in data}
        click.echo(json.dumps({"config": data, "sources": sources}, indent=2))
    else:
        print_config_yaml(data)
        print_config_sources(loaded)


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
