"""Logging for scaffold-e2e.

Several scenarios can share one cluster, so every event logged while a
scenario is active carries that scenario's suffix. The suffix is bound
with scenario_logging() and merged into each event from structlog
contextvars; callers never pass it by hand.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import structlog


def _processors(json_output: bool) -> list[structlog.types.Processor]:
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if json_output:
        # CI collectors want tracebacks as structured data, not text
        processors.append(structlog.processors.dict_tracebacks)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    return processors


def configure_logging(
    level: str = "warning",
    log_file: str | Path | None = None,
    json_output: bool = False,
) -> None:
    """Configure logging for a harness run.

    Args:
        level: Log level (debug, info, warning, error, critical)
        log_file: Optional file receiving the log instead of stderr
        json_output: If True, one JSON object per event (for CI)

    Usage:
        CI: configure_logging("info", log_file="e2e.log", json_output=True)
        Interactive: configure_logging("info")
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)

    if log_file:
        handler: logging.Handler = logging.FileHandler(str(log_file))
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)

    logging.basicConfig(level=log_level, handlers=[handler], format="%(message)s", force=True)

    structlog.configure(
        processors=_processors(json_output),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


@contextmanager
def scenario_logging(suffix: str) -> Iterator[None]:
    """Tag every event logged inside the block with the scenario suffix."""
    with structlog.contextvars.bound_contextvars(suffix=suffix):
        yield


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
