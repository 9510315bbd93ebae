"""Shared modules for scaffold-e2e.

Logging setup used by the CLI and by the harness modules.
"""

from .logging import configure_logging, get_logger, scenario_logging

__all__ = [
    "configure_logging",
    "get_logger",
    "scenario_logging",
]
