"""Eventual-consistency polling.

The cluster converges asynchronously, so post-deploy checks are retried at
a fixed interval until they pass or a time budget runs out.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TypeVar

from .errors import PollTimeout
from .shared.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_INTERVAL_SECONDS = 1.0
DEFAULT_TIMEOUT_SECONDS = 60.0


class Poller:
    """Retry a check function until it succeeds or the timeout elapses."""

    def __init__(
        self,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        """Initialize poller.

        Args:
            interval_seconds: Seconds to sleep between attempts.
            timeout_seconds: Total time budget for all attempts.
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        if timeout_seconds < 0:
            raise ValueError("timeout_seconds must not be negative")
        self.interval_seconds = interval_seconds
        self.timeout_seconds = timeout_seconds

    def poll(
        self,
        check: Callable[[], T],
        description: str = "",
        on_attempt: Callable[[int, BaseException], None] | None = None,
    ) -> T:
        """Call check until it returns without raising.

        check must only perform read-only queries; it is called repeatedly.
        Any exception it raises counts as a failed attempt.

        Args:
            check: Zero-argument callable. Its return value is passed through.
            description: Human-readable name used in logs and PollTimeout.
            on_attempt: Optional callback called with (attempt, error) after
                each failed attempt, for progress reporting.

        Returns:
            The value returned by the first successful call to check.

        Raises:
            PollTimeout: If no attempt succeeded before the timeout elapsed.
                Carries the error from the most recent attempt.
        """
        start = time.monotonic()
        attempt = 0
        last_error: BaseException | None = None

        while True:
            attempt += 1
            try:
                result = check()
            except Exception as e:
                last_error = e
            else:
                logger.debug("poll_succeeded", check=description, attempts=attempt)
                return result

            logger.debug(
                "poll_attempt_failed", check=description, attempt=attempt, error=str(last_error)
            )
            if on_attempt:
                on_attempt(attempt, last_error)

            elapsed = time.monotonic() - start
            remaining = self.timeout_seconds - elapsed
            if remaining <= 0:
                logger.warning(
                    "poll_timed_out",
                    check=description,
                    attempts=attempt,
                    elapsed=round(elapsed, 2),
                    error=str(last_error),
                )
                raise PollTimeout.after(description, last_error, attempt, elapsed)

            time.sleep(min(self.interval_seconds, remaining))


def poll(
    check: Callable[[], T],
    interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    description: str = "",
) -> T:
    """Functional shortcut for Poller(interval, timeout).poll(check)."""
    return Poller(interval_seconds, timeout_seconds).poll(check, description)
