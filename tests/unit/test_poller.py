"""Unit tests for the eventual-consistency poller."""

from __future__ import annotations

import time
from unittest.mock import MagicMock

import pytest

from scaffold_e2e.errors import AssertionMismatch, PollTimeout
from scaffold_e2e.poller import Poller, poll


class FakeClock:
    """Monotonic clock advanced only by sleep."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock(monkeypatch):
    fake = FakeClock()
    monkeypatch.setattr("scaffold_e2e.poller.time.monotonic", fake.monotonic)
    monkeypatch.setattr("scaffold_e2e.poller.time.sleep", fake.sleep)
    return fake


class TestPollerConfig:
    """Tests for Poller construction."""

    def test_default_config(self):
        """Test default interval and timeout."""
        poller = Poller()
        assert poller.interval_seconds == 1.0
        assert poller.timeout_seconds == 60.0

    def test_rejects_non_positive_interval(self):
        """Test a zero interval is refused."""
        with pytest.raises(ValueError):
            Poller(interval_seconds=0)


class TestPoll:
    """Tests for Poller.poll."""

    def test_first_attempt_success_does_not_sleep(self, clock):
        """Test an immediately passing check returns its value."""
        check = MagicMock(return_value="pod-1")

        result = Poller(1.0, 60.0).poll(check)

        assert result == "pod-1"
        assert check.call_count == 1
        assert clock.sleeps == []

    def test_retries_until_success(self, clock):
        """Test failing attempts are retried at the interval."""
        check = MagicMock(side_effect=[RuntimeError("not yet"), RuntimeError("not yet"), "ok"])

        result = Poller(1.0, 60.0).poll(check)

        assert result == "ok"
        assert check.call_count == 3
        assert clock.sleeps == [1.0, 1.0]

    def test_timeout_carries_last_error(self, clock):
        """Test the most recent check error is reported on timeout."""
        errors = iter(AssertionMismatch.of("Running", f"Pending-{i}") for i in range(100))

        def check():
            raise next(errors)

        with pytest.raises(PollTimeout) as exc_info:
            Poller(1.0, 5.0).poll(check, description="controller pod running")

        timeout = exc_info.value
        assert timeout.description == "controller pod running"
        assert isinstance(timeout.last_error, AssertionMismatch)
        assert timeout.last_error.actual == f"Pending-{timeout.attempts - 1}"
        assert "controller pod running" in str(timeout)

    def test_blocked_time_within_one_interval_of_timeout(self, clock):
        """Test the poller neither gives up early nor overruns the timeout."""
        check = MagicMock(side_effect=RuntimeError("never"))

        with pytest.raises(PollTimeout) as exc_info:
            Poller(3.0, 10.0).poll(check)

        assert 10.0 <= clock.now < 10.0 + 3.0
        assert clock.sleeps == [3.0, 3.0, 3.0, 1.0]
        assert exc_info.value.attempts == 5
        assert exc_info.value.elapsed_seconds == pytest.approx(10.0)

    def test_zero_timeout_makes_single_attempt(self, clock):
        """Test a zero budget still tries once."""
        check = MagicMock(side_effect=RuntimeError("down"))

        with pytest.raises(PollTimeout) as exc_info:
            Poller(1.0, 0.0).poll(check)

        assert check.call_count == 1
        assert exc_info.value.attempts == 1

    def test_on_attempt_callback(self, clock):
        """Test progress is reported for each failed attempt."""
        check = MagicMock(side_effect=[RuntimeError("a"), "ok"])
        on_attempt = MagicMock()

        Poller(1.0, 60.0).poll(check, on_attempt=on_attempt)

        on_attempt.assert_called_once()
        attempt, error = on_attempt.call_args.args
        assert attempt == 1
        assert str(error) == "a"

    def test_interrupt_is_not_swallowed(self, clock):
        """Test KeyboardInterrupt escapes the retry loop."""
        check = MagicMock(side_effect=KeyboardInterrupt)

        with pytest.raises(KeyboardInterrupt):
            Poller(1.0, 60.0).poll(check)


class TestPollFunction:
    """Tests for the poll shortcut with the real clock."""

    def test_real_timeout_is_bounded(self):
        """Test wall-clock blocking stays near the timeout."""
        start = time.monotonic()

        with pytest.raises(PollTimeout):
            poll(MagicMock(side_effect=RuntimeError("x")), 0.02, 0.1)

        elapsed = time.monotonic() - start
        assert 0.1 <= elapsed < 0.1 + 0.5
